"""Immutable session state and the enums it is built from."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .errors import InvalidActionError

INITIAL_STATUS = "Select your role to begin."
JOINING_STATUS = "Joining the lobby..."
GAME_OVER_STATUS = "Game over!"
INCORRECT_MARKER = "incorrectly"


class Role(str, Enum):
    """Seat chosen by the local player. Values are the wire labels."""

    TESTER = "tester"
    TESTED_PERSON = "tested person"

    @classmethod
    def parse(cls, raw: Any) -> "Role":
        normalized = str(raw or "").strip().lower().replace("-", " ").replace("_", " ")
        for role in cls:
            if role.value == normalized:
                return role
        raise InvalidActionError(f"Unknown role {raw!r}; expected one of {[role.value for role in cls]}.")


class Mode(str, Enum):
    """Top-level state of the client session machine."""

    NO_ROLE = "NO_ROLE"
    AWAITING_MATCH = "AWAITING_MATCH"
    WATCHING = "WATCHING"
    IN_CHAT = "IN_CHAT"
    ENDED = "ENDED"


class GameEndReason(str, Enum):
    """Why the server ended a session."""

    TIMEOUT = "timeout"
    READY_TO_GUESS = "readyToGuess"
    GUESS_MADE = "guess"


@dataclass(frozen=True)
class Session:
    """One matched pairing issued by the server."""

    session_id: str
    role: Role
    ai_persona: str | None = None


@dataclass(frozen=True)
class GameEndOutcome:
    """Terminal notice for a session."""

    reason: GameEndReason
    result_text: str | None = None
    correct: bool | None = None

    @classmethod
    def create(cls, reason: GameEndReason, result_text: str | None) -> "GameEndOutcome":
        """Build an outcome, classifying guess results by the server's wording."""
        correct = None
        if reason is GameEndReason.GUESS_MADE and result_text is not None:
            correct = INCORRECT_MARKER not in result_text
        return cls(reason=reason, result_text=result_text, correct=correct)

    def to_dict(self) -> dict[str, Any]:
        return {"reason": self.reason.value, "result_text": self.result_text, "correct": self.correct}


@dataclass(frozen=True)
class WatchQueueState:
    """Observer position behind another (AI-paired) game."""

    active: bool
    session_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"active": self.active, "session_id": self.session_id}


@dataclass(frozen=True)
class SessionState:
    """Everything the machine knows, apart from the timer and message log."""

    mode: Mode = Mode.NO_ROLE
    role: Role | None = None
    session: Session | None = None
    outcome: GameEndOutcome | None = None
    watch: WatchQueueState | None = None
    status: str = INITIAL_STATUS
    draft: str = ""
    guess_pending: bool = False

    @property
    def session_id(self) -> str | None:
        return self.session.session_id if self.session is not None else None

    def can_guess(self) -> bool:
        """Return whether a guess would be accepted right now."""
        return (
            self.mode is Mode.ENDED
            and self.session is not None
            and self.role is Role.TESTER
            and self.outcome is not None
            and self.outcome.reason is GameEndReason.READY_TO_GUESS
            and not self.guess_pending
        )
