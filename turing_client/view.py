"""Read-only snapshots and the presentation rules derived from them."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .config import DEFAULT_TIMER_WARNING_SEC
from .messages import Message
from .state import GameEndOutcome, GameEndReason, Mode, Role, SessionState, WatchQueueState
from .timer import TimerState

TIMEOUT_END_MESSAGE = "Time is up! Game has ended. The tester did not make a guess."
BOTH_ROLES: tuple[Role, ...] = (Role.TESTER, Role.TESTED_PERSON)


class Screen(str, Enum):
    """Which screen the presentation layer should show."""

    ROLE_SELECT = "role_select"
    WAITING = "waiting"
    WATCHING = "watching"
    CHAT = "chat"


@dataclass(frozen=True)
class SessionSnapshot:
    """Everything a renderer needs, frozen at one instant."""

    mode: Mode
    role: Role | None
    session_id: str | None
    ai_persona: str | None
    status: str
    draft: str
    messages: tuple[Message, ...]
    timer: TimerState
    outcome: GameEndOutcome | None
    watch: WatchQueueState | None
    guess_pending: bool

    @classmethod
    def capture(cls, state: SessionState, messages: tuple[Message, ...], timer: TimerState) -> "SessionSnapshot":
        return cls(
            mode=state.mode,
            role=state.role,
            session_id=state.session_id,
            ai_persona=state.session.ai_persona if state.session is not None else None,
            status=state.status,
            draft=state.draft,
            messages=messages,
            timer=timer,
            outcome=state.outcome,
            watch=state.watch,
            guess_pending=state.guess_pending,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "role": self.role.value if self.role is not None else None,
            "session_id": self.session_id,
            "ai_persona": self.ai_persona,
            "status": self.status,
            "draft": self.draft,
            "messages": [message.to_dict() for message in self.messages],
            "timer": self.timer.to_dict(),
            "outcome": self.outcome.to_dict() if self.outcome is not None else None,
            "watch": self.watch.to_dict() if self.watch is not None else None,
            "guess_pending": self.guess_pending,
        }

    def state_digest(self) -> str:
        """SHA256 over the key-sorted JSON form; equal snapshots share a digest."""
        encoded = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":")).encode("utf-8")
        return hashlib.sha256(encoded).hexdigest()


@dataclass(frozen=True)
class SessionView:
    """Controls and messages the presentation layer may show."""

    screen: Screen
    show_timer: bool
    timer_warning: bool
    can_send: bool
    show_guess_controls: bool
    role_options: tuple[Role, ...]
    replay_roles: tuple[Role, ...]
    end_message: str | None
    result_style: str | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "screen": self.screen.value,
            "show_timer": self.show_timer,
            "timer_warning": self.timer_warning,
            "can_send": self.can_send,
            "show_guess_controls": self.show_guess_controls,
            "role_options": [role.value for role in self.role_options],
            "replay_roles": [role.value for role in self.replay_roles],
            "end_message": self.end_message,
            "result_style": self.result_style,
        }


def _screen(snapshot: SessionSnapshot) -> Screen:
    if snapshot.mode is Mode.NO_ROLE:
        return Screen.ROLE_SELECT
    if snapshot.mode is Mode.WATCHING:
        return Screen.WATCHING
    if snapshot.session_id is None:
        return Screen.WAITING
    return Screen.CHAT


def build_view(snapshot: SessionSnapshot, warning_seconds: int = DEFAULT_TIMER_WARNING_SEC) -> SessionView:
    """Derive control eligibility from a snapshot."""
    screen = _screen(snapshot)
    in_chat = snapshot.mode is Mode.IN_CHAT and snapshot.session_id is not None
    outcome = snapshot.outcome if snapshot.mode is Mode.ENDED else None

    end_message = None
    result_style = None
    replay_roles: tuple[Role, ...] = ()
    show_guess_controls = False

    if snapshot.mode is Mode.WATCHING:
        replay_roles = BOTH_ROLES
    elif outcome is not None:
        if outcome.reason is GameEndReason.TIMEOUT:
            end_message = TIMEOUT_END_MESSAGE
            replay_roles = BOTH_ROLES
        elif outcome.reason is GameEndReason.READY_TO_GUESS:
            end_message = outcome.result_text
            show_guess_controls = (
                snapshot.role is Role.TESTER and snapshot.session_id is not None and not snapshot.guess_pending
            )
        else:
            end_message = outcome.result_text
            result_style = "incorrect" if outcome.correct is False else "correct"
            replay_roles = BOTH_ROLES

    return SessionView(
        screen=screen,
        show_timer=in_chat,
        timer_warning=in_chat and snapshot.timer.remaining_seconds <= warning_seconds,
        can_send=in_chat,
        show_guess_controls=show_guess_controls,
        role_options=BOTH_ROLES if screen is Screen.ROLE_SELECT else (),
        replay_roles=replay_roles,
        end_message=end_message,
        result_style=result_style,
    )


def render_text(snapshot: SessionSnapshot, view: SessionView | None = None) -> str:
    """Render a plain-text screen, mainly for logs and debugging."""
    view = view or build_view(snapshot)
    lines = ["Turing Test Game", f"[{view.screen.value}] {snapshot.status}"]
    if view.show_timer:
        marker = " !" if view.timer_warning else ""
        lines.append(f"Time remaining: {snapshot.timer.remaining_seconds}s{marker}")
    for message in snapshot.messages:
        lines.append(f"{message.sender.value}: {message.text}")
    if view.end_message:
        suffix = f" ({view.result_style})" if view.result_style else ""
        lines.append(f"{view.end_message}{suffix}")
    if view.show_guess_controls:
        lines.append("Guess: human | AI")
    if view.role_options or view.replay_roles:
        roles = view.role_options or view.replay_roles
        lines.append("Play as: " + " | ".join(role.value for role in roles))
    return "\n".join(lines)
