"""Local user intents fed into the session machine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .guess import Guess
from .state import Role


class UserAction:
    """Base class for local intents."""

    action_type: str = "UserAction"

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": self.action_type}
        for key, value in vars(self).items():
            payload[key] = value.value if isinstance(value, Enum) else value
        return payload


@dataclass(frozen=True)
class SelectRole(UserAction):
    role: Role
    action_type = "SelectRole"


@dataclass(frozen=True)
class EditDraft(UserAction):
    text: str
    action_type = "EditDraft"


@dataclass(frozen=True)
class SendMessage(UserAction):
    """Send ``text``, or the current draft when ``text`` is None."""

    text: str | None = None
    action_type = "SendMessage"


@dataclass(frozen=True)
class MakeGuess(UserAction):
    guess: Guess
    action_type = "MakeGuess"


@dataclass(frozen=True)
class NewGame(UserAction):
    role: Role
    action_type = "NewGame"
