"""Pydantic request bodies for the local client API."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


GuessValue = Literal["human", "AI"]


class RoleRequest(BaseModel):
    """Body for choosing a role or starting a new game."""

    role: str = Field(min_length=1)


class DraftRequest(BaseModel):
    """Body for updating the chat input buffer."""

    text: str = ""


class MessageRequest(BaseModel):
    """Body for sending a chat turn; omit ``text`` to send the current draft."""

    text: str | None = None


class GuessRequest(BaseModel):
    """Body for the tester's final decision."""

    guess: GuessValue
