"""Tester's final decision and its outbound request."""

from __future__ import annotations

from enum import Enum
from typing import Any

from .errors import InvalidActionError
from .wire import OutboundName, OutboundRequest


class Guess(str, Enum):
    """What the tester believes the partner is."""

    HUMAN = "human"
    AI = "AI"

    @classmethod
    def parse(cls, raw: Any) -> "Guess":
        normalized = str(raw or "").strip().lower()
        for guess in cls:
            if guess.value.lower() == normalized:
                return guess
        raise InvalidActionError(f"Unknown guess {raw!r}; expected 'human' or 'AI'.")


class GuessResolver:
    """
    Turns a guess into a ``makeGuess`` request for the current session.

    Eligibility is checked by the session machine before this is called; the
    verdict comes back later as an ordinary ``gameEnd`` event.
    """

    def request(self, session_id: str, guess: Guess) -> OutboundRequest:
        return OutboundRequest(OutboundName.MAKE_GUESS, {"sessionId": session_id, "guess": guess.value})
