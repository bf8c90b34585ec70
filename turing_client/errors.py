"""Structured exceptions raised by the client session core."""

from __future__ import annotations

from typing import Any


class ClientError(Exception):
    """Base class for client-level exceptions."""

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {"type": self.__class__.__name__, "message": str(self)}


class ConfigurationError(ClientError):
    """Raised when client configuration or environment values are invalid."""


class InvalidActionError(ClientError):
    """Raised when a local user intent cannot be parsed (unknown role, guess, ...)."""


class TransportError(ClientError):
    """Raised when the transport cannot connect or deliver a request."""


class MalformedEventError(ClientError):
    """Raised when an inbound server event carries an unusable payload."""

    def __init__(self, event: str, payload: Any, reason: str):
        self.event = event
        self.payload = payload
        self.reason = reason
        super().__init__(f"Malformed '{event}' event: {reason}")

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update({"event": self.event, "reason": self.reason})
        return payload
