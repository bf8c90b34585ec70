"""Socket event names, typed inbound events and outbound requests."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Mapping

from .errors import InvalidActionError, MalformedEventError
from .messages import Message, Sender
from .state import GameEndReason, Role


class InboundName(str, Enum):
    """Events the server pushes to the client."""

    WAITING_FOR_PARTNER = "waitingForPartner"
    MATCH_FOUND = "matchFound"
    NEW_MESSAGE = "newMessage"
    GAME_END = "gameEnd"
    WATCHING_GAME = "watchingGame"
    GAME_COMPLETE = "gameComplete"
    ERROR = "error"


class OutboundName(str, Enum):
    """Requests the client sends to the server."""

    JOIN_LOBBY = "joinLobby"
    NEW_GAME = "newGame"
    SEND_MESSAGE = "sendMessage"
    MAKE_GUESS = "makeGuess"


@dataclass(frozen=True)
class OutboundRequest:
    """A named request with its JSON payload."""

    name: OutboundName
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name.value, "payload": dict(self.payload)}


def join_lobby(role: Role) -> OutboundRequest:
    return OutboundRequest(OutboundName.JOIN_LOBBY, {"role": role.value})


def new_game(role: Role) -> OutboundRequest:
    return OutboundRequest(OutboundName.NEW_GAME, {"role": role.value})


def send_message(session_id: str, text: str) -> OutboundRequest:
    return OutboundRequest(OutboundName.SEND_MESSAGE, {"sessionId": session_id, "message": text})


class ServerEvent:
    """Base class for parsed inbound events."""

    name: ClassVar[InboundName]

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": self.name.value}
        for key, value in vars(self).items():
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, Message):
                value = value.to_dict()
            payload[key] = value
        return payload


def _mapping(name: InboundName, payload: Any) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise MalformedEventError(name.value, payload, "expected an object payload")
    return payload


def _required_str(name: InboundName, payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise MalformedEventError(name.value, payload, f"missing string field '{key}'")
    return value


def _optional_str(payload: Mapping[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    return str(value)


def _notice_text(name: InboundName, payload: Any) -> str:
    """Notices arrive either as a bare string or as ``{"message": ...}``."""
    if isinstance(payload, str):
        return payload
    if isinstance(payload, Mapping) and isinstance(payload.get("message"), str):
        return payload["message"]
    raise MalformedEventError(name.value, payload, "expected a message string")


@dataclass(frozen=True)
class WaitingForPartner(ServerEvent):
    message: str
    name = InboundName.WAITING_FOR_PARTNER

    @classmethod
    def from_payload(cls, payload: Any) -> "WaitingForPartner":
        return cls(message=_notice_text(cls.name, payload))


@dataclass(frozen=True)
class MatchFound(ServerEvent):
    session_id: str
    message: str
    role: Role | None = None
    ai_persona: str | None = None
    name = InboundName.MATCH_FOUND

    @classmethod
    def from_payload(cls, payload: Any) -> "MatchFound":
        data = _mapping(cls.name, payload)
        role = None
        if data.get("role") is not None:
            try:
                role = Role.parse(data["role"])
            except InvalidActionError as exc:
                raise MalformedEventError(cls.name.value, payload, str(exc)) from exc
        persona = _optional_str(data, "aiPersona")
        return cls(
            session_id=_required_str(cls.name, data, "sessionId"),
            message=str(data.get("message") or ""),
            role=role,
            ai_persona=persona or None,
        )


@dataclass(frozen=True)
class NewMessage(ServerEvent):
    message: Message
    session_id: str | None = None
    name = InboundName.NEW_MESSAGE

    @classmethod
    def from_payload(cls, payload: Any) -> "NewMessage":
        data = _mapping(cls.name, payload)
        text = data.get("text")
        if not isinstance(text, str):
            raise MalformedEventError(cls.name.value, payload, "missing string field 'text'")
        return cls(
            message=Message(sender=Sender.from_wire(data.get("sender")), text=text),
            session_id=_optional_str(data, "sessionId"),
        )


@dataclass(frozen=True)
class GameEnd(ServerEvent):
    reason: GameEndReason
    result: str | None = None
    session_id: str | None = None
    name = InboundName.GAME_END

    @classmethod
    def from_payload(cls, payload: Any) -> "GameEnd":
        data = _mapping(cls.name, payload)
        try:
            reason = GameEndReason(str(data.get("reason")))
        except ValueError as exc:
            raise MalformedEventError(cls.name.value, payload, f"unknown reason {data.get('reason')!r}") from exc
        return cls(
            reason=reason,
            result=_optional_str(data, "result"),
            session_id=_optional_str(data, "sessionId"),
        )


@dataclass(frozen=True)
class WatchingGame(ServerEvent):
    session_id: str | None
    message: str
    name = InboundName.WATCHING_GAME

    @classmethod
    def from_payload(cls, payload: Any) -> "WatchingGame":
        data = _mapping(cls.name, payload)
        return cls(session_id=_optional_str(data, "sessionId"), message=_notice_text(cls.name, data))


@dataclass(frozen=True)
class GameComplete(ServerEvent):
    message: str
    name = InboundName.GAME_COMPLETE

    @classmethod
    def from_payload(cls, payload: Any) -> "GameComplete":
        return cls(message=_notice_text(cls.name, payload))


@dataclass(frozen=True)
class ErrorNotice(ServerEvent):
    message: str
    name = InboundName.ERROR

    @classmethod
    def from_payload(cls, payload: Any) -> "ErrorNotice":
        if isinstance(payload, Mapping) and "message" not in payload and isinstance(payload.get("error"), str):
            return cls(message=payload["error"])
        return cls(message=_notice_text(cls.name, payload))


INBOUND_EVENTS: dict[InboundName, type[ServerEvent]] = {
    InboundName.WAITING_FOR_PARTNER: WaitingForPartner,
    InboundName.MATCH_FOUND: MatchFound,
    InboundName.NEW_MESSAGE: NewMessage,
    InboundName.GAME_END: GameEnd,
    InboundName.WATCHING_GAME: WatchingGame,
    InboundName.GAME_COMPLETE: GameComplete,
    InboundName.ERROR: ErrorNotice,
}


def event_from_wire(name: str | InboundName, payload: Any) -> ServerEvent:
    """Parse one inbound socket event into its typed form."""
    try:
        event_name = InboundName(name)
    except ValueError as exc:
        raise MalformedEventError(str(name), payload, "unknown event name") from exc
    return INBOUND_EVENTS[event_name].from_payload(payload)  # type: ignore[attr-defined]
