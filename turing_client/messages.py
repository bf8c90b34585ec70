"""Chat turns and the append-only message log."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Iterator, Mapping, Self


class Sender(str, Enum):
    """Who produced a chat turn. Values are the labels used on the wire."""

    LOCAL_USER = "you"
    REMOTE_PEER = "partner"
    SYSTEM = "system"

    @classmethod
    def from_wire(cls, raw: Any) -> "Sender":
        """Map a server sender label; anything unrecognised is the remote peer."""
        label = str(raw or "").strip().lower()
        if label == cls.SYSTEM.value:
            return cls.SYSTEM
        if label == cls.LOCAL_USER.value:
            return cls.LOCAL_USER
        return cls.REMOTE_PEER


@dataclass(frozen=True)
class Message:
    """One chat turn."""

    sender: Sender
    text: str

    @classmethod
    def system(cls, text: str) -> "Message":
        return cls(sender=Sender.SYSTEM, text=text)

    @classmethod
    def local(cls, text: str) -> "Message":
        return cls(sender=Sender.LOCAL_USER, text=text)

    def to_dict(self) -> dict[str, Any]:
        return {"sender": self.sender.value, "text": self.text}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return cls(sender=Sender.from_wire(data.get("sender")), text=str(data.get("text", "")))


class MessageLog:
    """Ordered record of chat turns. Entries are never reordered or edited."""

    def __init__(self, seed: Iterable[Message] = ()) -> None:
        self._entries: list[Message] = list(seed)

    def append(self, message: Message) -> None:
        self._entries.append(message)

    def reset(self, seed: Iterable[Message] = ()) -> None:
        """Drop every entry, optionally starting over with ``seed``."""
        self._entries = list(seed)

    def snapshot(self) -> tuple[Message, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._entries))

    def __getitem__(self, index: int) -> Message:
        return self._entries[index]
