"""Record of every input and output handled by a session context."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from time import time
from typing import Any, Iterable, Iterator, Mapping


class RecordKind(str, Enum):
    """What a journal entry describes."""

    ACTION = "action"
    INBOUND = "inbound"
    OUTBOUND = "outbound"
    IGNORED = "ignored"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class SessionRecord:
    """Single journal entry."""

    kind: RecordKind
    name: str
    mode: str
    timestamp_ms: int
    payload: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "name": self.name,
            "mode": self.mode,
            "timestamp_ms": self.timestamp_ms,
            "payload": dict(self.payload),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SessionRecord":
        return cls(
            kind=RecordKind(str(data["kind"])),
            name=str(data["name"]),
            mode=str(data["mode"]),
            timestamp_ms=int(data["timestamp_ms"]),
            payload=dict(data.get("payload", {})),
        )

    @classmethod
    def create(cls, kind: RecordKind, name: str, mode: str, payload: dict[str, Any]) -> "SessionRecord":
        """Construct a record stamped with the current wall-clock time."""
        return cls(kind=kind, name=name, mode=mode, timestamp_ms=int(time() * 1000), payload=payload)


class SessionJournal:
    """In-memory list of records, optionally capped to the newest ``limit``."""

    def __init__(self, limit: int | None = 1000):
        self.limit = limit
        self._records: list[SessionRecord] = []

    def record(self, kind: RecordKind, name: str, mode: str, payload: dict[str, Any] | None = None) -> SessionRecord:
        entry = SessionRecord.create(kind, name, mode, payload or {})
        self._records.append(entry)
        if self.limit is not None and len(self._records) > self.limit:
            self._records = self._records[-self.limit :]
        return entry

    def records(self) -> list[SessionRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[SessionRecord]:
        return iter(list(self._records))


def to_json_line(data: Mapping[str, Any]) -> str:
    """Encode one record as compact, key-sorted JSON."""
    return json.dumps(data, sort_keys=True, ensure_ascii=False, separators=(",", ":"))


def write_jsonl(path: str | Path, records: Iterable[SessionRecord]) -> None:
    """Persist records as JSONL to disk."""
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8") as handle:
        for record in records:
            handle.write(to_json_line(record.to_dict()))
            handle.write("\n")
