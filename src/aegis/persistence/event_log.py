"""Append-only event log: the observable record of bridge actions.

Every committed authorization, deposit, and release produces an event
record appended to the log. Records are immutable once written and carry
a SHA-256 hash of their canonical JSON form, re-verified on reload.

Events from an operation that is rolled back never reach the log: the
host environment only appends them once the whole operation commits.
"""

from __future__ import annotations

import enum
import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional


class EventKind(str, enum.Enum):
    """Classification of bridge events."""
    AUTHORIZED = "authorized"
    DEPOSITED = "deposited"
    RELEASED = "released"


def _canonical_digest(
    event_id: str,
    event_kind: str,
    timestamp_utc: str,
    emitter: str,
    payload: dict[str, Any],
) -> str:
    canonical = json.dumps(
        {
            "event_id": event_id,
            "event_kind": event_kind,
            "timestamp_utc": timestamp_utc,
            "emitter": emitter,
            "payload": payload,
        },
        sort_keys=True,
        ensure_ascii=False,
    ).encode("utf-8")
    return f"sha256:{hashlib.sha256(canonical).hexdigest()}"


@dataclass(frozen=True)
class EventRecord:
    """A single immutable event in the bridge log.

    The emitter is the address of the contract that raised the event.
    """
    event_id: str
    event_kind: EventKind
    timestamp_utc: str
    emitter: str
    payload: dict[str, Any]
    event_hash: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_kind": self.event_kind.value,
            "timestamp_utc": self.timestamp_utc,
            "emitter": self.emitter,
            "payload": self.payload,
            "event_hash": self.event_hash,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EventRecord:
        """Rebuild a stored record, refusing one whose hash does not match."""
        expected = _canonical_digest(
            data["event_id"], data["event_kind"], data["timestamp_utc"],
            data["emitter"], data["payload"],
        )
        if data["event_hash"] != expected:
            raise ValueError(
                f"Integrity check failed for event {data['event_id']}: "
                f"stored {data['event_hash']}, computed {expected}"
            )
        return cls(
            event_id=data["event_id"],
            event_kind=EventKind(data["event_kind"]),
            timestamp_utc=data["timestamp_utc"],
            emitter=data["emitter"],
            payload=data["payload"],
            event_hash=expected,
        )

    @staticmethod
    def create(
        event_id: str,
        event_kind: EventKind,
        emitter: str,
        payload: dict[str, Any],
        timestamp_utc: Optional[datetime] = None,
    ) -> EventRecord:
        """Create a new event record with computed hash."""
        ts = timestamp_utc or datetime.now(timezone.utc)
        ts_str = ts.strftime("%Y-%m-%dT%H:%M:%SZ")
        return EventRecord(
            event_id=event_id,
            event_kind=event_kind,
            timestamp_utc=ts_str,
            emitter=emitter,
            payload=payload,
            event_hash=_canonical_digest(
                event_id, event_kind.value, ts_str, emitter, payload,
            ),
        )


class EventLog:
    """Append-only event log with optional JSONL persistence."""

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._events: list[EventRecord] = []
        self._storage_path = storage_path
        self._event_ids: set[str] = set()

        if storage_path and storage_path.exists():
            self._load_from_file(storage_path)

    def append(self, event: EventRecord) -> None:
        """Append an event to the log.

        Raises ValueError if event_id is a duplicate.
        """
        if event.event_id in self._event_ids:
            raise ValueError(f"Duplicate event ID: {event.event_id}")

        self._events.append(event)
        self._event_ids.add(event.event_id)

        if self._storage_path:
            self._append_to_file(event)

    def events(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        """Return events, optionally filtered by kind."""
        if kind is None:
            return list(self._events)
        return [e for e in self._events if e.event_kind == kind]

    @property
    def count(self) -> int:
        return len(self._events)

    @property
    def last_event(self) -> Optional[EventRecord]:
        return self._events[-1] if self._events else None

    def emitted_by(self, emitter: str) -> list[EventRecord]:
        """Events raised by one contract address."""
        return [e for e in self._events if e.emitter == emitter]

    def _append_to_file(self, event: EventRecord) -> None:
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        with self._storage_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(event.to_dict(), sort_keys=True, ensure_ascii=False) + "\n")

    def _load_from_file(self, path: Path) -> None:
        """Replay a JSONL log. Tampered lines or repeated IDs abort the load."""
        with path.open("r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                if not line.strip():
                    continue
                try:
                    event = EventRecord.from_dict(json.loads(line))
                except ValueError as exc:
                    raise ValueError(f"{path} line {line_num}: {exc}") from exc
                if event.event_id in self._event_ids:
                    raise ValueError(
                        f"{path} line {line_num}: duplicate event ID {event.event_id}"
                    )
                self._events.append(event)
                self._event_ids.add(event.event_id)
