"""Durable state: replay registries and the bridge event log."""

from aegis.persistence.event_log import EventKind, EventLog, EventRecord
from aegis.persistence.registry import HashRegistry

__all__ = ["EventKind", "EventLog", "EventRecord", "HashRegistry"]
