"""Events emitted by the bridge contracts.

Events are immutable. Each one knows its log kind and renders a
JSON-safe payload for the append-only event log.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from aegis.persistence.event_log import EventKind


@dataclass(frozen=True)
class Authorized:
    """A threshold-signed call was executed by the baseline model."""
    target: str
    value: int
    payload: bytes
    signed_hash: bytes

    kind = EventKind.AUTHORIZED

    def to_payload(self) -> dict[str, Any]:
        return {
            "target": self.target,
            "value": str(self.value),
            "payload": "0x" + self.payload.hex(),
            "signed_hash": "0x" + self.signed_hash.hex(),
        }


@dataclass(frozen=True)
class Deposited:
    """Value was locked on the source side under an event hash."""
    depositor: str
    value: int
    destination_chain_id: int
    event_hash: int

    kind = EventKind.DEPOSITED

    def to_payload(self) -> dict[str, Any]:
        return {
            "depositor": self.depositor,
            "value": str(self.value),
            "destination_chain_id": self.destination_chain_id,
            "event_hash": str(self.event_hash),
        }


@dataclass(frozen=True)
class Released:
    """Value was released on the destination side against a proof."""
    recipient: str
    amount: int

    kind = EventKind.RELEASED

    def to_payload(self) -> dict[str, Any]:
        return {"recipient": self.recipient, "amount": str(self.amount)}


BridgeEvent = Union[Authorized, Deposited, Released]
