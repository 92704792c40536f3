"""Host execution environment: balances, atomic operations, and the release effect.

Both authorization models assume a host that serializes operations and
applies each one all-or-nothing. HostEnvironment is that host:

- ``atomic()`` runs an operation under a single re-entrant lock. Every
  enlisted participant (the value ledger, the replay registries) is
  checkpointed on entry and rolled back if the operation raises.
- Events emitted inside an operation are buffered and only reach the
  event log, and registry inserts only reach disk, when the outermost
  operation completes.
- ``release_value`` is the shared effect both models finish with: move
  value out of the authorizer's pool to a recipient, optionally running
  the recipient's receive hook, and report whether it succeeded.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional, Protocol, runtime_checkable
from uuid import uuid4

from aegis.errors import InsufficientBalance
from aegis.models.events import BridgeEvent
from aegis.models.identity import IdentityLike, to_identity
from aegis.persistence.event_log import EventLog, EventRecord

logger = logging.getLogger(__name__)

ReceiveHook = Callable[[str, int, bytes], bool]
"""Called as hook(sender, amount, payload) when an account receives value.

Returning False, or raising, makes the incoming transfer fail.
"""


@runtime_checkable
class Transactional(Protocol):
    """State that takes part in host operations."""

    def checkpoint(self) -> Any:
        ...

    def rollback(self, token: Any) -> None:
        ...

    def commit(self) -> None:
        ...


class ValueLedger:
    """Account balances of the host environment (integer base units)."""

    def __init__(self) -> None:
        self._balances: Dict[str, int] = {}
        self._hooks: Dict[str, ReceiveHook] = {}

    def balance_of(self, account: IdentityLike) -> int:
        return self._balances.get(to_identity(account), 0)

    def credit(self, account: IdentityLike, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Credit amount must be non-negative, got {amount}")
        key = to_identity(account)
        self._balances[key] = self._balances.get(key, 0) + amount

    def move(self, source: IdentityLike, destination: IdentityLike, amount: int) -> None:
        """Move value between accounts.

        Raises InsufficientBalance if the source cannot cover the amount.
        """
        if amount < 0:
            raise ValueError(f"Transfer amount must be non-negative, got {amount}")
        src = to_identity(source)
        dst = to_identity(destination)
        available = self._balances.get(src, 0)
        if available < amount:
            raise InsufficientBalance(
                f"{src} holds {available}, cannot move {amount}"
            )
        self._balances[src] = available - amount
        self._balances[dst] = self._balances.get(dst, 0) + amount

    def set_receive_hook(self, account: IdentityLike, hook: Optional[ReceiveHook]) -> None:
        """Install (or with None, remove) a receive hook for an account."""
        key = to_identity(account)
        if hook is None:
            self._hooks.pop(key, None)
        else:
            self._hooks[key] = hook

    def receive_hook(self, account: IdentityLike) -> Optional[ReceiveHook]:
        return self._hooks.get(to_identity(account))

    def checkpoint(self) -> Dict[str, int]:
        return dict(self._balances)

    def rollback(self, token: Dict[str, int]) -> None:
        self._balances = dict(token)

    def commit(self) -> None:
        pass


class HostEnvironment:
    """Serializing, all-or-nothing host for bridge operations.

    Usage:
        env = HostEnvironment()
        env.fund(pool_address, 10 * ETHER)
        with env.atomic():
            registry.insert(value)
            if not release_value(env, pool_address, recipient, amount):
                raise TransferFailed()
            env.emit(pool_address, Released(recipient, amount))
    """

    def __init__(self, event_log: Optional[EventLog] = None) -> None:
        self.ledger = ValueLedger()
        self.event_log = event_log if event_log is not None else EventLog()
        self._participants: list[Transactional] = [self.ledger]
        self._pending_events: list[EventRecord] = []
        self._lock = threading.RLock()
        self._depth = 0

    def enlist(self, participant: Transactional) -> None:
        """Make a piece of state roll back with failed operations."""
        if not isinstance(participant, Transactional):
            raise TypeError(
                f"Participant must implement Transactional, got {type(participant)}"
            )
        with self._lock:
            if participant not in self._participants:
                self._participants.append(participant)

    @property
    def in_operation(self) -> bool:
        return self._depth > 0

    @contextmanager
    def atomic(self) -> Iterator[HostEnvironment]:
        """Run the enclosed block as one all-or-nothing operation.

        Nested blocks act as savepoints: an inner failure only undoes the
        inner block's changes, and nothing is made durable until the
        outermost block exits cleanly.
        """
        with self._lock:
            tokens = [(p, p.checkpoint()) for p in self._participants]
            events_mark = len(self._pending_events)
            self._depth += 1
            try:
                yield self
            except BaseException:
                for participant, token in reversed(tokens):
                    participant.rollback(token)
                del self._pending_events[events_mark:]
                raise
            finally:
                self._depth -= 1
            if self._depth == 0:
                self._commit()

    def emit(self, emitter: IdentityLike, event: BridgeEvent) -> EventRecord:
        """Buffer an event; it is logged when the operation commits."""
        if not self.in_operation:
            raise RuntimeError("Events can only be emitted inside an operation")
        record = EventRecord.create(
            event_id=f"evt_{uuid4().hex[:12]}",
            event_kind=event.kind,
            emitter=to_identity(emitter),
            payload=event.to_payload(),
        )
        self._pending_events.append(record)
        return record

    def fund(self, account: IdentityLike, amount: int) -> None:
        """Credit an account from outside the system (e.g. pool top-up)."""
        with self.atomic():
            self.ledger.credit(account, amount)

    def balance_of(self, account: IdentityLike) -> int:
        return self.ledger.balance_of(account)

    def _commit(self) -> None:
        """Make a finished operation durable.

        The operation has already taken effect in memory. A failing write
        is logged and the remaining writes still run, so one bad file
        never turns a completed operation into an error for the caller.
        """
        records, self._pending_events = self._pending_events, []
        for participant in self._participants:
            try:
                participant.commit()
            except OSError:
                logger.error("Durable write failed for %r", participant, exc_info=True)
        for record in records:
            try:
                self.event_log.append(record)
            except OSError:
                logger.error(
                    "Event %s not persisted", record.event_id, exc_info=True,
                )


def release_value(
    env: HostEnvironment,
    source: IdentityLike,
    recipient: IdentityLike,
    amount: int,
    payload: bytes = b"",
) -> bool:
    """Transfer ``amount`` from an authorizer's pool to ``recipient``.

    Returns False if the pool cannot cover the amount or the recipient's
    receive hook rejects the transfer. A failed transfer leaves no trace:
    the balance movement and whatever the hook changed are undone.
    Callers turn False into their own named error.
    """
    try:
        with env.atomic():
            env.ledger.move(source, recipient, amount)
            hook = env.ledger.receive_hook(recipient)
            if hook is not None and not hook(to_identity(source), amount, bytes(payload)):
                raise _HookRejected()
    except InsufficientBalance as exc:
        logger.warning("Release of %d to %s failed: %s", amount, recipient, exc)
        return False
    except _HookRejected:
        logger.warning("Recipient %s rejected transfer of %d", recipient, amount)
        return False
    except Exception:
        logger.warning(
            "Recipient %s failed while receiving %d", recipient, amount, exc_info=True,
        )
        return False
    return True


class _HookRejected(Exception):
    """Internal signal used to undo a hook that returned False."""
