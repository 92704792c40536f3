"""Source-side deposits for the proof model.

A depositor locks value together with a secret. The contract publishes
only the event hash H(depositor, value, destinationChainId, secret);
the destination side later releases against a proof of knowledge of the
preimage plus the one-time nullifier H(secret).

Deposits are not replay-sensitive: depositing twice creates two
independent events.

The secret travels as an ordinary call argument and is therefore visible
to anyone who can observe source-side calls. Only observers limited to
the destination side are kept from linking deposit and release.
"""

from __future__ import annotations

import logging
import secrets

from aegis.crypto.hashing import (
    DEFAULT_HASHER,
    SNARK_SCALAR_FIELD,
    UINT256_LIMIT,
    FieldHasher,
    event_hash,
)
from aegis.environment import HostEnvironment
from aegis.errors import ZeroDeposit
from aegis.models.events import Deposited
from aegis.models.identity import IdentityLike, to_identity

logger = logging.getLogger(__name__)


def new_secret() -> int:
    """Random non-zero deposit secret inside the scalar field."""
    return secrets.randbelow(SNARK_SCALAR_FIELD - 1) + 1


class DepositCommitment:
    """Escrow contract that commits deposits to public event hashes."""

    def __init__(
        self,
        env: HostEnvironment,
        contract_id: IdentityLike,
        hasher: FieldHasher = DEFAULT_HASHER,
    ) -> None:
        self._env = env
        self._contract_id = to_identity(contract_id)
        self._hasher = hasher

    @property
    def address(self) -> str:
        return self._contract_id

    def event_hash(
        self,
        depositor: IdentityLike,
        amount: int,
        destination_chain_id: int,
        secret: int,
    ) -> int:
        return event_hash(depositor, amount, destination_chain_id, secret, hasher=self._hasher)

    def deposit(
        self,
        caller: IdentityLike,
        destination_chain_id: int,
        secret: int,
        value: int,
    ) -> Deposited:
        """Lock ``value`` from ``caller`` and emit its event hash.

        Raises ZeroDeposit if no value is attached, ValueError if any
        argument does not fit a uint256, and InsufficientBalance if the
        caller cannot cover the value.
        """
        if value == 0:
            raise ZeroDeposit()
        for name, number in (
            ("value", value),
            ("destination_chain_id", destination_chain_id),
            ("secret", secret),
        ):
            if not 0 <= number < UINT256_LIMIT:
                raise ValueError(f"Deposit {name} must fit in uint256, got {number}")
        depositor = to_identity(caller)

        with self._env.atomic():
            self._env.ledger.move(depositor, self._contract_id, value)
            event = Deposited(
                depositor=depositor,
                value=value,
                destination_chain_id=destination_chain_id,
                event_hash=self.event_hash(depositor, value, destination_chain_id, secret),
            )
            self._env.emit(self._contract_id, event)

        logger.info(
            "Deposit of %d by %s for chain %d", value, depositor, destination_chain_id,
        )
        return event
