"""Aegis model: release authorized by a proof of a deposit secret.

The caller presents a proof and its public inputs [eventHash,
nullifierHash]. The contract only reads the nullifier slot itself; proof
validity is decided by the verification oracle bound at construction.

Replay protection: each nullifier releases at most once. The nullifier
is recorded before value moves, inside the same host operation, so a
failed transfer also undoes the record.

The released amount is whatever the caller asks for. Nothing in the
public inputs binds it to the deposited amount.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from aegis.crypto.hashing import parse_signal
from aegis.environment import HostEnvironment, release_value
from aegis.errors import InvalidProof, InvalidVerifierAddress, ProofAlreadyUsed, TransferFailed
from aegis.models.events import Released
from aegis.models.identity import IdentityLike, to_identity
from aegis.oracle import VerificationOracle
from aegis.persistence.registry import HashRegistry

logger = logging.getLogger(__name__)

PUBLIC_INPUT_COUNT = 2
NULLIFIER_SLOT = 1


class ProofAuthorizer:
    """Proof-gated release contract.

    Usage:
        aegis = ProofAuthorizer(env, contract_id, oracle)
        event = aegis.release(proof, [event_hash, nullifier_hash], recipient, amount)
    """

    def __init__(
        self,
        env: HostEnvironment,
        contract_id: IdentityLike,
        verifier: Optional[VerificationOracle],
        nullifiers: Optional[HashRegistry] = None,
    ) -> None:
        if verifier is None:
            raise InvalidVerifierAddress("a verification oracle is required")
        if not isinstance(verifier, VerificationOracle):
            raise TypeError(
                f"Verifier must implement VerificationOracle, got {type(verifier)}"
            )
        self._env = env
        self._contract_id = to_identity(contract_id)
        self._verifier = verifier
        self._nullifiers = nullifiers if nullifiers is not None else HashRegistry("nullifiers")
        env.enlist(self._nullifiers)

    @property
    def address(self) -> str:
        return self._contract_id

    @property
    def verifier(self) -> VerificationOracle:
        return self._verifier

    def is_nullifier_used(self, nullifier: int) -> bool:
        return nullifier in self._nullifiers

    def release(
        self,
        proof: Any,
        public_inputs: Sequence[int | str],
        recipient: IdentityLike,
        amount: int,
    ) -> Released:
        """Release ``amount`` to ``recipient`` against a proof.

        Raises ProofAlreadyUsed, InvalidProof, or TransferFailed.
        """
        if amount < 0:
            raise ValueError(f"Amount must be unsigned, got {amount}")
        recipient = to_identity(recipient)
        try:
            signals = [parse_signal(v) for v in public_inputs]
        except (TypeError, ValueError) as exc:
            raise InvalidProof(f"malformed public input: {exc}") from exc
        if len(signals) != PUBLIC_INPUT_COUNT:
            raise InvalidProof(
                f"expected {PUBLIC_INPUT_COUNT} public inputs, got {len(signals)}"
            )
        nullifier = signals[NULLIFIER_SLOT]
        if not 0 <= nullifier < 1 << 256:
            raise InvalidProof(f"nullifier out of range: {nullifier}")

        with self._env.atomic():
            if nullifier in self._nullifiers:
                raise ProofAlreadyUsed(f"nullifier {nullifier}")
            if not self._verifier.verify(proof, signals):
                raise InvalidProof()

            self._nullifiers.insert(nullifier)

            if not release_value(self._env, self._contract_id, recipient, amount):
                raise TransferFailed(f"transfer of {amount} to {recipient} failed")

            event = Released(recipient=recipient, amount=amount)
            self._env.emit(self._contract_id, event)

        logger.info("Released %d to %s (nullifier %d)", amount, recipient, nullifier)
        return event
