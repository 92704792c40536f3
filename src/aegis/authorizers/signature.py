"""Baseline model: release authorized by a threshold of validator signatures.

A fixed set of five validators signs the commitment of a call
(target, value, payload) bound to this contract's address. Any three
valid signatures execute the call once.

Signatures must be supplied sorted by recovered signer address,
strictly ascending. One linear pass then checks membership and rules
out counting the same validator twice, without a duplicate scan.

Replay protection: the signed commitment hash is inserted into the
executed registry before value moves. Insert, transfer, and event are
one host operation, so a failing transfer also undoes the insert.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from aegis.crypto import hashing
from aegis.crypto import signatures as ecdsa
from aegis.environment import HostEnvironment, release_value
from aegis.errors import (
    AlreadyExecuted,
    CallFailed,
    InsufficientSignatures,
    InvalidSigner,
    SignersNotAscending,
)
from aegis.models.events import Authorized
from aegis.models.identity import (
    ZERO_ADDRESS,
    IdentityLike,
    identity_value,
    to_identity,
)
from aegis.persistence.registry import HashRegistry

logger = logging.getLogger(__name__)

VALIDATOR_COUNT = 5
THRESHOLD = 3


class SignatureAuthorizer:
    """Threshold-signature release contract.

    Usage:
        baseline = SignatureAuthorizer(env, contract_id, validator_addresses)
        commitment = baseline.commitment_hash(target, value, b"")
        sigs = sorted-by-signer personal signatures over ``commitment``
        event = baseline.authorize(target, value, b"", sigs)
    """

    def __init__(
        self,
        env: HostEnvironment,
        contract_id: IdentityLike,
        validators: Iterable[IdentityLike],
        threshold: int = THRESHOLD,
        validator_count: int = VALIDATOR_COUNT,
        executed: Optional[HashRegistry] = None,
    ) -> None:
        members = tuple(to_identity(v) for v in validators)
        if len(members) != validator_count:
            raise ValueError(
                f"Expected exactly {validator_count} validators, got {len(members)}"
            )
        if ZERO_ADDRESS in members:
            raise ValueError("Zero address cannot be a validator")
        if len(set(members)) != len(members):
            raise ValueError("Duplicate validator")
        if not 0 < threshold <= validator_count:
            raise ValueError(
                f"Threshold must be in 1..{validator_count}, got {threshold}"
            )

        self._env = env
        self._contract_id = to_identity(contract_id)
        self._validators = members
        self._is_validator = frozenset(members)
        self._threshold = threshold
        self._executed = executed if executed is not None else HashRegistry("executed")
        env.enlist(self._executed)

    @property
    def address(self) -> str:
        return self._contract_id

    @property
    def validators(self) -> tuple[str, ...]:
        return self._validators

    @property
    def threshold(self) -> int:
        return self._threshold

    def commitment_hash(self, target: IdentityLike, value: int, payload: bytes) -> bytes:
        return hashing.commitment_hash(self._contract_id, target, value, payload)

    @staticmethod
    def signed_message_hash(commitment: bytes) -> bytes:
        return hashing.signed_message_hash(commitment)

    @staticmethod
    def recover_signer(signed_hash: bytes, signature: bytes) -> str:
        return ecdsa.recover_signer(signed_hash, signature)

    def is_validator(self, identity: IdentityLike) -> bool:
        try:
            return to_identity(identity) in self._is_validator
        except ValueError:
            return False

    def is_executed(self, signed_hash: bytes) -> bool:
        return signed_hash in self._executed

    def authorize(
        self,
        target: IdentityLike,
        value: int,
        payload: bytes,
        signatures: Sequence[bytes],
    ) -> Authorized:
        """Execute a call once enough validators have signed it.

        Raises, in order of checking: InsufficientSignatures,
        AlreadyExecuted, then per signature InvalidSignatureLength,
        InvalidSigner, SignersNotAscending; finally CallFailed if the
        value transfer does not go through.
        """
        target = to_identity(target)
        payload = bytes(payload)
        signed_hash = self.signed_message_hash(
            self.commitment_hash(target, value, payload)
        )

        with self._env.atomic():
            if len(signatures) < self._threshold:
                raise InsufficientSignatures(
                    f"got {len(signatures)}, need {self._threshold}"
                )
            if signed_hash in self._executed:
                raise AlreadyExecuted(f"commitment 0x{signed_hash.hex()}")

            last_signer = identity_value(ZERO_ADDRESS)
            for position, signature in enumerate(signatures):
                signer = self.recover_signer(signed_hash, signature)
                logger.debug("Signature %d recovered to %s", position, signer)
                if signer not in self._is_validator:
                    raise InvalidSigner(f"signature {position} recovered to {signer}")
                current = identity_value(signer)
                if current <= last_signer:
                    raise SignersNotAscending(
                        f"signature {position} signer {signer} is not above previous"
                    )
                last_signer = current

            self._executed.insert(signed_hash)

            if not release_value(self._env, self._contract_id, target, value, payload):
                raise CallFailed(f"transfer of {value} to {target} failed")

            event = Authorized(
                target=target, value=value, payload=payload, signed_hash=signed_hash,
            )
            self._env.emit(self._contract_id, event)

        logger.info(
            "Authorized %d to %s with %d signatures (0x%s)",
            value, target, len(signatures), signed_hash.hex(),
        )
        return event
