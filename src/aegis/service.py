"""Aegis service: one facade over both release models.

It wires configuration, the host environment, the baseline
threshold-signature contract, the source-side deposit contract, and the
proof-gated release contract, and reports every operation as a typed
ServiceResult. Named authorization failures become failed results; they
are never retried and never reported as success.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from aegis.authorizers.proof import ProofAuthorizer
from aegis.authorizers.signature import SignatureAuthorizer
from aegis.config import BridgeConfig
from aegis.crypto.hashing import DEFAULT_HASHER, FieldHasher, KeccakFieldHasher
from aegis.deposit import DepositCommitment
from aegis.environment import HostEnvironment
from aegis.errors import BridgeError, InvalidVerifierAddress
from aegis.models.identity import IdentityLike, to_identity
from aegis.oracle import ContractVerifierOracle, VerificationOracle
from aegis.persistence.event_log import EventLog
from aegis.persistence.registry import HashRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


class BridgeService:
    """Unified bridge facade.

    Usage:
        config = BridgeConfig.from_env(Path(".env"))
        service = BridgeService(config, oracle=AttestationOracle(attester))

        service.fund(config.baseline_address, 10 * ETHER)
        result = service.execute_transaction(target, value, b"", signatures)

        result = service.deposit(user, chain_id, secret, value)
        result = service.release_funds(proof, public_inputs, user, value)

    Without an explicit oracle, one is built from ``rpc_url`` and
    ``verifier_address`` when both are configured. With neither, the
    proof model stays disabled and releases fail with
    InvalidVerifierAddress.

    An on-chain verifier only accepts proofs of the circuit it was
    compiled from, so deposits must be hashed with that circuit's field
    hash (e.g. Poseidon). Pairing it with the keccak default raises
    ValueError.
    """

    def __init__(
        self,
        config: BridgeConfig,
        oracle: Optional[VerificationOracle] = None,
        hasher: FieldHasher = DEFAULT_HASHER,
        env: Optional[HostEnvironment] = None,
    ) -> None:
        on_chain = config.rpc_url and config.verifier_address
        if (
            isinstance(oracle, ContractVerifierOracle) or (oracle is None and on_chain)
        ) and isinstance(hasher, KeccakFieldHasher):
            raise ValueError(
                "An on-chain verifier needs the hasher its circuit was compiled "
                "with; pass hasher= explicitly"
            )

        self._config = config
        self._env = env or HostEnvironment(EventLog(storage_path=config.event_log_path()))

        self._baseline = SignatureAuthorizer(
            self._env,
            config.baseline_address,
            config.validators,
            threshold=config.threshold,
            validator_count=config.validator_count,
            executed=HashRegistry("executed", config.registry_path("executed")),
        )
        self._deposits = DepositCommitment(self._env, config.deposit_address, hasher=hasher)

        if oracle is None and on_chain:
            oracle = ContractVerifierOracle.from_rpc(config.rpc_url, config.verifier_address)
        self._aegis: Optional[ProofAuthorizer] = None
        try:
            self._aegis = ProofAuthorizer(
                self._env,
                config.release_address,
                oracle,
                nullifiers=HashRegistry("nullifiers", config.registry_path("nullifiers")),
            )
        except InvalidVerifierAddress:
            logger.warning("No verification oracle configured; proof releases disabled")

    @property
    def environment(self) -> HostEnvironment:
        return self._env

    @property
    def baseline(self) -> SignatureAuthorizer:
        return self._baseline

    @property
    def deposits(self) -> DepositCommitment:
        return self._deposits

    @property
    def aegis(self) -> Optional[ProofAuthorizer]:
        return self._aegis

    def balance_of(self, account: IdentityLike) -> int:
        return self._env.balance_of(account)

    def fund(self, account: IdentityLike, amount: int) -> ServiceResult:
        """Top up an account, typically a release pool."""
        try:
            self._env.fund(account, amount)
        except ValueError as exc:
            return ServiceResult(success=False, errors=[str(exc)])
        return ServiceResult(
            success=True,
            data={"account": to_identity(account), "balance": self.balance_of(account)},
        )

    def execute_transaction(
        self,
        target: IdentityLike,
        value: int,
        payload: bytes,
        signatures: Sequence[bytes],
    ) -> ServiceResult:
        """Baseline model: execute a validator-signed call."""
        try:
            event = self._baseline.authorize(target, value, payload, signatures)
        except BridgeError as exc:
            return self._rejected("execute_transaction", exc)
        return ServiceResult(
            success=True,
            data={
                "target": event.target,
                "value": event.value,
                "signed_hash": "0x" + event.signed_hash.hex(),
            },
        )

    def deposit(
        self,
        caller: IdentityLike,
        destination_chain_id: int,
        secret: int,
        value: int,
    ) -> ServiceResult:
        """Proof model, source side: lock value under an event hash."""
        try:
            event = self._deposits.deposit(caller, destination_chain_id, secret, value)
        except BridgeError as exc:
            return self._rejected("deposit", exc)
        except ValueError as exc:
            logger.warning("deposit rejected: %s", exc)
            return ServiceResult(success=False, errors=[str(exc)])
        return ServiceResult(
            success=True,
            data={
                "depositor": event.depositor,
                "value": event.value,
                "destination_chain_id": event.destination_chain_id,
                "event_hash": event.event_hash,
            },
        )

    def release_funds(
        self,
        proof: Any,
        public_inputs: Sequence[int],
        recipient: IdentityLike,
        amount: int,
    ) -> ServiceResult:
        """Proof model, destination side: release against a proof."""
        if self._aegis is None:
            return self._rejected(
                "release_funds", InvalidVerifierAddress("no verification oracle configured"),
            )
        try:
            event = self._aegis.release(proof, public_inputs, recipient, amount)
        except BridgeError as exc:
            return self._rejected("release_funds", exc)
        return ServiceResult(
            success=True,
            data={"recipient": event.recipient, "amount": event.amount},
        )

    def status(self) -> dict[str, Any]:
        """Snapshot of balances, registry sizes, and event counts."""
        aegis = self._aegis
        return {
            "baseline": {
                "address": self._baseline.address,
                "validators": list(self._baseline.validators),
                "threshold": self._baseline.threshold,
                "balance": self.balance_of(self._baseline.address),
            },
            "deposit": {
                "address": self._deposits.address,
                "balance": self.balance_of(self._deposits.address),
            },
            "aegis": None if aegis is None else {
                "address": aegis.address,
                "balance": self.balance_of(aegis.address),
            },
            "events": self._env.event_log.count,
        }

    @staticmethod
    def _rejected(operation: str, exc: BridgeError) -> ServiceResult:
        logger.warning("%s rejected: %s", operation, exc)
        return ServiceResult(
            success=False,
            errors=[str(exc)],
            data={"error_kind": exc.kind.value},
        )
