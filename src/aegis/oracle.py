"""Verification oracles: the proof-checking capability of the proof model.

The proof authorizer never inspects a proof. It holds one
VerificationOracle, fixed at construction, and asks it a yes/no question:
is ``proof`` a valid proof of the Aegis circuit for these public inputs?

Adding a proof system = implement this Protocol. Zero changes to the
authorizer.

Two oracles ship here:

- ContractVerifierOracle calls a deployed snarkjs Groth16 verifier
  contract through web3. Proofs come from ``Groth16Proof.from_snarkjs``.
- AttestationOracle accepts statements signed by a designated
  CircuitAttestor, which only signs after checking the circuit
  constraints over the witness itself. It is a trusted stand-in for a
  succinct proof system in local runs and tests, and offers no
  zero-knowledge to the attester.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol, Sequence, runtime_checkable

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_keys.exceptions import BadSignature, ValidationError
from eth_utils import ValidationError as EthUtilsValidationError
from web3 import Web3

from aegis.circuit import AegisCircuit, PublicSignals, Witness
from aegis.crypto.hashing import SNARK_SCALAR_FIELD, parse_signal
from aegis.models.identity import IdentityLike, to_identity

logger = logging.getLogger(__name__)


@runtime_checkable
class VerificationOracle(Protocol):
    """Trusted proof-checking capability."""

    def verify(self, proof: Any, public_inputs: Sequence[int]) -> bool:
        """True iff ``proof`` proves the circuit for ``public_inputs``."""
        ...


def _field_signals(values: Sequence[int | str]) -> Optional[list[int]]:
    """The two public signals as field elements, or None if malformed."""
    try:
        signals = [parse_signal(v) for v in values]
    except (TypeError, ValueError):
        return None
    if len(signals) != 2 or not all(0 <= v < SNARK_SCALAR_FIELD for v in signals):
        return None
    return signals


# ------------------------------------------------------------------ #
# Groth16 (snarkjs) proofs checked by an on-chain verifier            #
# ------------------------------------------------------------------ #

@dataclass(frozen=True)
class Groth16Proof:
    """A Groth16 proof laid out as the Solidity verifier takes it."""
    a: tuple[int, int]
    b: tuple[tuple[int, int], tuple[int, int]]
    c: tuple[int, int]

    @classmethod
    def from_snarkjs(cls, proof: Mapping[str, Any]) -> Groth16Proof:
        """Convert snarkjs ``proof.json`` output.

        Drops the projective coordinate of each point and swaps the
        coordinate pairs of the G2 point ``pi_b``, which the verifier
        contract expects in reversed order.
        """
        pi_a, pi_b, pi_c = proof["pi_a"], proof["pi_b"], proof["pi_c"]
        return cls(
            a=(int(pi_a[0]), int(pi_a[1])),
            b=(
                (int(pi_b[0][1]), int(pi_b[0][0])),
                (int(pi_b[1][1]), int(pi_b[1][0])),
            ),
            c=(int(pi_c[0]), int(pi_c[1])),
        )

    def as_call_args(self) -> tuple[list[int], list[list[int]], list[int]]:
        return list(self.a), [list(self.b[0]), list(self.b[1])], list(self.c)


GROTH16_VERIFIER_ABI = [
    {
        "inputs": [
            {"internalType": "uint256[2]", "name": "_pA", "type": "uint256[2]"},
            {"internalType": "uint256[2][2]", "name": "_pB", "type": "uint256[2][2]"},
            {"internalType": "uint256[2]", "name": "_pC", "type": "uint256[2]"},
            {"internalType": "uint256[2]", "name": "_pubSignals", "type": "uint256[2]"},
        ],
        "name": "verifyProof",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function",
    }
]


class ContractVerifierOracle:
    """Delegates to a deployed snarkjs Groth16 verifier via ``eth_call``."""

    def __init__(self, w3: Any, verifier_address: IdentityLike) -> None:
        self._address = to_identity(verifier_address)
        self._contract = w3.eth.contract(address=self._address, abi=GROTH16_VERIFIER_ABI)

    @classmethod
    def from_rpc(cls, rpc_url: str, verifier_address: IdentityLike) -> ContractVerifierOracle:
        from web3 import HTTPProvider

        return cls(Web3(HTTPProvider(rpc_url)), verifier_address)

    @property
    def address(self) -> str:
        return self._address

    def verify(self, proof: Any, public_inputs: Sequence[int]) -> bool:
        if not isinstance(proof, Groth16Proof):
            return False
        signals = _field_signals(public_inputs)
        if signals is None:
            return False
        a, b, c = proof.as_call_args()
        return bool(self._contract.functions.verifyProof(a, b, c, signals).call())


# ------------------------------------------------------------------ #
# Attested statements (reference oracle)                              #
# ------------------------------------------------------------------ #

ATTESTATION_DOMAIN = "aegis.attestation.v1"


def attestation_digest(public_inputs: Sequence[int]) -> bytes:
    """Digest an attester signs for a pair of public signals."""
    event, nullifier = (int(v) for v in public_inputs)
    return bytes(
        Web3.solidity_keccak(
            ["string", "uint256", "uint256"], [ATTESTATION_DOMAIN, event, nullifier],
        )
    )


@dataclass(frozen=True)
class AttestedProof:
    """An attester's signature over the public signals."""
    signature: bytes


class CircuitAttestor:
    """Reference prover: checks the circuit, then signs the public signals.

    Usage:
        attestor = CircuitAttestor(private_key)
        proof, public_inputs = attestor.prove(witness)
        oracle = AttestationOracle(attestor.address)
        assert oracle.verify(proof, public_inputs)
    """

    def __init__(self, private_key: str | bytes, circuit: Optional[AegisCircuit] = None) -> None:
        self._account = Account.from_key(private_key)
        self._circuit = circuit or AegisCircuit()

    @property
    def address(self) -> str:
        return self._account.address

    @property
    def circuit(self) -> AegisCircuit:
        return self._circuit

    def prove(self, witness: Witness) -> tuple[AttestedProof, list[int]]:
        """Attest the public signals that ``witness`` produces."""
        public = self._circuit.public_signals(witness)
        return self.attest(witness, public), public.as_list()

    def attest(self, witness: Witness, public: PublicSignals) -> AttestedProof:
        """Sign ``public`` only if ``witness`` satisfies the circuit for it.

        Raises ValueError naming the violated constraints otherwise.
        """
        violated = self._circuit.check(witness, public)
        if violated:
            raise ValueError(f"Witness does not satisfy: {', '.join(violated)}")
        message = encode_defunct(primitive=attestation_digest(public.as_list()))
        signed = self._account.sign_message(message)
        return AttestedProof(signature=bytes(signed.signature))


class AttestationOracle:
    """Accepts proofs signed by one designated CircuitAttestor."""

    def __init__(self, attester: IdentityLike) -> None:
        self._attester = to_identity(attester)

    @property
    def attester(self) -> str:
        return self._attester

    def verify(self, proof: Any, public_inputs: Sequence[int]) -> bool:
        if not isinstance(proof, AttestedProof):
            return False
        signals = _field_signals(public_inputs)
        if signals is None:
            return False
        message = encode_defunct(primitive=attestation_digest(signals))
        try:
            signer = Account.recover_message(message, signature=proof.signature)
        except (BadSignature, ValidationError, EthUtilsValidationError, ValueError) as exc:
            logger.debug("Attestation recovery failed: %s", exc)
            return False
        return signer == self._attester
