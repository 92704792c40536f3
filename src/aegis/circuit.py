"""Proof-validity circuit: the statement an Aegis proof attests to.

The circuit is declarative: a list of named constraints over a private
witness and two public signals.

    private: depositor, amount, destinationChainId, secret
    public:  eventHash, nullifierHash

    A: eventHash     == H(depositor, amount, destinationChainId, secret)
    B: nullifierHash == H(secret)

A proof system compiles these constraints; a verification oracle then
checks proofs of satisfiability without seeing the witness. ``H`` is
the FieldHasher given at construction. It must be the same hasher the
deposit contract uses, otherwise honest deposits become unprovable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence

from aegis.crypto.hashing import (
    DEFAULT_HASHER,
    SNARK_SCALAR_FIELD,
    UINT256_LIMIT,
    FieldHasher,
    event_hash,
    nullifier_hash,
    parse_signal,
    to_field,
)
from aegis.models.identity import identity_value


@dataclass(frozen=True)
class Witness:
    """Private inputs known only to the prover."""
    depositor: str
    amount: int
    destination_chain_id: int
    secret: int

    def as_uint256(self) -> tuple[int, int, int, int]:
        return (
            identity_value(self.depositor),
            self.amount,
            self.destination_chain_id,
            self.secret,
        )

    def as_field_elements(self) -> tuple[int, int, int, int]:
        """Witness values as the circuit sees them, reduced into the field."""
        return tuple(to_field(v) for v in self.as_uint256())


@dataclass(frozen=True)
class PublicSignals:
    """Public inputs, in the order the verifier expects them."""
    event_hash: int
    nullifier_hash: int

    def as_list(self) -> list[int]:
        return [self.event_hash, self.nullifier_hash]

    @classmethod
    def from_list(cls, values: Sequence[int | str]) -> PublicSignals:
        """Parse [eventHash, nullifierHash] (ints, decimal or hex strings)."""
        if len(values) != 2:
            raise ValueError(f"Expected 2 public signals, got {len(values)}")
        return cls(
            event_hash=parse_signal(values[0]), nullifier_hash=parse_signal(values[1]),
        )


@dataclass(frozen=True)
class Constraint:
    name: str
    description: str
    holds: Callable[[Witness, PublicSignals], bool]


class AegisCircuit:
    """The deposit/nullifier binding circuit.

    Usage:
        circuit = AegisCircuit()
        public = circuit.public_signals(witness)
        assert circuit.is_satisfied(witness, public)
        input_json = circuit.prover_input(witness)
    """

    PRIVATE_SIGNALS = ("depositor", "amount", "destinationChainId", "secret")
    PUBLIC_SIGNALS = ("eventHash", "nullifierHash")

    def __init__(self, hasher: FieldHasher = DEFAULT_HASHER) -> None:
        self._hasher = hasher
        self._constraints = (
            Constraint(
                name="event_hash",
                description="eventHash == H(depositor, amount, destinationChainId, secret)",
                holds=lambda w, p: p.event_hash == event_hash(
                    w.depositor, w.amount, w.destination_chain_id, w.secret,
                    hasher=self._hasher,
                ),
            ),
            Constraint(
                name="nullifier_hash",
                description="nullifierHash == H(secret)",
                holds=lambda w, p: p.nullifier_hash == nullifier_hash(
                    w.secret, hasher=self._hasher,
                ),
            ),
        )

    @property
    def hasher(self) -> FieldHasher:
        return self._hasher

    def constraints(self) -> tuple[Constraint, ...]:
        return self._constraints

    def check(self, witness: Witness, public: PublicSignals) -> list[str]:
        """Names of violated constraints; empty when satisfied.

        Witness values are uint256 and enter the circuit reduced modulo
        the field order. Public signals must already be field elements.
        Anything else cannot be assigned and is reported as ``field_range``.
        """
        if any(v < 0 or v >= UINT256_LIMIT for v in witness.as_uint256()):
            return ["field_range"]
        if any(v < 0 or v >= SNARK_SCALAR_FIELD for v in public.as_list()):
            return ["field_range"]
        return [c.name for c in self._constraints if not c.holds(witness, public)]

    def is_satisfied(self, witness: Witness, public: PublicSignals) -> bool:
        return not self.check(witness, public)

    def public_signals(self, witness: Witness) -> PublicSignals:
        """The only public signals this witness satisfies."""
        return PublicSignals(
            event_hash=event_hash(
                witness.depositor, witness.amount, witness.destination_chain_id,
                witness.secret, hasher=self._hasher,
            ),
            nullifier_hash=nullifier_hash(witness.secret, hasher=self._hasher),
        )

    def prover_input(self, witness: Witness) -> dict[str, str]:
        """Input file for the off-core proving toolchain (decimal strings)."""
        public = self.public_signals(witness)
        depositor, amount, chain_id, secret = witness.as_field_elements()
        return {
            "depositor": str(depositor),
            "amount": str(amount),
            "destinationChainId": str(chain_id),
            "secret": str(secret),
            "eventHash": str(public.event_hash),
            "nullifierHash": str(public.nullifier_hash),
        }
