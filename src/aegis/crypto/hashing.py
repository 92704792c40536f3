"""Deterministic hashing shared by both authorization models.

Two families live here:

1. Commitment hashing for the baseline model. The commitment binds the
   executing contract's own address to the call, so signatures gathered
   for one deployment cannot be replayed against another:

       commitment = keccak256(abi.encodePacked(contract, target, value, payload))
       signed     = keccak256("\\x19Ethereum Signed Message:\\n32" || commitment)

   The prefix wrapper is the standard personal-sign envelope; any
   deviation changes the recovered signer and breaks wallet tooling.

2. Field hashing for the proof model. Event and nullifier hashes are
   elements of the BN254 scalar field so they can be public inputs of a
   Groth16 proof. Deposit-side hashing and the circuit must use the same
   FieldHasher instance.
"""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from web3 import Web3

from aegis.models.identity import IdentityLike, identity_value, to_identity

SIGNED_MESSAGE_PREFIX = "\x19Ethereum Signed Message:\n32"

# Order of the BN254 (alt_bn128) scalar field.
SNARK_SCALAR_FIELD = (
    21888242871839275222246405745257275088548364400416034343698204186575808495617
)

UINT256_LIMIT = 1 << 256


def to_field(value: int) -> int:
    """Reduce an unsigned integer into the scalar field.

    Circuit inputs are taken modulo the field order, so x and x + p hash
    alike. Negative values are rejected.
    """
    if value < 0:
        raise ValueError(f"Field input must be unsigned, got {value}")
    return value % SNARK_SCALAR_FIELD


def parse_signal(value: int | str) -> int:
    """Public signal as an int; strings may be decimal or 0x-prefixed hex."""
    if isinstance(value, str):
        return int(value.strip(), 0)
    return int(value)


def commitment_hash(
    contract_id: IdentityLike,
    target: IdentityLike,
    value: int,
    payload: bytes,
) -> bytes:
    """Digest of a call bound to the executing contract.

    Order-sensitive and byte-exact with Solidity's abi.encodePacked over
    (address, address, uint256, bytes).
    """
    if value < 0:
        raise ValueError(f"Value must be unsigned, got {value}")
    return bytes(
        Web3.solidity_keccak(
            ["address", "address", "uint256", "bytes"],
            [to_identity(contract_id), to_identity(target), value, bytes(payload)],
        )
    )


def signed_message_hash(commitment: bytes) -> bytes:
    """Wrap a 32-byte commitment in the personal-sign envelope."""
    if len(commitment) != 32:
        raise ValueError(f"Commitment must be 32 bytes, got {len(commitment)}")
    return bytes(
        Web3.solidity_keccak(
            ["string", "bytes32"], [SIGNED_MESSAGE_PREFIX, bytes(commitment)],
        )
    )


@runtime_checkable
class FieldHasher(Protocol):
    """Hash of a sequence of field elements into one field element.

    Any algebraic hash (Poseidon, MiMC) used by the proving circuit can be
    plugged in here; it then backs both the deposit contract and the
    circuit definition.
    """

    def hash(self, inputs: Sequence[int]) -> int:
        ...


class KeccakFieldHasher:
    """keccak256 over packed uint256 words, reduced into the scalar field.

    Inputs are reduced modulo the field order first, as circomlib hashes do.
    """

    def hash(self, inputs: Sequence[int]) -> int:
        if not inputs:
            raise ValueError("Field hash needs at least one input")
        words = [to_field(x) for x in inputs]
        digest = Web3.solidity_keccak(["uint256"] * len(words), words)
        return int.from_bytes(digest, "big") % SNARK_SCALAR_FIELD


DEFAULT_HASHER = KeccakFieldHasher()


def event_hash(
    depositor: IdentityLike,
    amount: int,
    destination_chain_id: int,
    secret: int,
    hasher: FieldHasher = DEFAULT_HASHER,
) -> int:
    """Public commitment to a deposit: H(depositor, amount, chain, secret)."""
    return hasher.hash([identity_value(depositor), amount, destination_chain_id, secret])


def nullifier_hash(secret: int, hasher: FieldHasher = DEFAULT_HASHER) -> int:
    """One-time replay tag derived from the deposit secret: H(secret)."""
    return hasher.hash([secret])
