"""Cryptographic primitives: commitment hashing, field hashing, signature recovery."""

from aegis.crypto.hashing import (
    SNARK_SCALAR_FIELD,
    FieldHasher,
    KeccakFieldHasher,
    commitment_hash,
    signed_message_hash,
)
from aegis.crypto.signatures import recover_signer, sign_commitment, split_signature

__all__ = [
    "SNARK_SCALAR_FIELD",
    "FieldHasher",
    "KeccakFieldHasher",
    "commitment_hash",
    "signed_message_hash",
    "recover_signer",
    "sign_commitment",
    "split_signature",
]
