"""Signature recovery for validator-signed commitments.

A signature is the 65-byte concatenation r(32) || s(32) || v(1). Recovery
behaves like the EVM ecrecover precompile: a malformed or unrecoverable
signature yields the zero address instead of an error, and it is the
caller's validator-membership check that rejects it. Only a wrong length
is reported as an error, since the components cannot even be split.
"""

from __future__ import annotations

import logging

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError
from eth_utils import ValidationError as EthUtilsValidationError

from aegis.errors import InvalidSignatureLength
from aegis.models.identity import ZERO_ADDRESS

logger = logging.getLogger(__name__)

SIGNATURE_LENGTH = 65


def split_signature(signature: bytes) -> tuple[int, int, int]:
    """Split a 65-byte signature into (r, s, v)."""
    if len(signature) != SIGNATURE_LENGTH:
        raise InvalidSignatureLength(
            f"signature is {len(signature)} bytes, expected {SIGNATURE_LENGTH}"
        )
    r = int.from_bytes(signature[0:32], "big")
    s = int.from_bytes(signature[32:64], "big")
    v = signature[64]
    return r, s, v


def recover_signer(signed_hash: bytes, signature: bytes) -> str:
    """Recover the signing identity of ``signed_hash``.

    Raises InvalidSignatureLength if the signature is not 65 bytes.
    Returns ZERO_ADDRESS when no key can be recovered.
    """
    r, s, v = split_signature(bytes(signature))
    if v < 27:
        v += 27
    if v not in (27, 28):
        return ZERO_ADDRESS
    try:
        sig = keys.Signature(vrs=(v - 27, r, s))
        public_key = sig.recover_public_key_from_msg_hash(bytes(signed_hash))
    except (BadSignature, ValidationError, EthUtilsValidationError) as exc:
        logger.debug("Signature recovery failed: %s", exc)
        return ZERO_ADDRESS
    return public_key.to_checksum_address()


def sign_commitment(private_key: str | bytes, commitment: bytes) -> bytes:
    """Personal-sign a 32-byte commitment hash.

    This is what wallet tooling produces for ``signMessage(commitment)``;
    the signature recovers against ``signed_message_hash(commitment)``.
    """
    message = encode_defunct(primitive=bytes(commitment))
    signed = Account.sign_message(message, private_key=private_key)
    return bytes(signed.signature)
