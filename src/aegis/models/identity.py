"""Account identities.

An identity is a 20-byte account address, held in EIP-55 checksum form.
Identities are ordered by their unsigned integer value, so the zero
address is the minimal element and serves as the ordering sentinel.
"""

from __future__ import annotations

from typing import Union

from eth_utils import is_address, to_checksum_address

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

IdentityLike = Union[str, bytes, int]


def to_identity(value: IdentityLike) -> str:
    """Normalise an address given as hex, raw bytes, or integer.

    Raises ValueError for anything that is not a 20-byte address.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not an address: {value!r}")
    if isinstance(value, int):
        if value < 0 or value >= 1 << 160:
            raise ValueError(f"Address integer out of range: {value}")
        value = value.to_bytes(20, "big")
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 20:
            raise ValueError(f"Address must be 20 bytes, got {len(value)}")
        return to_checksum_address(bytes(value))
    if not is_address(value):
        raise ValueError(f"Not an address: {value!r}")
    return to_checksum_address(value)


def identity_value(identity: IdentityLike) -> int:
    """Unsigned integer value of an identity, used for ordering."""
    return int(to_identity(identity), 16)
