"""Tests for signature splitting and signer recovery."""

import pytest
from eth_account import Account

from aegis.crypto.hashing import commitment_hash, signed_message_hash
from aegis.crypto.signatures import (
    SIGNATURE_LENGTH,
    recover_signer,
    sign_commitment,
    split_signature,
)
from aegis.errors import ErrorKind, InvalidSignatureLength
from aegis.models.identity import ZERO_ADDRESS

SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


def _signed(key: str = "0x" + "01" * 32):
    account = Account.from_key(key)
    commitment = commitment_hash("0x" + "aa" * 20, "0x" + "bb" * 20, 1000, b"")
    return account, signed_message_hash(commitment), sign_commitment(account.key, commitment)


class TestSplitSignature:
    def test_components(self) -> None:
        sig = bytes(range(32)) + bytes(range(32, 64)) + bytes([28])
        r, s, v = split_signature(sig)
        assert r == int.from_bytes(bytes(range(32)), "big")
        assert s == int.from_bytes(bytes(range(32, 64)), "big")
        assert v == 28

    @pytest.mark.parametrize("length", [0, 64, 66, 130])
    def test_wrong_length(self, length: int) -> None:
        with pytest.raises(InvalidSignatureLength) as info:
            split_signature(b"\x01" * length)
        assert info.value.kind == ErrorKind.INVALID_SIGNATURE_LENGTH


class TestRecoverSigner:
    def test_recovers_signer(self) -> None:
        account, signed_hash, sig = _signed()
        assert len(sig) == SIGNATURE_LENGTH
        assert recover_signer(signed_hash, sig) == account.address

    def test_zero_one_v_normalised(self) -> None:
        account, signed_hash, sig = _signed()
        low_v = sig[:64] + bytes([sig[64] - 27])
        assert recover_signer(signed_hash, low_v) == account.address

    def test_other_digest_gives_other_identity(self) -> None:
        account, _, sig = _signed()
        other = signed_message_hash(b"\x05" * 32)
        assert recover_signer(other, sig) != account.address

    def test_invalid_v_gives_zero_address(self) -> None:
        _, signed_hash, sig = _signed()
        assert recover_signer(signed_hash, sig[:64] + bytes([30])) == ZERO_ADDRESS

    def test_out_of_range_r_gives_zero_address(self) -> None:
        _, signed_hash, sig = _signed()
        bad = SECP256K1_N.to_bytes(32, "big") + sig[32:]
        assert recover_signer(signed_hash, bad) == ZERO_ADDRESS

    def test_wrong_length_raises(self) -> None:
        _, signed_hash, sig = _signed()
        with pytest.raises(InvalidSignatureLength):
            recover_signer(signed_hash, sig[:64])
