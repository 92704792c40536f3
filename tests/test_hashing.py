"""Tests for commitment and field hashing."""

import pytest
from eth_account import Account
from web3 import Web3

from aegis.crypto.hashing import (
    SNARK_SCALAR_FIELD,
    FieldHasher,
    KeccakFieldHasher,
    commitment_hash,
    event_hash,
    nullifier_hash,
    parse_signal,
    signed_message_hash,
)
from aegis.crypto.signatures import recover_signer, sign_commitment

CONTRACT = "0x" + "11" * 20
OTHER_CONTRACT = "0x" + "22" * 20
TARGET = "0x" + "33" * 20
ONE_ETHER = 10**18


class TestCommitmentHash:
    def test_deterministic(self) -> None:
        assert commitment_hash(CONTRACT, TARGET, ONE_ETHER, b"") == commitment_hash(
            CONTRACT, TARGET, ONE_ETHER, b""
        )

    def test_matches_packed_encoding(self) -> None:
        packed = (
            bytes.fromhex(CONTRACT[2:])
            + bytes.fromhex(TARGET[2:])
            + ONE_ETHER.to_bytes(32, "big")
            + b"\xca\xfe"
        )
        assert commitment_hash(CONTRACT, TARGET, ONE_ETHER, b"\xca\xfe") == bytes(
            Web3.keccak(packed)
        )

    def test_is_32_bytes(self) -> None:
        assert len(commitment_hash(CONTRACT, TARGET, 0, b"")) == 32

    @pytest.mark.parametrize(
        "changed",
        [
            (CONTRACT, "0x" + "44" * 20, ONE_ETHER, b""),
            (CONTRACT, TARGET, ONE_ETHER + 1, b""),
            (CONTRACT, TARGET, ONE_ETHER, b"\x00"),
        ],
    )
    def test_any_parameter_change_changes_hash(self, changed) -> None:
        base = commitment_hash(CONTRACT, TARGET, ONE_ETHER, b"")
        assert commitment_hash(*changed) != base

    def test_bound_to_contract(self) -> None:
        h1 = signed_message_hash(commitment_hash(CONTRACT, TARGET, ONE_ETHER, b""))
        h2 = signed_message_hash(commitment_hash(OTHER_CONTRACT, TARGET, ONE_ETHER, b""))
        assert h1 != h2

    def test_order_sensitive(self) -> None:
        assert commitment_hash(CONTRACT, TARGET, 1, b"") != commitment_hash(
            TARGET, CONTRACT, 1, b""
        )

    def test_accepts_lowercase_addresses(self) -> None:
        assert commitment_hash(CONTRACT.lower(), TARGET.lower(), 5, b"") == commitment_hash(
            Web3.to_checksum_address(CONTRACT), Web3.to_checksum_address(TARGET), 5, b""
        )

    def test_rejects_negative_value(self) -> None:
        with pytest.raises(ValueError, match="unsigned"):
            commitment_hash(CONTRACT, TARGET, -1, b"")


class TestSignedMessageHash:
    def test_matches_personal_sign_envelope(self) -> None:
        commitment = commitment_hash(CONTRACT, TARGET, ONE_ETHER, b"")
        expected = Web3.keccak(b"\x19Ethereum Signed Message:\n32" + commitment)
        assert signed_message_hash(commitment) == bytes(expected)

    def test_wallet_signature_recovers_against_it(self) -> None:
        account = Account.from_key("0x" + "07" * 32)
        commitment = commitment_hash(CONTRACT, TARGET, ONE_ETHER, b"")
        signature = sign_commitment(account.key, commitment)
        assert recover_signer(signed_message_hash(commitment), signature) == account.address

    def test_differs_from_raw_commitment(self) -> None:
        commitment = commitment_hash(CONTRACT, TARGET, ONE_ETHER, b"")
        assert signed_message_hash(commitment) != commitment

    def test_rejects_wrong_length(self) -> None:
        with pytest.raises(ValueError, match="32 bytes"):
            signed_message_hash(b"\x00" * 31)


class TestFieldHash:
    def test_result_in_field(self) -> None:
        hasher = KeccakFieldHasher()
        assert 0 <= hasher.hash([1, 2, 3, 4]) < SNARK_SCALAR_FIELD

    def test_satisfies_protocol(self) -> None:
        assert isinstance(KeccakFieldHasher(), FieldHasher)

    def test_arity_matters(self) -> None:
        hasher = KeccakFieldHasher()
        assert hasher.hash([7]) != hasher.hash([7, 0])

    def test_inputs_reduced_modulo_field(self) -> None:
        hasher = KeccakFieldHasher()
        assert hasher.hash([SNARK_SCALAR_FIELD + 5]) == hasher.hash([5])
        assert hasher.hash([2**256 - 1]) == hasher.hash([(2**256 - 1) % SNARK_SCALAR_FIELD])

    def test_rejects_negative_input(self) -> None:
        with pytest.raises(ValueError, match="unsigned"):
            KeccakFieldHasher().hash([-1])

    def test_large_secret_event_and_nullifier(self) -> None:
        secret = 2**256 - 1
        reduced = secret % SNARK_SCALAR_FIELD
        depositor = "0x" + "ab" * 20
        assert event_hash(depositor, 10, 1, secret) == event_hash(depositor, 10, 1, reduced)
        assert nullifier_hash(secret) == nullifier_hash(reduced)

    def test_rejects_empty(self) -> None:
        with pytest.raises(ValueError):
            KeccakFieldHasher().hash([])

    def test_event_hash_uses_depositor_value(self) -> None:
        depositor = "0x" + "ab" * 20
        assert event_hash(depositor, 10, 1, 99) == KeccakFieldHasher().hash(
            [int(depositor, 16), 10, 1, 99]
        )

    def test_nullifier_independent_of_deposit(self) -> None:
        assert nullifier_hash(99) == KeccakFieldHasher().hash([99])
        assert nullifier_hash(99) != event_hash("0x" + "ab" * 20, 10, 1, 99)

    def test_custom_hasher_is_used(self) -> None:
        class SumHasher:
            def hash(self, inputs):
                return sum(inputs) % SNARK_SCALAR_FIELD

        assert nullifier_hash(5, hasher=SumHasher()) == 5
        assert event_hash(0, 1, 2, 3, hasher=SumHasher()) == 6


class TestParseSignal:
    def test_accepts_ints_decimal_and_hex(self) -> None:
        assert parse_signal(42) == 42
        assert parse_signal("42") == 42
        assert parse_signal("0x2a") == 42

    def test_rejects_garbage(self) -> None:
        with pytest.raises(ValueError):
            parse_signal("forty-two")
