"""Tests for verification oracles and proof formats."""

import pytest
from eth_account import Account

from aegis.circuit import AegisCircuit, PublicSignals, Witness
from aegis.crypto.hashing import SNARK_SCALAR_FIELD
from aegis.oracle import (
    AttestationOracle,
    AttestedProof,
    CircuitAttestor,
    ContractVerifierOracle,
    Groth16Proof,
    VerificationOracle,
)

ATTESTER_KEY = "0x" + "a7" * 32
OTHER_KEY = "0x" + "a8" * 32


def _witness() -> Witness:
    return Witness(
        depositor="0x" + "5e" * 20, amount=10**18, destination_chain_id=1, secret=123456789,
    )


SNARKJS_PROOF = {
    "pi_a": ["1", "2", "1"],
    "pi_b": [["3", "4"], ["5", "6"], ["1", "0"]],
    "pi_c": ["7", "8", "1"],
    "protocol": "groth16",
    "curve": "bn128",
}


class _FakeW3:
    """Just enough of web3 for a contract call."""

    def __init__(self, result: bool) -> None:
        self.calls = []
        self.contract_address = None
        outer = self

        class _Call:
            def __init__(self, args):
                self._args = args

            def call(self):
                outer.calls.append(self._args)
                return result

        class _Functions:
            def verifyProof(self, a, b, c, signals):
                return _Call((a, b, c, signals))

        class _Contract:
            functions = _Functions()

        class _Eth:
            def contract(self, address, abi):
                outer.contract_address = address
                return _Contract()

        self.eth = _Eth()


class TestProtocol:
    def test_oracles_satisfy_protocol(self) -> None:
        assert isinstance(AttestationOracle(Account.from_key(ATTESTER_KEY).address), VerificationOracle)
        assert isinstance(ContractVerifierOracle(_FakeW3(True), "0x" + "99" * 20), VerificationOracle)

    def test_plain_object_does_not(self) -> None:
        assert not isinstance(object(), VerificationOracle)


class TestAttestation:
    def test_valid_attestation(self) -> None:
        attestor = CircuitAttestor(ATTESTER_KEY)
        proof, public = attestor.prove(_witness())
        oracle = AttestationOracle(attestor.address)
        assert oracle.verify(proof, public)

    def test_other_attester_rejected(self) -> None:
        proof, public = CircuitAttestor(OTHER_KEY).prove(_witness())
        oracle = AttestationOracle(Account.from_key(ATTESTER_KEY).address)
        assert not oracle.verify(proof, public)

    def test_tampered_public_inputs_rejected(self) -> None:
        attestor = CircuitAttestor(ATTESTER_KEY)
        proof, public = attestor.prove(_witness())
        oracle = AttestationOracle(attestor.address)
        assert not oracle.verify(proof, [public[0], public[1] + 1])
        assert not oracle.verify(proof, [public[1], public[0]])

    def test_wrong_shape_rejected(self) -> None:
        attestor = CircuitAttestor(ATTESTER_KEY)
        proof, public = attestor.prove(_witness())
        oracle = AttestationOracle(attestor.address)
        assert not oracle.verify(proof, public[:1])
        assert not oracle.verify(proof, [public[0], SNARK_SCALAR_FIELD])
        assert not oracle.verify(Groth16Proof.from_snarkjs(SNARKJS_PROOF), public)

    def test_hex_string_inputs(self) -> None:
        attestor = CircuitAttestor(ATTESTER_KEY)
        proof, public = attestor.prove(_witness())
        oracle = AttestationOracle(attestor.address)
        assert oracle.verify(proof, [hex(v) for v in public])
        assert not oracle.verify(proof, ["0xzz", public[1]])

    def test_secret_above_field_order(self) -> None:
        attestor = CircuitAttestor(ATTESTER_KEY)
        witness = Witness(
            depositor="0x" + "5e" * 20, amount=10**18, destination_chain_id=1, secret=2**256 - 1,
        )
        proof, public = attestor.prove(witness)
        assert AttestationOracle(attestor.address).verify(proof, public)

    def test_attestor_refuses_unsatisfied_statement(self) -> None:
        attestor = CircuitAttestor(ATTESTER_KEY)
        wrong = PublicSignals(event_hash=1, nullifier_hash=2)
        with pytest.raises(ValueError, match="event_hash"):
            attestor.attest(_witness(), wrong)

    def test_attestor_uses_its_circuit(self) -> None:
        circuit = AegisCircuit()
        attestor = CircuitAttestor(ATTESTER_KEY, circuit=circuit)
        assert attestor.circuit is circuit
        _, public = attestor.prove(_witness())
        assert public == circuit.public_signals(_witness()).as_list()


class TestGroth16Proof:
    def test_from_snarkjs_swaps_g2_coordinates(self) -> None:
        proof = Groth16Proof.from_snarkjs(SNARKJS_PROOF)
        assert proof.a == (1, 2)
        assert proof.b == ((4, 3), (6, 5))
        assert proof.c == (7, 8)

    def test_call_args(self) -> None:
        a, b, c = Groth16Proof.from_snarkjs(SNARKJS_PROOF).as_call_args()
        assert a == [1, 2]
        assert b == [[4, 3], [6, 5]]
        assert c == [7, 8]


class TestContractVerifierOracle:
    def test_forwards_to_verifier_contract(self) -> None:
        w3 = _FakeW3(True)
        oracle = ContractVerifierOracle(w3, "0x" + "99" * 20)
        proof = Groth16Proof.from_snarkjs(SNARKJS_PROOF)
        assert oracle.verify(proof, ["11", "22"])
        assert w3.calls == [([1, 2], [[4, 3], [6, 5]], [7, 8], [11, 22])]
        assert w3.contract_address == oracle.address

    def test_reports_contract_rejection(self) -> None:
        oracle = ContractVerifierOracle(_FakeW3(False), "0x" + "99" * 20)
        assert not oracle.verify(Groth16Proof.from_snarkjs(SNARKJS_PROOF), [11, 22])

    def test_malformed_input_never_reaches_contract(self) -> None:
        w3 = _FakeW3(True)
        oracle = ContractVerifierOracle(w3, "0x" + "99" * 20)
        assert not oracle.verify(AttestedProof(signature=b""), [11, 22])
        assert not oracle.verify(Groth16Proof.from_snarkjs(SNARKJS_PROOF), [11])
        assert not oracle.verify(Groth16Proof.from_snarkjs(SNARKJS_PROOF), [11, SNARK_SCALAR_FIELD])
        assert w3.calls == []
