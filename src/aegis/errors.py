"""Structured authorization failures.

Each error names exactly one violated precondition. Every failure aborts
the whole operation: the host environment rolls back any registry insert
or balance movement made before the failure was raised.
"""

from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    """Named outcome of a rejected operation."""
    INSUFFICIENT_SIGNATURES = "InsufficientSignatures"
    ALREADY_EXECUTED = "AlreadyExecuted"
    INVALID_SIGNER = "InvalidSigner"
    SIGNERS_NOT_ASCENDING = "SignersNotAscending"
    INVALID_SIGNATURE_LENGTH = "InvalidSignatureLength"
    CALL_FAILED = "CallFailed"
    ZERO_DEPOSIT = "ZeroDeposit"
    INVALID_VERIFIER_ADDRESS = "InvalidVerifierAddress"
    PROOF_ALREADY_USED = "ProofAlreadyUsed"
    INVALID_PROOF = "InvalidProof"
    TRANSFER_FAILED = "TransferFailed"


class BridgeError(Exception):
    """Base class for named authorization failures."""

    kind: ErrorKind

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.kind.value)
        self.message = message or self.kind.value

    def __str__(self) -> str:
        if self.message == self.kind.value:
            return self.kind.value
        return f"{self.kind.value}: {self.message}"


class InsufficientSignatures(BridgeError):
    kind = ErrorKind.INSUFFICIENT_SIGNATURES


class AlreadyExecuted(BridgeError):
    kind = ErrorKind.ALREADY_EXECUTED


class InvalidSigner(BridgeError):
    kind = ErrorKind.INVALID_SIGNER


class SignersNotAscending(BridgeError):
    kind = ErrorKind.SIGNERS_NOT_ASCENDING


class InvalidSignatureLength(BridgeError):
    kind = ErrorKind.INVALID_SIGNATURE_LENGTH


class CallFailed(BridgeError):
    kind = ErrorKind.CALL_FAILED


class ZeroDeposit(BridgeError):
    kind = ErrorKind.ZERO_DEPOSIT


class InvalidVerifierAddress(BridgeError):
    kind = ErrorKind.INVALID_VERIFIER_ADDRESS


class ProofAlreadyUsed(BridgeError):
    kind = ErrorKind.PROOF_ALREADY_USED


class InvalidProof(BridgeError):
    kind = ErrorKind.INVALID_PROOF


class TransferFailed(BridgeError):
    kind = ErrorKind.TRANSFER_FAILED


class InsufficientBalance(ValueError):
    """Host-level failure: an account cannot cover a value movement."""
