"""The two release authorizers: threshold signatures and knowledge proofs."""

from aegis.authorizers.proof import ProofAuthorizer
from aegis.authorizers.signature import SignatureAuthorizer

__all__ = ["ProofAuthorizer", "SignatureAuthorizer"]
