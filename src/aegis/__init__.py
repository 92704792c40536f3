"""Aegis: bridge release authorization: threshold signatures vs. knowledge proofs."""

__version__ = "0.1.0"
