"""Core data models for the Aegis bridge."""

from aegis.models.identity import ZERO_ADDRESS, identity_value, to_identity
from aegis.models.events import Authorized, BridgeEvent, Deposited, Released

__all__ = [
    "ZERO_ADDRESS",
    "identity_value",
    "to_identity",
    "Authorized",
    "BridgeEvent",
    "Deposited",
    "Released",
]
