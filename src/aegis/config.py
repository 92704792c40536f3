"""Bridge configuration.

Deployment settings come from ``AEGIS_*`` environment variables, which
may be placed in a ``.env`` file:

    AEGIS_VALIDATORS=0xabc...,0xdef...,...   (exactly five)
    AEGIS_THRESHOLD=3
    AEGIS_BASELINE_ADDRESS=0x...
    AEGIS_RELEASE_ADDRESS=0x...
    AEGIS_DEPOSIT_ADDRESS=0x...
    AEGIS_STATE_DIR=./data
    AEGIS_RPC_URL=https://...
    AEGIS_VERIFIER_ADDRESS=0x...
    AEGIS_LOG_LEVEL=INFO

The same keys (lower-case, without prefix) can be given in a JSON file.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import load_dotenv
from web3 import Web3

from aegis.authorizers.signature import THRESHOLD, VALIDATOR_COUNT
from aegis.models.identity import to_identity


def _derived_address(label: str) -> str:
    """Stable placeholder address for a contract role."""
    return to_identity(bytes(Web3.keccak(text=label))[-20:])


DEFAULT_BASELINE_ADDRESS = _derived_address("aegis.baseline")
DEFAULT_RELEASE_ADDRESS = _derived_address("aegis.release")
DEFAULT_DEPOSIT_ADDRESS = _derived_address("aegis.deposit")


@dataclass(frozen=True)
class BridgeConfig:
    """Settings for one bridge deployment."""
    validators: tuple[str, ...] = ()
    threshold: int = THRESHOLD
    validator_count: int = VALIDATOR_COUNT
    baseline_address: str = DEFAULT_BASELINE_ADDRESS
    release_address: str = DEFAULT_RELEASE_ADDRESS
    deposit_address: str = DEFAULT_DEPOSIT_ADDRESS
    state_dir: Optional[Path] = None
    rpc_url: Optional[str] = None
    verifier_address: Optional[str] = None
    log_level: str = "INFO"
    extra: dict[str, Any] = field(default_factory=dict)

    def registry_path(self, name: str) -> Optional[Path]:
        """JSONL file backing a replay registry, or None for in-memory."""
        if self.state_dir is None:
            return None
        return self.state_dir / f"{name}.jsonl"

    def event_log_path(self) -> Optional[Path]:
        if self.state_dir is None:
            return None
        return self.state_dir / "events.jsonl"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> BridgeConfig:
        """Build from plain keys; unknown keys are kept in ``extra``."""
        known = {
            "validators", "threshold", "validator_count", "baseline_address",
            "release_address", "deposit_address", "state_dir", "rpc_url",
            "verifier_address", "log_level",
        }
        kwargs: dict[str, Any] = {}

        validators = data.get("validators")
        if validators:
            if isinstance(validators, str):
                validators = [v for v in validators.split(",") if v.strip()]
            kwargs["validators"] = tuple(to_identity(v.strip()) for v in validators)
        for key in ("threshold", "validator_count"):
            if data.get(key) not in (None, ""):
                kwargs[key] = int(data[key])
        for key in ("baseline_address", "release_address", "deposit_address", "verifier_address"):
            if data.get(key):
                kwargs[key] = to_identity(data[key])
        if data.get("state_dir"):
            kwargs["state_dir"] = Path(data["state_dir"])
        if data.get("rpc_url"):
            kwargs["rpc_url"] = str(data["rpc_url"])
        if data.get("log_level"):
            kwargs["log_level"] = str(data["log_level"]).upper()

        kwargs["extra"] = {k: v for k, v in data.items() if k not in known}
        return cls(**kwargs)

    @classmethod
    def from_json(cls, path: Path) -> BridgeConfig:
        return cls.from_mapping(json.loads(path.read_text(encoding="utf-8")))

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> BridgeConfig:
        """Read ``AEGIS_*`` variables, loading ``env_file`` first if given.

        Variables already set in the process environment take precedence
        over the file.
        """
        if env_file is not None:
            load_dotenv(env_file)
        prefix = "AEGIS_"
        data = {
            key[len(prefix):].lower(): value
            for key, value in os.environ.items()
            if key.startswith(prefix)
        }
        return cls.from_mapping(data)


def configure_logging(level: str = "INFO") -> None:
    """Console logging for processes hosting the bridge."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
