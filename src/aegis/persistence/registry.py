"""Replay registries: append-only sets of 256-bit values.

Both authorization models keep one of these: the baseline model records
every signed commitment hash it has executed, the proof model records
every nullifier hash it has consumed. An entry, once committed, is
permanent. Registries start empty and only grow.

Inserts are staged in memory until the enclosing host operation commits.
A rolled-back operation discards its staged inserts, so the file on disk
only ever holds values whose whole operation succeeded.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterator, Optional, Union

logger = logging.getLogger(__name__)

Hash256 = Union[int, bytes]

_MAX_256 = (1 << 256) - 1


def _as_int(value: Hash256) -> int:
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 32:
            raise ValueError(f"Registry values are 32 bytes, got {len(value)}")
        return int.from_bytes(value, "big")
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"Registry values are int or bytes, got {type(value)}")
    if value < 0 or value > _MAX_256:
        raise ValueError(f"Registry value out of 256-bit range: {value}")
    return value


class HashRegistry:
    """Append-only set of 256-bit values with optional JSONL persistence.

    Usage:
        executed = HashRegistry("executed", storage_path=state / "executed.jsonl")
        if signed_hash in executed:
            ...
        executed.insert(signed_hash)

    Transactional protocol (driven by HostEnvironment):
        token = executed.checkpoint()
        ...
        executed.rollback(token)   # or executed.commit()
    """

    def __init__(self, name: str, storage_path: Optional[Path] = None) -> None:
        self._name = name
        self._storage_path = storage_path
        self._values: set[int] = set()
        self._order: list[int] = []
        self._flushed = 0

        if storage_path and storage_path.exists():
            self._load_from_file(storage_path)

    def __repr__(self) -> str:
        return f"HashRegistry({self._name!r}, {self._storage_path})"

    @property
    def name(self) -> str:
        return self._name

    def __contains__(self, value: Hash256) -> bool:
        return _as_int(value) in self._values

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._order))

    def insert(self, value: Hash256) -> None:
        """Add a value. Raises ValueError if it is already present."""
        key = _as_int(value)
        if key in self._values:
            raise ValueError(f"{self._name}: value already registered: {key:#066x}")
        self._values.add(key)
        self._order.append(key)

    def checkpoint(self) -> int:
        return len(self._order)

    def rollback(self, token: int) -> None:
        """Discard every insert made after ``token``."""
        if token < self._flushed:
            raise RuntimeError(
                f"{self._name}: cannot roll back past committed entries"
            )
        for key in self._order[token:]:
            self._values.discard(key)
        del self._order[token:]

    def commit(self) -> None:
        """Persist inserts that are not yet on disk.

        If the write fails the inserts stay pending and the next commit
        retries them.
        """
        pending = self._order[self._flushed:]
        if self._storage_path and pending:
            lines = "".join(json.dumps({"value": f"{key:#066x}"}) + "\n" for key in pending)
            self._storage_path.parent.mkdir(parents=True, exist_ok=True)
            with self._storage_path.open("a", encoding="utf-8") as f:
                f.write(lines)
        self._flushed = len(self._order)

    def _load_from_file(self, path: Path) -> None:
        """Load committed values. Duplicate lines mean a corrupted store."""
        with path.open("r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                key = _as_int(int(json.loads(line)["value"], 16))
                if key in self._values:
                    raise ValueError(
                        f"{self._name}: duplicate value on recovery "
                        f"(line {line_num}): {key:#066x}"
                    )
                self._values.add(key)
                self._order.append(key)
        self._flushed = len(self._order)
        logger.debug("Loaded %d entries into %s registry", self._flushed, self._name)
