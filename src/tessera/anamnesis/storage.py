"""
Append-only log of submitted transaction hashes.

Entries are appended only after providers agree a transaction was accepted.
Insertion order is preserved and duplicates are kept.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class TransactionHashLog(Protocol):
    def append(self, tx_hash: str) -> None:
        ...

    def list_all(self) -> list[str]:
        ...


class InMemoryHashLog:
    def __init__(self) -> None:
        self._hashes: list[str] = []
        self._lock = threading.Lock()

    def append(self, tx_hash: str) -> None:
        with self._lock:
            self._hashes.append(tx_hash)

    def list_all(self) -> list[str]:
        with self._lock:
            return list(self._hashes)


class LocalFileHashLog:
    """One hash per line; each append is flushed and fsynced before returning."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def append(self, tx_hash: str) -> None:
        if not tx_hash or "\n" in tx_hash:
            raise ValueError(f"Invalid transaction hash: {tx_hash!r}")
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(tx_hash + "\n")
                handle.flush()
                os.fsync(handle.fileno())
        logger.debug("Appended %s to %s", tx_hash, self.path)

    def list_all(self) -> list[str]:
        with self._lock:
            if not self.path.exists():
                return []
            lines = self.path.read_text(encoding="utf-8").splitlines()
        return [line.strip() for line in lines if line.strip()]
