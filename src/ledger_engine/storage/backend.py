"""
Pluggable key-value backends with per-key version history.

Every backend exposes one atomic primitive, ``compare_and_append``, which is
the only synchronization point of the engine: under a single lock it checks
the namespace, compares the caller's expected version with the current one
and appends the new value. Versions count accepted writes, so an absent key
is at version 0 and the first write produces version 1.

Implementations:
- MemoryBackend: process-local dictionaries.
- FileBackend: the same layout persisted to a JSON file after every mutation.
"""

import base64
import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ledger_engine.errors import NamespaceNotFound

logger = logging.getLogger(__name__)

History = Dict[str, List[bytes]]


class StaleVersion(Exception):
    """Raised by a backend when the expected version is not the current one."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"expected version {expected}, current version {actual}")
        self.expected = expected
        self.actual = actual


class LedgerBackend(ABC):
    """Abstract interface for namespaced, versioned key-value storage."""

    @abstractmethod
    def create_namespace(self, namespace: bytes) -> bool:
        """Create a namespace. Returns False when it already existed."""
        pass

    @abstractmethod
    def has_namespace(self, namespace: bytes) -> bool:
        pass

    @abstractmethod
    def current_version(self, namespace: bytes, key: str) -> int:
        """Number of accepted writes for the key (0 when absent)."""
        pass

    @abstractmethod
    def get(self, namespace: bytes, key: str, version: Optional[int] = None) -> Optional[Tuple[int, bytes]]:
        """Return (version, value) for the latest or the requested version."""
        pass

    @abstractmethod
    def compare_and_append(self, namespace: bytes, key: str, value: bytes, expected: Optional[int]) -> int:
        """
        Atomically append ``value`` if the current version equals ``expected``.

        ``expected=None`` appends unconditionally. Returns the new version.

        Raises:
            NamespaceNotFound: the namespace was never created.
            StaleVersion: the current version differs from ``expected``.
        """
        pass


class MemoryBackend(LedgerBackend):
    """In-memory backend guarded by one lock."""

    def __init__(self) -> None:
        self._namespaces: Dict[bytes, History] = {}
        self._lock = threading.Lock()

    def _history(self, namespace: bytes) -> History:
        """Caller must hold _lock."""
        history = self._namespaces.get(bytes(namespace))
        if history is None:
            raise NamespaceNotFound(bytes(namespace))
        return history

    def _after_mutation(self) -> None:
        """Hook invoked under _lock once a mutation has been applied."""

    def create_namespace(self, namespace: bytes) -> bool:
        with self._lock:
            if bytes(namespace) in self._namespaces:
                return False
            self._namespaces[bytes(namespace)] = {}
            try:
                self._after_mutation()
            except Exception:
                del self._namespaces[bytes(namespace)]
                raise
            return True

    def has_namespace(self, namespace: bytes) -> bool:
        with self._lock:
            return bytes(namespace) in self._namespaces

    def current_version(self, namespace: bytes, key: str) -> int:
        with self._lock:
            return len(self._history(namespace).get(key, ()))

    def get(self, namespace: bytes, key: str, version: Optional[int] = None) -> Optional[Tuple[int, bytes]]:
        with self._lock:
            values = self._history(namespace).get(key)
            if not values:
                return None
            if version is None:
                return len(values), values[-1]
            if version < 1 or version > len(values):
                return None
            return version, values[version - 1]

    def compare_and_append(self, namespace: bytes, key: str, value: bytes, expected: Optional[int]) -> int:
        with self._lock:
            history = self._history(namespace)
            values = history.setdefault(key, [])
            current = len(values)
            if expected is not None and expected != current:
                if not values:
                    del history[key]
                raise StaleVersion(expected, current)
            values.append(bytes(value))
            try:
                self._after_mutation()
            except Exception:
                values.pop()
                if not values:
                    del history[key]
                raise
            return current + 1

    def clear(self) -> None:
        """Drop every namespace (for testing)."""
        with self._lock:
            self._namespaces.clear()
            self._after_mutation()


class FileBackend(MemoryBackend):
    """
    Backend persisted to a JSON file.

    The whole ledger is rewritten after each accepted mutation while the lock
    is held, so concurrent writers in one process stay linearizable and a
    crash never leaves a half-applied write on disk.
    """

    def __init__(self, storage_path: str) -> None:
        super().__init__()
        self._storage_path = Path(storage_path)
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        if self._storage_path.exists():
            self._load()
        else:
            self._save()

    def _load(self) -> None:
        try:
            data = json.loads(self._storage_path.read_text())
            namespaces = {
                bytes.fromhex(namespace_hex): {
                    str(key): [base64.b64decode(v, validate=True) for v in values]
                    for key, values in keys.items()
                }
                for namespace_hex, keys in data.items()
            }
        except (ValueError, TypeError, AttributeError) as exc:
            raise ValueError(f"Corrupt ledger file at {self._storage_path}: {exc}") from exc
        self._namespaces.update(namespaces)
        logger.info(f"Loaded {len(self._namespaces)} namespaces from {self._storage_path}")

    def _save(self) -> None:
        data = {
            namespace.hex(): {
                key: [base64.b64encode(v).decode("ascii") for v in values] for key, values in keys.items()
            }
            for namespace, keys in self._namespaces.items()
        }
        tmp_path = self._storage_path.with_suffix(self._storage_path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2, sort_keys=True))
        tmp_path.replace(self._storage_path)

    def _after_mutation(self) -> None:
        self._save()
