"""Optimistic-concurrency key-value store over a LedgerBackend."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from ledger_engine.errors import VersionConflict
from ledger_engine.storage.backend import LedgerBackend, StaleVersion
from ledger_engine.utils import get_logger, retry

logger = get_logger("versioned_store")


@dataclass(frozen=True)
class VersionedEntry:
    """A value stored under (namespace, key) together with the version that wrote it."""

    namespace: bytes
    key: str
    value: bytes
    version: int


class VersionedStore:
    """
    Key-value store with per-key monotonic versions.

    An absent key is at version 0; each accepted write bumps the version by
    exactly one. Writers that pass ``expected_version`` only succeed when it
    matches the current version; ``None`` overwrites whatever is current.
    """

    def __init__(self, backend: LedgerBackend, retries: int = 3, backoff: float = 0.01) -> None:
        self.backend = backend
        self.retries = retries
        self.backoff = backoff

    def write(self, namespace: bytes, key: str, value: bytes, expected_version: Optional[int] = None) -> int:
        """
        Store ``value`` and return the new version.

        Raises:
            NamespaceNotFound: the data account does not exist.
            VersionConflict: ``expected_version`` is not the current version.
        """
        if expected_version is not None and expected_version < 0:
            raise VersionConflict(namespace, key, expected_version, self.backend.current_version(namespace, key))
        try:
            version = self.backend.compare_and_append(namespace, key, value, expected_version)
        except StaleVersion as exc:
            logger.info(
                "Rejected stale write ns=%s key=%s expected=%d current=%d",
                namespace.hex(),
                key,
                exc.expected,
                exc.actual,
            )
            raise VersionConflict(namespace, key, exc.expected, exc.actual) from exc
        logger.debug("Wrote ns=%s key=%s version=%d", namespace.hex(), key, version)
        return version

    def read(self, namespace: bytes, key: str, version: Optional[int] = None) -> Optional[VersionedEntry]:
        """Return the latest entry, or the entry written at ``version``; None when absent."""
        found = self.backend.get(namespace, key, version)
        if found is None:
            return None
        entry_version, value = found
        return VersionedEntry(namespace=namespace, key=key, value=value, version=entry_version)

    def version(self, namespace: bytes, key: str) -> Optional[int]:
        """Current version of the key, or None if it was never written."""
        current = self.backend.current_version(namespace, key)
        return current if current > 0 else None

    def update(
        self,
        namespace: bytes,
        key: str,
        fn: Callable[[Optional[bytes]], bytes],
        retries: Optional[int] = None,
    ) -> int:
        """
        Read-modify-write ``key`` with ``fn`` until no concurrent writer interferes.

        ``fn`` receives the current value (None when absent) and returns the
        replacement. Raises RetryError once ``retries`` conflicts have occurred.
        """
        attempts = self.retries if retries is None else retries

        def attempt() -> int:
            entry = self.read(namespace, key)
            current_value = entry.value if entry else None
            current_version = entry.version if entry else 0
            return self.write(namespace, key, fn(current_value), expected_version=current_version)

        return retry(attempt, retries=attempts, backoff=self.backoff, exceptions=(VersionConflict,))
