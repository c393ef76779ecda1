"""Error taxonomy shared by the storage, crypto and contract layers."""

from __future__ import annotations

from typing import Optional


class LedgerEngineError(Exception):
    """Base class for every failure raised by an engine operation."""

    retryable: bool = True


class VersionConflict(LedgerEngineError):
    """A KV write named a version that is no longer current."""

    def __init__(self, namespace: bytes, key: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Version conflict on {namespace.hex()}/{key}: expected {expected}, current {actual}"
        )
        self.namespace = namespace
        self.key = key
        self.expected = expected
        self.actual = actual


class SequenceConflict(LedgerEngineError):
    """An event publish named a sequence that is not the latest one."""

    def __init__(self, namespace: bytes, topic: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Sequence conflict on {namespace.hex()}/{topic}: expected {expected}, latest {actual}"
        )
        self.namespace = namespace
        self.topic = topic
        self.expected = expected
        self.actual = actual


class NamespaceNotFound(LedgerEngineError):
    """The target data or event account was never registered."""

    def __init__(self, namespace: bytes) -> None:
        super().__init__(f"Namespace {namespace.hex()} does not exist")
        self.namespace = namespace


class PlaintextOutOfRange(LedgerEngineError):
    """A plaintext (or an aggregated result) exceeds the safe Paillier range."""


class InvalidCiphertext(LedgerEngineError):
    """A ciphertext is malformed or does not validate against the key modulus."""


class KeyMismatch(LedgerEngineError):
    """A ciphertext was produced under a different key than the one supplied."""


class InvalidThreshold(LedgerEngineError):
    """Split parameters do not satisfy 1 <= t <= n."""

    retryable = False


class DuplicateShareIndex(LedgerEngineError):
    """Two shares carry the same index with different values."""

    retryable = False

    def __init__(self, index: int) -> None:
        super().__init__(f"Conflicting shares supplied for index {index}")
        self.index = index


class InsufficientShares(LedgerEngineError):
    """Too few shares were supplied to interpolate the secret."""

    def __init__(self, supplied: int, required: Optional[int] = None) -> None:
        required_count = 2 if required is None else required
        super().__init__(f"Recovery needs at least {required_count} shares, got {supplied}")
        self.supplied = supplied
        self.required = required_count


class InvalidArgument(LedgerEngineError):
    """An invocation carried arguments of the wrong count, type or encoding."""

    retryable = False
