from .accounts import ADDRESS_BYTES, derive_address, parse_address, register_account
from .backend import FileBackend, LedgerBackend, MemoryBackend, StaleVersion
from .event_sequencer import NO_EVENTS, EventRecord, EventSequencer
from .versioned_store import VersionedEntry, VersionedStore

__all__ = [
    "ADDRESS_BYTES",
    "derive_address",
    "parse_address",
    "register_account",
    "FileBackend",
    "LedgerBackend",
    "MemoryBackend",
    "StaleVersion",
    "NO_EVENTS",
    "EventRecord",
    "EventSequencer",
    "VersionedEntry",
    "VersionedStore",
]
