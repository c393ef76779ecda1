"""Address derivation and registration of data and event accounts."""

from __future__ import annotations

from cryptography.hazmat.primitives import hashes

from ledger_engine.storage.backend import LedgerBackend
from ledger_engine.utils import get_logger

logger = get_logger("accounts")

ADDRESS_BYTES = 20
MIN_SEED_LENGTH = 32


def derive_address(seed: str) -> bytes:
    """Derive a fixed-length account address from a seed of at least 32 characters."""
    if len(seed) < MIN_SEED_LENGTH:
        raise ValueError(f"Seed must be at least {MIN_SEED_LENGTH} characters")
    digest = hashes.Hash(hashes.SHA256())
    digest.update(seed.encode("utf-8"))
    return digest.finalize()[:ADDRESS_BYTES]


def parse_address(text: str) -> bytes:
    """Decode a hex account address."""
    try:
        address = bytes.fromhex(text)
    except ValueError as exc:
        raise ValueError(f"Address '{text}' is not valid hex") from exc
    if len(address) != ADDRESS_BYTES:
        raise ValueError(f"Address must be {ADDRESS_BYTES} bytes, got {len(address)}")
    return address


def register_account(backend: LedgerBackend, seed: str) -> bytes:
    """Create the namespace for the account derived from ``seed`` and return its address."""
    address = derive_address(seed)
    if backend.create_namespace(address):
        logger.info("Registered account %s", address.hex())
    return address
