"""
Ledger mutation and cryptographic aggregation engine for contract runtimes.

Components:
- Versioned key-value store with optimistic concurrency
- Per-topic event sequencing
- Paillier homomorphic aggregation
- Shamir threshold secret sharing
- Contract dispatcher over a closed set of operations
"""

__all__ = ["config", "contract", "crypto", "errors", "storage", "utils"]
