"""
Shamir threshold secret sharing over GF(2^521 - 1).

Secrets of any length are cut into 64-byte blocks; every block is below
2^512 and therefore a distinct field element. Each block is shared with its
own random polynomial, so fewer than ``t`` shares reveal nothing but the
secret length. A share value is the 4-byte secret length followed by one
66-byte field element per block.
"""

from __future__ import annotations

import json
import secrets
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ledger_engine.errors import DuplicateShareIndex, InsufficientShares, InvalidArgument, InvalidThreshold

# Large prime field; every 64-byte block fits below it.
PRIME = 2**521 - 1
BLOCK_BYTES = 64
ELEMENT_BYTES = 66
LENGTH_BYTES = 4
MAX_SHARES = 2**32 - 1
DEFAULT_MAX_SHARES = 1024
MIN_RECOVERY_SHARES = 2


def _eval_polynomial(coeffs: Sequence[int], x: int) -> int:
    acc = 0
    for coeff in reversed(coeffs):
        acc = (acc * x + coeff) % PRIME
    return acc


def split_secret(secret: int, n: int, t: int) -> List[Tuple[int, int]]:
    """
    Split a field element into n points with threshold t.
    """
    if not 0 <= secret < PRIME:
        raise ValueError("Secret is too large for configured prime field")
    coeffs = [secret] + [secrets.randbelow(PRIME) for _ in range(t - 1)]
    return [(x, _eval_polynomial(coeffs, x)) for x in range(1, n + 1)]


def combine_shares(shares: Sequence[Tuple[int, int]]) -> int:
    """
    Reconstruct the field element from points using Lagrange interpolation at x=0.
    """
    secret = 0
    for j, (xj, yj) in enumerate(shares):
        numerator = 1
        denominator = 1
        for m, (xm, _) in enumerate(shares):
            if m == j:
                continue
            numerator = (numerator * (-xm)) % PRIME
            denominator = (denominator * (xj - xm)) % PRIME
        inv = pow(denominator, -1, PRIME)
        secret = (secret + yj * numerator * inv) % PRIME
    return secret


@dataclass(frozen=True)
class SecretShare:
    """One share of a split secret. ``threshold`` is recorded at split time when known."""

    index: int
    value: bytes
    threshold: Optional[int] = None

    def to_text(self) -> str:
        threshold = "" if self.threshold is None else str(self.threshold)
        return f"{self.index}-{threshold}-{self.value.hex()}"

    @classmethod
    def from_text(cls, text: str) -> "SecretShare":
        parts = text.strip().split("-")
        try:
            if len(parts) == 2:
                index, threshold, value = int(parts[0]), None, bytes.fromhex(parts[1])
            elif len(parts) == 3:
                index = int(parts[0])
                threshold = int(parts[1]) if parts[1] else None
                value = bytes.fromhex(parts[2])
            else:
                raise ValueError("expected '<index>-<threshold>-<hex>'")
        except ValueError as exc:
            raise InvalidArgument(f"Malformed share '{text[:24]}': {exc}") from exc
        return cls(index=index, value=value, threshold=threshold)


def shares_to_json(shares: Iterable[SecretShare]) -> str:
    return json.dumps([share.to_text() for share in shares])


def shares_from_json(text: str) -> List[SecretShare]:
    try:
        parts = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidArgument(f"Share list is not valid JSON: {exc}") from exc
    if not isinstance(parts, list) or not all(isinstance(p, str) for p in parts):
        raise InvalidArgument("Share list must be a JSON array of strings")
    return [SecretShare.from_text(p) for p in parts]


def _blocks(secret: bytes) -> List[int]:
    return [
        int.from_bytes(secret[i : i + BLOCK_BYTES], byteorder="big")
        for i in range(0, len(secret), BLOCK_BYTES)
    ]


def _block_lengths(total: int) -> List[int]:
    full, rest = divmod(total, BLOCK_BYTES)
    return [BLOCK_BYTES] * full + ([rest] if rest else [])


class ThresholdSecretManager:
    """
    Split secrets into shares and recover them; holds no state between calls.

    ``max_shares`` bounds the share count ``n`` accepted by ``split``.
    """

    def __init__(self, max_shares: int = DEFAULT_MAX_SHARES) -> None:
        if not 1 <= max_shares <= MAX_SHARES:
            raise ValueError(f"max_shares must be between 1 and {MAX_SHARES}")
        self.max_shares = max_shares

    def split(self, n: int, t: int, secret: bytes) -> List[SecretShare]:
        """
        Split ``secret`` into ``n`` shares, any ``t`` of which recover it.

        Raises:
            InvalidThreshold: unless 1 <= t <= n <= max_shares.
        """
        if not 1 <= t <= n:
            raise InvalidThreshold(f"Threshold must satisfy 1 <= t <= n, got t={t} n={n}")
        if n > self.max_shares:
            raise InvalidThreshold(f"At most {self.max_shares} shares are supported, got n={n}")
        if len(secret) >= 2 ** (8 * LENGTH_BYTES):
            raise ValueError("Secret is too long to share")
        header = len(secret).to_bytes(LENGTH_BYTES, byteorder="big")
        bodies = [bytearray(header) for _ in range(n)]
        for block in _blocks(secret):
            for x, y in split_secret(block, n, t):
                bodies[x - 1] += y.to_bytes(ELEMENT_BYTES, byteorder="big")
        return [SecretShare(index=i + 1, value=bytes(body), threshold=t) for i, body in enumerate(bodies)]

    def recover(self, shares: Iterable[SecretShare]) -> bytes:
        """
        Recover the secret from shares with distinct indices.

        Shares produced by ``split`` record their threshold, and at least that
        many distinct shares are required; a threshold of 1 recovers from a
        single share. Shares without a recorded threshold need at least 2 and
        cannot be checked further: interpolating fewer points than the original
        threshold silently yields garbage, so supplying enough shares is the
        caller's responsibility.

        Raises:
            DuplicateShareIndex: two shares have the same index but different values.
            InsufficientShares: fewer distinct shares than the recorded threshold,
                or fewer than 2 when no threshold is recorded.
        """
        distinct = self._deduplicate(shares)
        threshold = self._recorded_threshold(distinct.values())
        required = MIN_RECOVERY_SHARES if threshold is None else threshold
        if len(distinct) < required:
            raise InsufficientShares(len(distinct), required)

        ordered = sorted(distinct.values(), key=lambda share: share.index)
        secret_length = self._secret_length(ordered)
        lengths = _block_lengths(secret_length)
        expected_size = LENGTH_BYTES + ELEMENT_BYTES * len(lengths)
        for share in ordered:
            if len(share.value) != expected_size:
                raise InvalidArgument(f"Share {share.index} has {len(share.value)} bytes, expected {expected_size}")

        out = bytearray()
        for block_idx, block_len in enumerate(lengths):
            start = LENGTH_BYTES + block_idx * ELEMENT_BYTES
            points = [
                (share.index, int.from_bytes(share.value[start : start + ELEMENT_BYTES], byteorder="big"))
                for share in ordered
            ]
            value = combine_shares(points)
            # Too few points interpolate to an arbitrary field element; keep the low bytes.
            out += (value % (1 << (8 * block_len))).to_bytes(block_len, byteorder="big")
        return bytes(out)

    @staticmethod
    def _deduplicate(shares: Iterable[SecretShare]) -> Dict[int, SecretShare]:
        distinct: Dict[int, SecretShare] = {}
        for share in shares:
            if share.index < 1 or share.index > MAX_SHARES:
                raise InvalidArgument(f"Share index {share.index} is out of range")
            existing = distinct.get(share.index)
            if existing is None:
                distinct[share.index] = share
            elif existing.value != share.value:
                raise DuplicateShareIndex(share.index)
        return distinct

    @staticmethod
    def _recorded_threshold(shares: Iterable[SecretShare]) -> Optional[int]:
        recorded = {share.threshold for share in shares if share.threshold is not None}
        if any(threshold < 1 for threshold in recorded):
            raise InvalidArgument(f"Recorded threshold must be positive: {sorted(recorded)}")
        if len(recorded) > 1:
            raise InvalidArgument(f"Shares disagree on the threshold: {sorted(recorded)}")
        return recorded.pop() if recorded else None

    @staticmethod
    def _secret_length(shares: Sequence[SecretShare]) -> int:
        headers = {share.value[:LENGTH_BYTES] for share in shares}
        if len(headers) != 1 or any(len(h) != LENGTH_BYTES for h in headers):
            raise InvalidArgument("Shares do not belong to the same secret")
        return int.from_bytes(headers.pop(), byteorder="big")
