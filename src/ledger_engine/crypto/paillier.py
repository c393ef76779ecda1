"""
Paillier additively homomorphic encryption.

Implements the standard scheme with generator g = n + 1:
- Enc(m) = (1 + n*m) * r^n mod n^2
- Dec(c) = L(c^lambda mod n^2) * mu mod n, with L(x) = (x - 1) / n
- Enc(a) * Enc(b) decrypts to a + b, Enc(a)^k decrypts to k * a

Signed plaintexts are encoded in Z_n: values up to ``max_int = n // 3`` are
positive, values from ``n - max_int`` upward are negative. Anything in
between after decryption means an aggregate overflowed.

Key primes come from the RSA generator of ``cryptography``, which yields two
distinct primes of equal length, so gcd(n, (p-1)(q-1)) = 1 holds.
"""

from __future__ import annotations

import base64
import binascii
import math
import secrets
from dataclasses import dataclass, field
from typing import Iterable

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa

from ledger_engine.errors import InvalidCiphertext, KeyMismatch, PlaintextOutOfRange

FINGERPRINT_BYTES = 8
DEFAULT_KEY_LENGTH = 2048
MIN_KEY_LENGTH = 1024


def _int_to_bytes(value: int, length: int | None = None) -> bytes:
    if length is None:
        length = max(1, (value.bit_length() + 7) // 8)
    return int(value).to_bytes(length, byteorder="big")


def _bytes_to_int(data: bytes) -> int:
    return int.from_bytes(data, byteorder="big")


def _fingerprint(n: int) -> bytes:
    digest = hashes.Hash(hashes.SHA256())
    digest.update(b"paillier/n:" + _int_to_bytes(n))
    return digest.finalize()[:FINGERPRINT_BYTES]


def _decode_text(text: str, what: str) -> bytes:
    try:
        return base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise ValueError(f"{what} is not valid base64") from exc


@dataclass(frozen=True)
class PublicKey:
    """Paillier public key, fully determined by the modulus n."""

    n: int
    n_sq: int = field(init=False, repr=False, compare=False)
    max_int: int = field(init=False, repr=False, compare=False)
    fingerprint: bytes = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.n < 3 or self.n % 2 == 0:
            raise ValueError("Paillier modulus must be an odd integer greater than 2")
        object.__setattr__(self, "n_sq", self.n * self.n)
        object.__setattr__(self, "max_int", self.n // 3 - 1)
        object.__setattr__(self, "fingerprint", _fingerprint(self.n))

    @property
    def ciphertext_width(self) -> int:
        """Byte width of an encoded ciphertext value."""
        return (self.n_sq.bit_length() + 7) // 8

    def to_bytes(self) -> bytes:
        return _int_to_bytes(self.n)

    @classmethod
    def from_bytes(cls, data: bytes) -> "PublicKey":
        return cls(n=_bytes_to_int(data))

    def to_text(self) -> str:
        return base64.b64encode(self.to_bytes()).decode("ascii")

    @classmethod
    def from_text(cls, text: str) -> "PublicKey":
        return cls.from_bytes(_decode_text(text, "Public key"))


@dataclass(frozen=True)
class PrivateKey:
    """Paillier private key holding the factorisation of n."""

    public_key: PublicKey
    p: int = field(repr=False)
    q: int = field(repr=False)
    lam: int = field(init=False, repr=False, compare=False)
    mu: int = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.p * self.q != self.public_key.n:
            raise ValueError("Private key primes do not match the public modulus")
        if self.p == self.q:
            raise ValueError("Private key primes must be distinct")
        lam = math.lcm(self.p - 1, self.q - 1)
        object.__setattr__(self, "lam", lam)
        # With g = n + 1, L(g^lambda mod n^2) = lambda mod n.
        object.__setattr__(self, "mu", pow(lam, -1, self.public_key.n))

    def to_bytes(self) -> bytes:
        p_bytes = _int_to_bytes(self.p)
        return len(p_bytes).to_bytes(2, byteorder="big") + p_bytes + _int_to_bytes(self.q)

    @classmethod
    def from_bytes(cls, data: bytes) -> "PrivateKey":
        if len(data) < 3:
            raise ValueError("Private key encoding is truncated")
        p_len = _bytes_to_int(data[:2])
        p = _bytes_to_int(data[2 : 2 + p_len])
        q = _bytes_to_int(data[2 + p_len :])
        return cls(public_key=PublicKey(n=p * q), p=p, q=q)

    def to_text(self) -> str:
        return base64.b64encode(self.to_bytes()).decode("ascii")

    @classmethod
    def from_text(cls, text: str) -> "PrivateKey":
        return cls.from_bytes(_decode_text(text, "Private key"))


@dataclass(frozen=True)
class KeyPair:
    public_key: PublicKey
    private_key: PrivateKey


@dataclass(frozen=True)
class Ciphertext:
    """Encrypted integer tagged with the fingerprint of the key it belongs to."""

    fingerprint: bytes
    value: int
    width: int

    def to_bytes(self) -> bytes:
        return self.fingerprint + _int_to_bytes(self.value, self.width)

    def to_text(self) -> str:
        return base64.b64encode(self.to_bytes()).decode("ascii")


def generate_keypair(n_length: int = DEFAULT_KEY_LENGTH) -> KeyPair:
    """Generate a Paillier key pair whose modulus has ``n_length`` bits."""
    if n_length < MIN_KEY_LENGTH:
        raise ValueError(f"Key length must be at least {MIN_KEY_LENGTH} bits")
    rsa_key = rsa.generate_private_key(public_exponent=65537, key_size=n_length)
    numbers = rsa_key.private_numbers()
    public_key = PublicKey(n=numbers.public_numbers.n)
    private_key = PrivateKey(public_key=public_key, p=numbers.p, q=numbers.q)
    return KeyPair(public_key=public_key, private_key=private_key)


class HomomorphicAggregator:
    """
    Stateless Paillier operations.

    ``headroom_bits`` reserves plaintext range for aggregation: fresh
    plaintexts must satisfy ``|m| <= max_int >> headroom_bits`` so that up to
    roughly ``2**headroom_bits`` additions still decrypt correctly.
    """

    def __init__(self, headroom_bits: int = 0) -> None:
        if headroom_bits < 0:
            raise ValueError("headroom_bits must be non-negative")
        self.headroom_bits = headroom_bits

    def plaintext_bound(self, public_key: PublicKey) -> int:
        return public_key.max_int >> self.headroom_bits

    def _random_unit(self, public_key: PublicKey) -> int:
        while True:
            r = secrets.randbelow(public_key.n - 1) + 1
            if math.gcd(r, public_key.n) == 1:
                return r

    def _wrap(self, public_key: PublicKey, value: int) -> Ciphertext:
        return Ciphertext(fingerprint=public_key.fingerprint, value=value, width=public_key.ciphertext_width)

    def validate(self, public_key: PublicKey, ciphertext: Ciphertext) -> None:
        """Raise KeyMismatch or InvalidCiphertext unless ``ciphertext`` belongs to ``public_key``."""
        if ciphertext.fingerprint != public_key.fingerprint:
            raise KeyMismatch("Ciphertext was not produced under the supplied public key")
        if not 0 < ciphertext.value < public_key.n_sq:
            raise InvalidCiphertext("Ciphertext value is outside Z*_{n^2}")
        if math.gcd(ciphertext.value, public_key.n) != 1:
            raise InvalidCiphertext("Ciphertext value is not invertible modulo n^2")

    def load(self, public_key: PublicKey, data: bytes) -> Ciphertext:
        """Decode and validate a ciphertext produced by ``Ciphertext.to_bytes``."""
        if len(data) < FINGERPRINT_BYTES:
            raise InvalidCiphertext("Ciphertext encoding is truncated")
        fingerprint = data[:FINGERPRINT_BYTES]
        body = data[FINGERPRINT_BYTES:]
        if fingerprint != public_key.fingerprint:
            raise KeyMismatch("Ciphertext was not produced under the supplied public key")
        if len(body) != public_key.ciphertext_width:
            raise InvalidCiphertext(
                f"Ciphertext body must be {public_key.ciphertext_width} bytes, got {len(body)}"
            )
        ciphertext = self._wrap(public_key, _bytes_to_int(body))
        self.validate(public_key, ciphertext)
        return ciphertext

    def load_text(self, public_key: PublicKey, text: str) -> Ciphertext:
        try:
            data = _decode_text(text, "Ciphertext")
        except ValueError as exc:
            raise InvalidCiphertext(str(exc)) from exc
        return self.load(public_key, data)

    def encrypt(self, public_key: PublicKey, plaintext: int) -> Ciphertext:
        """Encrypt a signed integer. Repeated calls yield different ciphertexts."""
        if isinstance(plaintext, bool) or not isinstance(plaintext, int):
            raise TypeError("Paillier plaintext must be an integer")
        bound = self.plaintext_bound(public_key)
        if abs(plaintext) > bound:
            raise PlaintextOutOfRange(f"|{plaintext}| exceeds the safe plaintext bound {bound}")
        n, n_sq = public_key.n, public_key.n_sq
        encoded = plaintext % n
        r = self._random_unit(public_key)
        value = ((1 + n * encoded) % n_sq) * pow(r, n, n_sq) % n_sq
        return self._wrap(public_key, value)

    def decrypt(self, private_key: PrivateKey, ciphertext: Ciphertext) -> int:
        """Recover the signed plaintext of ``ciphertext``."""
        public_key = private_key.public_key
        self.validate(public_key, ciphertext)
        n = public_key.n
        x = pow(ciphertext.value, private_key.lam, public_key.n_sq)
        encoded = ((x - 1) // n) * private_key.mu % n
        if encoded <= public_key.max_int:
            return encoded
        if encoded >= n - public_key.max_int:
            return encoded - n
        raise PlaintextOutOfRange("Decrypted value overflowed the safe plaintext range")

    def add(self, public_key: PublicKey, c1: Ciphertext, c2: Ciphertext) -> Ciphertext:
        """Ciphertext of plaintext(c1) + plaintext(c2)."""
        self.validate(public_key, c1)
        self.validate(public_key, c2)
        return self._wrap(public_key, c1.value * c2.value % public_key.n_sq)

    def mul(self, public_key: PublicKey, ciphertext: Ciphertext, scalar: int) -> Ciphertext:
        """Ciphertext of plaintext(ciphertext) * scalar."""
        if isinstance(scalar, bool) or not isinstance(scalar, int):
            raise TypeError("Scalar must be an integer")
        self.validate(public_key, ciphertext)
        exponent = scalar % public_key.n
        return self._wrap(public_key, pow(ciphertext.value, exponent, public_key.n_sq))

    def sum(self, public_key: PublicKey, ciphertexts: Iterable[Ciphertext]) -> Ciphertext:
        """Fold ``add`` over a non-empty sequence of ciphertexts."""
        items = list(ciphertexts)
        if not items:
            raise ValueError("At least one ciphertext is required")
        total = items[0]
        self.validate(public_key, total)
        for item in items[1:]:
            total = self.add(public_key, total, item)
        return total
