"""Tests for the Paillier homomorphic aggregator."""

import pytest

from ledger_engine.crypto import Ciphertext, HomomorphicAggregator, PrivateKey, PublicKey, generate_keypair
from ledger_engine.errors import InvalidCiphertext, KeyMismatch, PlaintextOutOfRange


@pytest.fixture
def aggregator() -> HomomorphicAggregator:
    return HomomorphicAggregator()


class TestRoundTrip:
    @pytest.mark.parametrize("value", [0, 1, -1, 600, -600, 2**40, -(2**63)])
    def test_decrypt_inverts_encrypt(self, aggregator, keypair, value) -> None:
        ciphertext = aggregator.encrypt(keypair.public_key, value)
        assert aggregator.decrypt(keypair.private_key, ciphertext) == value

    def test_bounds_of_plaintext_range(self, aggregator, keypair) -> None:
        bound = aggregator.plaintext_bound(keypair.public_key)
        for value in (bound, -bound):
            assert aggregator.decrypt(keypair.private_key, aggregator.encrypt(keypair.public_key, value)) == value

    def test_out_of_range_plaintext(self, aggregator, keypair) -> None:
        bound = aggregator.plaintext_bound(keypair.public_key)
        with pytest.raises(PlaintextOutOfRange):
            aggregator.encrypt(keypair.public_key, bound + 1)
        with pytest.raises(PlaintextOutOfRange):
            aggregator.encrypt(keypair.public_key, -bound - 1)

    def test_headroom_shrinks_bound(self, keypair) -> None:
        plain = HomomorphicAggregator()
        reserved = HomomorphicAggregator(headroom_bits=8)
        assert reserved.plaintext_bound(keypair.public_key) == plain.plaintext_bound(keypair.public_key) >> 8
        with pytest.raises(PlaintextOutOfRange):
            reserved.encrypt(keypair.public_key, plain.plaintext_bound(keypair.public_key))

    def test_encryption_is_randomized(self, aggregator, keypair) -> None:
        c1 = aggregator.encrypt(keypair.public_key, 42)
        c2 = aggregator.encrypt(keypair.public_key, 42)
        assert c1.value != c2.value
        assert aggregator.decrypt(keypair.private_key, c1) == aggregator.decrypt(keypair.private_key, c2)

    def test_rejects_non_integer_plaintext(self, aggregator, keypair) -> None:
        with pytest.raises(TypeError):
            aggregator.encrypt(keypair.public_key, 1.5)
        with pytest.raises(TypeError):
            aggregator.encrypt(keypair.public_key, True)


class TestHomomorphism:
    def test_add_sample_values(self, aggregator, keypair) -> None:
        pk = keypair.public_key
        total = aggregator.add(pk, aggregator.encrypt(pk, 600), aggregator.encrypt(pk, 60))
        assert aggregator.decrypt(keypair.private_key, total) == 660

    def test_mul_sample_values(self, aggregator, keypair) -> None:
        pk = keypair.public_key
        product = aggregator.mul(pk, aggregator.encrypt(pk, 600), 10)
        assert aggregator.decrypt(keypair.private_key, product) == 6000

    def test_add_with_negatives(self, aggregator, keypair) -> None:
        pk = keypair.public_key
        total = aggregator.add(pk, aggregator.encrypt(pk, -250), aggregator.encrypt(pk, 100))
        assert aggregator.decrypt(keypair.private_key, total) == -150

    @pytest.mark.parametrize("scalar", [0, 1, -3, 1000])
    def test_mul_scalars(self, aggregator, keypair, scalar) -> None:
        pk = keypair.public_key
        product = aggregator.mul(pk, aggregator.encrypt(pk, 37), scalar)
        assert aggregator.decrypt(keypair.private_key, product) == 37 * scalar

    def test_sum(self, aggregator, keypair) -> None:
        pk = keypair.public_key
        total = aggregator.sum(pk, [aggregator.encrypt(pk, v) for v in (1, 2, 3, 4)])
        assert aggregator.decrypt(keypair.private_key, total) == 10
        with pytest.raises(ValueError):
            aggregator.sum(pk, [])

    def test_overflow_detected_on_decrypt(self, aggregator, keypair) -> None:
        pk = keypair.public_key
        big = aggregator.encrypt(pk, aggregator.plaintext_bound(pk))
        with pytest.raises(PlaintextOutOfRange):
            aggregator.decrypt(keypair.private_key, aggregator.add(pk, big, big))


class TestValidation:
    def test_add_rejects_foreign_ciphertext(self, aggregator, keypair, other_keypair) -> None:
        mine = aggregator.encrypt(keypair.public_key, 1)
        theirs = aggregator.encrypt(other_keypair.public_key, 2)
        with pytest.raises(KeyMismatch):
            aggregator.add(keypair.public_key, mine, theirs)

    def test_decrypt_with_wrong_key(self, aggregator, keypair, other_keypair) -> None:
        ciphertext = aggregator.encrypt(keypair.public_key, 5)
        with pytest.raises(KeyMismatch):
            aggregator.decrypt(other_keypair.private_key, ciphertext)

    def test_invalid_ciphertext_values(self, aggregator, keypair) -> None:
        pk = keypair.public_key
        for value in (0, pk.n_sq, pk.n):
            forged = Ciphertext(fingerprint=pk.fingerprint, value=value, width=pk.ciphertext_width)
            with pytest.raises(InvalidCiphertext):
                aggregator.validate(pk, forged)

    def test_load_checks_encoding(self, aggregator, keypair, other_keypair) -> None:
        pk = keypair.public_key
        ciphertext = aggregator.encrypt(pk, 9)
        assert aggregator.load(pk, ciphertext.to_bytes()) == ciphertext
        assert aggregator.load_text(pk, ciphertext.to_text()) == ciphertext
        with pytest.raises(InvalidCiphertext):
            aggregator.load(pk, ciphertext.to_bytes()[:-1])
        with pytest.raises(InvalidCiphertext):
            aggregator.load(pk, b"\x00" * 4)
        with pytest.raises(InvalidCiphertext):
            aggregator.load_text(pk, "not base64!")
        with pytest.raises(KeyMismatch):
            aggregator.load(other_keypair.public_key, ciphertext.to_bytes())


class TestKeys:
    def test_key_encodings(self, keypair) -> None:
        assert PublicKey.from_text(keypair.public_key.to_text()) == keypair.public_key
        restored = PrivateKey.from_text(keypair.private_key.to_text())
        assert restored == keypair.private_key
        assert restored.public_key == keypair.public_key

    def test_generated_modulus_length(self, keypair) -> None:
        assert keypair.public_key.n.bit_length() == 1024

    def test_short_keys_rejected(self) -> None:
        with pytest.raises(ValueError):
            generate_keypair(512)

    def test_mismatched_primes_rejected(self, keypair) -> None:
        with pytest.raises(ValueError):
            PrivateKey(public_key=keypair.public_key, p=keypair.private_key.p, q=3)
