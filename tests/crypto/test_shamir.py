import itertools
from dataclasses import replace

import pytest

from ledger_engine.crypto import DEFAULT_MAX_SHARES, PRIME, SecretShare, ThresholdSecretManager, combine_shares, shares_from_json, shares_to_json, split_secret
from ledger_engine.errors import DuplicateShareIndex, InsufficientShares, InvalidArgument, InvalidThreshold


@pytest.fixture
def manager() -> ThresholdSecretManager:
    return ThresholdSecretManager()


def test_field_level_split_and_combine() -> None:
    points = split_secret(123456789, n=5, t=3)
    assert combine_shares(points[1:4]) == 123456789
    with pytest.raises(ValueError):
        split_secret(PRIME, n=3, t=2)


def test_jd_chain_secret_any_three_of_five(manager) -> None:
    secret = "JD Chain".encode("utf-8")
    shares = manager.split(5, 3, secret)
    assert len(shares) == 5
    assert [s.index for s in shares] == [1, 2, 3, 4, 5]
    for subset in itertools.combinations(shares, 3):
        assert manager.recover(list(subset)) == secret


@pytest.mark.parametrize(
    "n,t,secret",
    [
        (2, 1, b"x"),
        (3, 1, b"solo"),
        (3, 3, b"\x00\x00leading zeros"),
        (4, 2, b""),
        (6, 4, bytes(range(256)) * 2),
    ],
)
def test_threshold_roundtrip(manager, n, t, secret) -> None:
    shares = manager.split(n, t, secret)
    assert manager.recover(shares[-t:]) == secret
    assert manager.recover(shares) == secret


def test_more_than_threshold_shares(manager) -> None:
    shares = manager.split(7, 3, b"extra shares are fine")
    assert manager.recover(shares[:5]) == b"extra shares are fine"


def test_invalid_threshold(manager) -> None:
    for n, t in ((3, 0), (3, 4), (0, 0), (2, -1)):
        with pytest.raises(InvalidThreshold):
            manager.split(n, t, b"s")


def test_below_recorded_threshold_rejected(manager) -> None:
    shares = manager.split(5, 3, b"guarded")
    with pytest.raises(InsufficientShares) as info:
        manager.recover(shares[:2])
    assert info.value.required == 3


def test_threshold_one_recovers_from_any_single_share(manager) -> None:
    shares = manager.split(3, 1, b"one")
    for share in shares:
        assert manager.recover([share]) == b"one"
    with pytest.raises(InsufficientShares):
        manager.recover([])


def test_single_share_without_recorded_threshold_rejected(manager) -> None:
    share = replace(manager.split(3, 1, b"one")[0], threshold=None)
    with pytest.raises(InsufficientShares) as info:
        manager.recover([share])
    assert info.value.required == 2


def test_non_positive_recorded_threshold_rejected(manager) -> None:
    shares = manager.split(3, 2, b"bad")
    with pytest.raises(InvalidArgument):
        manager.recover([replace(s, threshold=0) for s in shares])


def test_share_count_is_capped() -> None:
    manager = ThresholdSecretManager(max_shares=4)
    assert len(manager.split(4, 2, b"ok")) == 4
    with pytest.raises(InvalidThreshold):
        manager.split(5, 2, b"too many")
    with pytest.raises(InvalidThreshold):
        ThresholdSecretManager().split(DEFAULT_MAX_SHARES + 1, 2, b"too many")
    with pytest.raises(ValueError):
        ThresholdSecretManager(max_shares=0)


def test_below_threshold_without_recorded_threshold_yields_garbage(manager) -> None:
    secret = b"a reasonably long secret value"
    shares = [replace(s, threshold=None) for s in manager.split(5, 3, secret)]
    recovered = manager.recover(shares[:2])
    assert len(recovered) == len(secret)
    assert recovered != secret


def test_duplicate_index_with_different_value(manager) -> None:
    shares = manager.split(3, 2, b"dup")
    forged = SecretShare(index=1, value=shares[2].value, threshold=2)
    with pytest.raises(DuplicateShareIndex):
        manager.recover([shares[0], forged])


def test_identical_duplicates_are_collapsed(manager) -> None:
    shares = manager.split(3, 2, b"dup")
    assert manager.recover([shares[0], shares[0], shares[1]]) == b"dup"
    with pytest.raises(InsufficientShares):
        manager.recover([shares[0], shares[0]])


def test_shares_from_different_secrets_rejected(manager) -> None:
    a = manager.split(3, 2, b"short")
    b = manager.split(3, 2, b"a much longer secret")
    with pytest.raises(InvalidArgument):
        manager.recover([a[0], b[1]])


def test_recovery_is_deterministic(manager) -> None:
    shares = manager.split(4, 2, b"stable")
    assert manager.recover(shares[:2]) == manager.recover(shares[:2])


def test_share_text_and_json_encoding(manager) -> None:
    shares = manager.split(5, 3, b"JD Chain")
    encoded = shares_to_json(shares)
    decoded = shares_from_json(encoded)
    assert decoded == shares
    bare = SecretShare(index=2, value=b"\x01\x02")
    assert SecretShare.from_text(bare.to_text()) == bare
    assert SecretShare.from_text("2-0102") == bare


@pytest.mark.parametrize("text", ["not json", '{"a": 1}', "[1, 2]", '["x-y-z"]', '["1-2-3-4"]'])
def test_malformed_share_lists(text) -> None:
    with pytest.raises(InvalidArgument):
        shares_from_json(text)


def test_index_zero_rejected(manager) -> None:
    shares = manager.split(3, 2, b"zero")
    with pytest.raises(InvalidArgument):
        manager.recover([replace(shares[0], index=0), shares[1]])
