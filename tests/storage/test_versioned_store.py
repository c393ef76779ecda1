import threading

import pytest

from ledger_engine.errors import NamespaceNotFound, VersionConflict
from ledger_engine.storage import VersionedStore
from ledger_engine.utils import RetryError


def test_optimistic_write_scenario(store: VersionedStore, data_ns: bytes) -> None:
    assert store.write(data_ns, "k", b"v", expected_version=0) == 1
    with pytest.raises(VersionConflict) as info:
        store.write(data_ns, "k", b"v2", expected_version=0)
    assert info.value.expected == 0
    assert info.value.actual == 1
    assert store.write(data_ns, "k", b"v2", expected_version=1) == 2
    entry = store.read(data_ns, "k")
    assert entry is not None
    assert entry.value == b"v2"
    assert entry.version == 2


def test_versions_increase_by_one(store: VersionedStore, data_ns: bytes) -> None:
    version = 0
    for i in range(5):
        version = store.write(data_ns, "counter", str(i).encode(), expected_version=version)
        assert version == i + 1


def test_stale_write_leaves_entry_unchanged(store: VersionedStore, data_ns: bytes) -> None:
    store.write(data_ns, "k", b"one")
    store.write(data_ns, "k", b"two")
    with pytest.raises(VersionConflict):
        store.write(data_ns, "k", b"stale", expected_version=1)
    entry = store.read(data_ns, "k")
    assert entry is not None
    assert (entry.value, entry.version) == (b"two", 2)


def test_unconditional_write_always_succeeds(store: VersionedStore, data_ns: bytes) -> None:
    assert store.write(data_ns, "k", b"a") == 1
    assert store.write(data_ns, "k", b"b") == 2


def test_negative_expected_version_conflicts(store: VersionedStore, data_ns: bytes) -> None:
    with pytest.raises(VersionConflict):
        store.write(data_ns, "k", b"a", expected_version=-1)
    assert store.read(data_ns, "k") is None


def test_read_absent_and_version_sentinel(store: VersionedStore, data_ns: bytes) -> None:
    assert store.read(data_ns, "missing") is None
    assert store.version(data_ns, "missing") is None
    store.write(data_ns, "missing", b"x")
    assert store.version(data_ns, "missing") == 1


def test_historical_read(store: VersionedStore, data_ns: bytes) -> None:
    store.write(data_ns, "k", b"first")
    store.write(data_ns, "k", b"second")
    old = store.read(data_ns, "k", version=1)
    assert old is not None
    assert old.value == b"first"


def test_write_to_unknown_namespace(store: VersionedStore) -> None:
    with pytest.raises(NamespaceNotFound):
        store.write(b"\x09" * 20, "k", b"v")


def test_update_applies_function(store: VersionedStore, data_ns: bytes) -> None:
    def increment(current):
        return str(int(current or b"0") + 1).encode()

    store.update(data_ns, "n", increment)
    store.update(data_ns, "n", increment)
    entry = store.read(data_ns, "n")
    assert entry is not None
    assert entry.value == b"2"


def test_update_retries_after_conflict(store: VersionedStore, data_ns: bytes) -> None:
    calls = {"count": 0}

    def interfere(current):
        calls["count"] += 1
        if calls["count"] == 1:
            store.write(data_ns, "k", b"concurrent")
        return (current or b"") + b"+"

    store.update(data_ns, "k", interfere)
    entry = store.read(data_ns, "k")
    assert entry is not None
    assert entry.value == b"concurrent+"
    assert calls["count"] == 2


def test_update_gives_up(store: VersionedStore, data_ns: bytes) -> None:
    def always_interfere(current):
        store.write(data_ns, "k", b"x")
        return b"y"

    with pytest.raises(RetryError) as info:
        store.update(data_ns, "k", always_interfere, retries=2)
    assert isinstance(info.value.last_error, VersionConflict)


def test_concurrent_writers_with_same_expected_version(store: VersionedStore, data_ns: bytes) -> None:
    results = []
    lock = threading.Lock()
    barrier = threading.Barrier(6)

    def writer(i: int) -> None:
        barrier.wait()
        try:
            version = store.write(data_ns, "race", str(i).encode(), expected_version=0)
            outcome = ("won", version)
        except VersionConflict:
            outcome = ("lost", None)
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=writer, args=(i,)) for i in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert [r for r in results if r[0] == "won"] == [("won", 1)]
    assert len([r for r in results if r[0] == "lost"]) == 5
