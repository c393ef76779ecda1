import pytest

from ledger_engine.contract import ContractDispatcher
from ledger_engine.crypto import generate_keypair
from ledger_engine.storage import EventSequencer, MemoryBackend, VersionedStore, register_account

DATA_SEED = "data-account-seed-0123456789abcdef"
EVENT_SEED = "event-account-seed-0123456789abcdef"


@pytest.fixture(scope="session")
def keypair():
    """1024-bit Paillier key pair shared by every test in the session."""
    return generate_keypair(1024)


@pytest.fixture(scope="session")
def other_keypair():
    return generate_keypair(1024)


@pytest.fixture
def store() -> VersionedStore:
    return VersionedStore(MemoryBackend(), backoff=0.001)


@pytest.fixture
def data_ns(store: VersionedStore) -> bytes:
    return register_account(store.backend, DATA_SEED)


@pytest.fixture
def sequencer() -> EventSequencer:
    return EventSequencer(MemoryBackend())


@pytest.fixture
def event_ns(sequencer: EventSequencer) -> bytes:
    return register_account(sequencer.backend, EVENT_SEED)


@pytest.fixture
def dispatcher(store: VersionedStore, sequencer: EventSequencer) -> ContractDispatcher:
    return ContractDispatcher(store=store, sequencer=sequencer)
