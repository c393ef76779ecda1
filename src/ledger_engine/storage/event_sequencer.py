"""Per-topic event publication with monotonic sequence numbers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from ledger_engine.errors import SequenceConflict
from ledger_engine.storage.backend import LedgerBackend, StaleVersion
from ledger_engine.utils import get_logger

logger = get_logger("event_sequencer")

NO_EVENTS = -1


@dataclass(frozen=True)
class EventRecord:
    """An event published to (namespace, topic) at ``sequence``."""

    namespace: bytes
    topic: str
    content: bytes
    sequence: int


class EventSequencer:
    """
    Event publication guarded by optimistic sequence checks.

    Topics share the backend's versioned-counter mechanism: a topic with
    ``v`` accepted events is at backend version ``v`` and its latest sequence
    is ``v - 1``, so a topic with no events reports -1.
    """

    def __init__(self, backend: LedgerBackend) -> None:
        self.backend = backend

    def latest(self, namespace: bytes, topic: str) -> int:
        """Return the highest published sequence for the topic, or -1 if none."""
        return self.backend.current_version(namespace, topic) - 1

    def publish(self, namespace: bytes, topic: str, content: bytes, expected_sequence: Optional[int] = None) -> int:
        """
        Publish ``content`` as the next event of ``topic`` and return its sequence.

        ``expected_sequence`` is the caller's view of the latest sequence
        (-1 for an empty topic); None publishes after whatever is current.

        Raises:
            NamespaceNotFound: the event account does not exist.
            SequenceConflict: ``expected_sequence`` is not the latest sequence.
        """
        if expected_sequence is not None and expected_sequence < NO_EVENTS:
            raise SequenceConflict(namespace, topic, expected_sequence, self.latest(namespace, topic))
        expected_version = None if expected_sequence is None else expected_sequence + 1
        try:
            version = self.backend.compare_and_append(namespace, topic, content, expected_version)
        except StaleVersion as exc:
            logger.info(
                "Rejected stale publish ns=%s topic=%s expected=%d latest=%d",
                namespace.hex(),
                topic,
                exc.expected - 1,
                exc.actual - 1,
            )
            raise SequenceConflict(namespace, topic, exc.expected - 1, exc.actual - 1) from exc
        sequence = version - 1
        logger.debug("Published ns=%s topic=%s sequence=%d", namespace.hex(), topic, sequence)
        return sequence

    def get(self, namespace: bytes, topic: str, sequence: int) -> Optional[EventRecord]:
        """Return the event published at ``sequence``, or None."""
        if sequence < 0:
            return None
        found = self.backend.get(namespace, topic, sequence + 1)
        if found is None:
            return None
        version, content = found
        return EventRecord(namespace=namespace, topic=topic, content=content, sequence=version - 1)

    def events(self, namespace: bytes, topic: str, start: int = 0, count: Optional[int] = None) -> List[EventRecord]:
        """Return consecutive events of ``topic`` beginning at ``start``."""
        latest = self.latest(namespace, topic)
        end = latest if count is None else min(latest, start + count - 1)
        records: List[EventRecord] = []
        for sequence in range(max(start, 0), end + 1):
            record = self.get(namespace, topic, sequence)
            if record is not None:
                records.append(record)
        return records
