"""
Contract dispatcher mapping named operations onto the four engines.

Every OperationKind has exactly one handler, checked when the dispatcher is
built. Arguments are validated against the operation signature before an
engine is touched, and each operation is atomic: it either returns a
TypedValue or raises without having changed state.
"""

from __future__ import annotations

import base64
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from pydantic import ValidationError

from ledger_engine.config import BackendKind, EngineConfig
from ledger_engine.contract.operations import (
    SIGNATURES,
    ArgKind,
    Invocation,
    OperationKind,
    TypedValue,
)
from ledger_engine.crypto.paillier import HomomorphicAggregator, PublicKey
from ledger_engine.crypto.shamir import ThresholdSecretManager, shares_from_json
from ledger_engine.errors import InvalidArgument, LedgerEngineError
from ledger_engine.storage import (
    EventSequencer,
    FileBackend,
    LedgerBackend,
    MemoryBackend,
    VersionedStore,
    parse_address,
    register_account,
)
from ledger_engine.utils import InMemoryMetrics, Timer, get_logger

logger = get_logger("dispatcher")

Handler = Callable[[List[Any]], TypedValue]


def _coerce(kind: ArgKind, value: Any, position: int) -> Any:
    if kind == ArgKind.INT64:
        if not isinstance(value, int) or isinstance(value, bool):
            raise InvalidArgument(f"Argument {position} must be an integer")
        return value
    if kind == ArgKind.TEXT:
        if not isinstance(value, str):
            raise InvalidArgument(f"Argument {position} must be text")
        return value
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, bytes):
        return value
    raise InvalidArgument(f"Argument {position} must be bytes or text")


def _bind(invocation: Invocation) -> List[Any]:
    kinds, _ = SIGNATURES[invocation.operation]
    if len(invocation.args) != len(kinds):
        raise InvalidArgument(
            f"{invocation.operation.value} takes {len(kinds)} arguments, got {len(invocation.args)}"
        )
    return [_coerce(kind, value, i) for i, (kind, value) in enumerate(zip(kinds, invocation.args))]


def _address(text: str) -> bytes:
    try:
        return parse_address(text)
    except ValueError as exc:
        raise InvalidArgument(str(exc)) from exc


def _entry_json(key: str, value: bytes, version: int) -> Dict[str, Any]:
    try:
        return {"key": key, "value": value.decode("utf-8"), "encoding": "utf-8", "version": version}
    except UnicodeDecodeError:
        return {
            "key": key,
            "value": base64.b64encode(value).decode("ascii"),
            "encoding": "base64",
            "version": version,
        }


class ContractDispatcher:
    """Routes invocations to VersionedStore, EventSequencer, Paillier and Shamir engines."""

    def __init__(
        self,
        store: VersionedStore,
        sequencer: EventSequencer,
        aggregator: Optional[HomomorphicAggregator] = None,
        secret_manager: Optional[ThresholdSecretManager] = None,
        metrics: Optional[InMemoryMetrics] = None,
    ) -> None:
        self.store = store
        self.sequencer = sequencer
        self.aggregator = aggregator or HomomorphicAggregator()
        self.secret_manager = secret_manager or ThresholdSecretManager()
        self.metrics = metrics or InMemoryMetrics()
        self._handlers: Dict[OperationKind, Handler] = {
            OperationKind.REGISTER_DATA_ACCOUNT: self._register_data_account,
            OperationKind.SET_KV: self._set_kv,
            OperationKind.SET_KV_WITH_VERSION: self._set_kv_with_version,
            OperationKind.GET_KV: self._get_kv,
            OperationKind.REGISTER_EVENT_ACCOUNT: self._register_event_account,
            OperationKind.PUBLISH_EVENT: self._publish_event,
            OperationKind.PUBLISH_EVENT_WITH_SEQUENCE: self._publish_event_with_sequence,
            OperationKind.LATEST_SEQUENCE: self._latest_sequence,
            OperationKind.PAILLIER_ADD: self._paillier_add,
            OperationKind.PAILLIER_MUL: self._paillier_mul,
            OperationKind.SECRET_SPLIT: self._secret_split,
            OperationKind.SECRET_RECOVER: self._secret_recover,
        }
        missing = set(OperationKind) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for operations {sorted(m.value for m in missing)}")

    def invoke(self, invocation: Invocation) -> TypedValue:
        """Run one operation and return its typed result."""
        operation = invocation.operation
        outcome = "ok"
        try:
            with Timer(self.metrics, "operation_seconds", operation=operation.value):
                args = _bind(invocation)
                result = self._handlers[operation](args)
        except LedgerEngineError as exc:
            outcome = type(exc).__name__
            logger.info("Operation %s failed: %s", operation.value, exc, extra={"operation": operation.value})
            raise
        except Exception as exc:
            outcome = type(exc).__name__
            logger.error("Operation %s crashed: %s", operation.value, exc, extra={"operation": operation.value})
            raise
        finally:
            self.metrics.emit_counter("operations", operation=operation.value, outcome=outcome)
        expected_type = SIGNATURES[operation][1]
        if result.type != expected_type:
            raise RuntimeError(f"{operation.value} produced {result.type.value}, expected {expected_type.value}")
        logger.debug("Operation %s succeeded", operation.value, extra={"operation": operation.value})
        return result

    def call(self, operation: Union[OperationKind, str], *args: Any) -> TypedValue:
        """Build an Invocation from positional arguments and run it."""
        try:
            invocation = Invocation(operation=operation, args=list(args))
        except ValidationError as exc:
            raise InvalidArgument(f"Invalid invocation of {operation}: {exc.error_count()} error(s)") from exc
        return self.invoke(invocation)

    def invoke_all(self, invocations: Iterable[Invocation]) -> List[TypedValue]:
        """
        Run the operations of one transaction in order.

        Stops at the first failure and re-raises it. Operations that already
        succeeded stay applied; rolling back the transaction is the caller's
        policy.
        """
        results: List[TypedValue] = []
        started = time.monotonic()
        for invocation in invocations:
            results.append(self.invoke(invocation))
        logger.debug("Ran %d operations in %.3fs", len(results), time.monotonic() - started)
        return results

    def _register_data_account(self, args: Sequence[Any]) -> TypedValue:
        return TypedValue.text(self._register(self.store.backend, args[0]).hex())

    def _register_event_account(self, args: Sequence[Any]) -> TypedValue:
        return TypedValue.text(self._register(self.sequencer.backend, args[0]).hex())

    @staticmethod
    def _register(backend: LedgerBackend, seed: str) -> bytes:
        try:
            return register_account(backend, seed)
        except ValueError as exc:
            raise InvalidArgument(str(exc)) from exc

    def _set_kv(self, args: Sequence[Any]) -> TypedValue:
        address, key, value = args
        return TypedValue.int64(self.store.write(_address(address), key, value))

    def _set_kv_with_version(self, args: Sequence[Any]) -> TypedValue:
        address, key, value, version = args
        return TypedValue.int64(self.store.write(_address(address), key, value, expected_version=version))

    def _get_kv(self, args: Sequence[Any]) -> TypedValue:
        address, key = args
        entry = self.store.read(_address(address), key)
        if entry is None:
            return TypedValue.json_value(None)
        return TypedValue.json_value(_entry_json(entry.key, entry.value, entry.version))

    def _publish_event(self, args: Sequence[Any]) -> TypedValue:
        address, topic, content = args
        return TypedValue.int64(self.sequencer.publish(_address(address), topic, content))

    def _publish_event_with_sequence(self, args: Sequence[Any]) -> TypedValue:
        address, topic, content, sequence = args
        return TypedValue.int64(
            self.sequencer.publish(_address(address), topic, content, expected_sequence=sequence)
        )

    def _latest_sequence(self, args: Sequence[Any]) -> TypedValue:
        address, topic = args
        return TypedValue.int64(self.sequencer.latest(_address(address), topic))

    @staticmethod
    def _public_key(text: str) -> PublicKey:
        try:
            return PublicKey.from_text(text)
        except ValueError as exc:
            raise InvalidArgument(f"Invalid public key: {exc}") from exc

    def _paillier_add(self, args: Sequence[Any]) -> TypedValue:
        public_key = self._public_key(args[0])
        c1 = self.aggregator.load_text(public_key, args[1])
        c2 = self.aggregator.load_text(public_key, args[2])
        return TypedValue.text(self.aggregator.add(public_key, c1, c2).to_text())

    def _paillier_mul(self, args: Sequence[Any]) -> TypedValue:
        public_key = self._public_key(args[0])
        ciphertext = self.aggregator.load_text(public_key, args[1])
        return TypedValue.text(self.aggregator.mul(public_key, ciphertext, args[2]).to_text())

    def _secret_split(self, args: Sequence[Any]) -> TypedValue:
        n, t, secret = args
        shares = self.secret_manager.split(n, t, secret)
        return TypedValue.json_value([share.to_text() for share in shares])

    def _secret_recover(self, args: Sequence[Any]) -> TypedValue:
        return TypedValue.raw(self.secret_manager.recover(shares_from_json(args[0])))


def build_backend(kind: BackendKind, path: Optional[str]) -> LedgerBackend:
    if kind == BackendKind.FILE:
        if not path:
            raise ValueError("File backend requires a storage path")
        return FileBackend(path)
    return MemoryBackend()


def build_dispatcher(config: Optional[EngineConfig] = None, metrics: Optional[InMemoryMetrics] = None) -> ContractDispatcher:
    """Wire backends and engines from an EngineConfig."""
    config = config or EngineConfig()
    storage = config.storage
    store = VersionedStore(
        build_backend(storage.backend, storage.data_path),
        retries=config.retry.retries,
        backoff=config.retry.backoff,
    )
    sequencer = EventSequencer(build_backend(storage.backend, storage.event_path))
    aggregator = HomomorphicAggregator(headroom_bits=config.paillier.headroom_bits)
    logger.info("Built dispatcher with %s storage", storage.backend.value)
    return ContractDispatcher(
        store=store,
        sequencer=sequencer,
        aggregator=aggregator,
        secret_manager=ThresholdSecretManager(max_shares=config.shamir.max_shares),
        metrics=metrics,
    )
