"""Closed set of contract operations and the typed values they exchange."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Dict, List, Tuple, Union

from pydantic import BaseModel, ConfigDict, StrictBytes, StrictInt, StrictStr

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class OperationKind(str, Enum):
    REGISTER_DATA_ACCOUNT = "registerDataAccount"
    SET_KV = "setKV"
    SET_KV_WITH_VERSION = "setKVWithVersion"
    GET_KV = "getKV"
    REGISTER_EVENT_ACCOUNT = "registerEventAccount"
    PUBLISH_EVENT = "publishEvent"
    PUBLISH_EVENT_WITH_SEQUENCE = "publishEventWithSequence"
    LATEST_SEQUENCE = "latestSequence"
    PAILLIER_ADD = "paillierAdd"
    PAILLIER_MUL = "paillierMul"
    SECRET_SPLIT = "secretSplit"
    SECRET_RECOVER = "secretRecover"


class ValueType(str, Enum):
    """The five wire shapes an operation result can take."""

    TEXT = "TEXT"
    JSON = "JSON"
    INT64 = "INT64"
    BOOLEAN = "BOOLEAN"
    BYTES = "BYTES"


class ArgKind(str, Enum):
    TEXT = "text"
    INT64 = "int64"
    # Raw bytes; text is accepted and encoded as UTF-8.
    BYTES = "bytes"


SIGNATURES: Dict[OperationKind, Tuple[Tuple[ArgKind, ...], ValueType]] = {
    OperationKind.REGISTER_DATA_ACCOUNT: ((ArgKind.TEXT,), ValueType.TEXT),
    OperationKind.SET_KV: ((ArgKind.TEXT, ArgKind.TEXT, ArgKind.BYTES), ValueType.INT64),
    OperationKind.SET_KV_WITH_VERSION: (
        (ArgKind.TEXT, ArgKind.TEXT, ArgKind.BYTES, ArgKind.INT64),
        ValueType.INT64,
    ),
    OperationKind.GET_KV: ((ArgKind.TEXT, ArgKind.TEXT), ValueType.JSON),
    OperationKind.REGISTER_EVENT_ACCOUNT: ((ArgKind.TEXT,), ValueType.TEXT),
    OperationKind.PUBLISH_EVENT: ((ArgKind.TEXT, ArgKind.TEXT, ArgKind.BYTES), ValueType.INT64),
    OperationKind.PUBLISH_EVENT_WITH_SEQUENCE: (
        (ArgKind.TEXT, ArgKind.TEXT, ArgKind.BYTES, ArgKind.INT64),
        ValueType.INT64,
    ),
    OperationKind.LATEST_SEQUENCE: ((ArgKind.TEXT, ArgKind.TEXT), ValueType.INT64),
    OperationKind.PAILLIER_ADD: ((ArgKind.TEXT, ArgKind.TEXT, ArgKind.TEXT), ValueType.TEXT),
    OperationKind.PAILLIER_MUL: ((ArgKind.TEXT, ArgKind.TEXT, ArgKind.INT64), ValueType.TEXT),
    OperationKind.SECRET_SPLIT: ((ArgKind.INT64, ArgKind.INT64, ArgKind.BYTES), ValueType.JSON),
    OperationKind.SECRET_RECOVER: ((ArgKind.TEXT,), ValueType.BYTES),
}

Argument = Union[StrictInt, StrictStr, StrictBytes]


class Invocation(BaseModel):
    """A single named operation with positional arguments."""

    model_config = ConfigDict(frozen=True)

    operation: OperationKind
    args: List[Argument] = []


class TypedValue(BaseModel):
    """Operation result tagged with its wire shape."""

    model_config = ConfigDict(frozen=True)

    type: ValueType
    payload: bytes

    @classmethod
    def text(cls, value: str) -> "TypedValue":
        return cls(type=ValueType.TEXT, payload=value.encode("utf-8"))

    @classmethod
    def json_value(cls, value: Any) -> "TypedValue":
        return cls(type=ValueType.JSON, payload=json.dumps(value, sort_keys=True).encode("utf-8"))

    @classmethod
    def int64(cls, value: int) -> "TypedValue":
        if not INT64_MIN <= value <= INT64_MAX:
            raise OverflowError(f"{value} does not fit in a signed 64-bit integer")
        return cls(type=ValueType.INT64, payload=value.to_bytes(8, byteorder="big", signed=True))

    @classmethod
    def boolean(cls, value: bool) -> "TypedValue":
        return cls(type=ValueType.BOOLEAN, payload=b"\x01" if value else b"\x00")

    @classmethod
    def raw(cls, value: bytes) -> "TypedValue":
        return cls(type=ValueType.BYTES, payload=bytes(value))

    def _expect(self, *types: ValueType) -> None:
        if self.type not in types:
            raise TypeError(f"Value of type {self.type.value} cannot be read as {types[0].value}")

    def as_text(self) -> str:
        self._expect(ValueType.TEXT, ValueType.JSON)
        return self.payload.decode("utf-8")

    def as_json(self) -> Any:
        self._expect(ValueType.JSON)
        return json.loads(self.payload.decode("utf-8"))

    def as_int(self) -> int:
        self._expect(ValueType.INT64)
        return int.from_bytes(self.payload, byteorder="big", signed=True)

    def as_bool(self) -> bool:
        self._expect(ValueType.BOOLEAN)
        return self.payload[:1] == b"\x01"

    def as_bytes(self) -> bytes:
        return self.payload
