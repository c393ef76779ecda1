from .dispatcher import ContractDispatcher, build_backend, build_dispatcher
from .operations import SIGNATURES, ArgKind, Invocation, OperationKind, TypedValue, ValueType

__all__ = [
    "ContractDispatcher",
    "build_backend",
    "build_dispatcher",
    "SIGNATURES",
    "ArgKind",
    "Invocation",
    "OperationKind",
    "TypedValue",
    "ValueType",
]
