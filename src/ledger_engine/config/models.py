import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional


class BackendKind(str, Enum):
    MEMORY = "memory"
    FILE = "file"


@dataclass
class StorageConfig:
    backend: BackendKind = BackendKind.MEMORY
    data_path: Optional[str] = None
    event_path: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Optional[Dict[str, Any]]) -> "StorageConfig":
        if not data:
            return cls()
        try:
            backend = BackendKind(str(data.get("backend", "memory")))
        except ValueError as exc:
            raise ValueError(f"Unknown storage backend '{data.get('backend')}'") from exc
        data_path = data.get("data_path")
        event_path = data.get("event_path")
        if backend == BackendKind.FILE:
            if not data_path or not event_path:
                raise ValueError("File storage requires both 'data_path' and 'event_path'")
            if str(data_path) == str(event_path):
                raise ValueError("'data_path' and 'event_path' must differ")
        return cls(
            backend=backend,
            data_path=str(data_path) if data_path else None,
            event_path=str(event_path) if event_path else None,
        )


@dataclass
class PaillierConfig:
    key_length: int = 2048
    headroom_bits: int = 0

    @classmethod
    def from_mapping(cls, data: Optional[Dict[str, Any]]) -> "PaillierConfig":
        base = cls()
        if not data:
            return base
        for key, value in data.items():
            if not hasattr(base, key):
                raise ValueError(f"Unknown paillier key '{key}'")
            setattr(base, key, int(value))
        if base.key_length < 1024 or base.key_length % 256 != 0:
            raise ValueError("key_length must be at least 1024 and a multiple of 256")
        if base.headroom_bits < 0 or base.headroom_bits >= base.key_length // 2:
            raise ValueError("headroom_bits must satisfy 0 <= headroom_bits < key_length / 2")
        return base


@dataclass
class RetryConfig:
    retries: int = 3
    backoff: float = 0.01

    @classmethod
    def from_mapping(cls, data: Optional[Dict[str, Any]]) -> "RetryConfig":
        if not data:
            return cls()
        retries = int(data.get("retries", 3))
        backoff = float(data.get("backoff", 0.01))
        if retries < 0:
            raise ValueError("retries must be non-negative")
        if backoff <= 0:
            raise ValueError("backoff must be positive")
        return cls(retries=retries, backoff=backoff)


@dataclass
class ShamirConfig:
    max_shares: int = 1024

    @classmethod
    def from_mapping(cls, data: Optional[Dict[str, Any]]) -> "ShamirConfig":
        if not data:
            return cls()
        unknown = set(data) - {"max_shares"}
        if unknown:
            raise ValueError(f"Unknown shamir keys {sorted(unknown)}")
        max_shares = int(data.get("max_shares", 1024))
        if not 1 <= max_shares <= 2**32 - 1:
            raise ValueError("max_shares must be between 1 and 2**32 - 1")
        return cls(max_shares=max_shares)


@dataclass
class EngineConfig:
    storage: StorageConfig = field(default_factory=StorageConfig)
    paillier: PaillierConfig = field(default_factory=PaillierConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    shamir: ShamirConfig = field(default_factory=ShamirConfig)
    log_level: str = "INFO"
    json_logs: bool = False

    @classmethod
    def from_file(cls, path: Path) -> "EngineConfig":
        try:
            data = json.loads(Path(path).read_text())
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid engine config JSON at {path}: {exc}") from exc
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        if not isinstance(data, dict):
            raise ValueError("Engine config must be a JSON object")
        unknown = set(data) - {"storage", "paillier", "retry", "shamir", "log_level", "json_logs"}
        if unknown:
            raise ValueError(f"Unknown engine config keys {sorted(unknown)}")
        log_level = str(data.get("log_level", "INFO")).upper()
        if log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level '{log_level}'")
        return cls(
            storage=StorageConfig.from_mapping(data.get("storage")),
            paillier=PaillierConfig.from_mapping(data.get("paillier")),
            retry=RetryConfig.from_mapping(data.get("retry")),
            shamir=ShamirConfig.from_mapping(data.get("shamir")),
            log_level=log_level,
            json_logs=bool(data.get("json_logs", False)),
        )
