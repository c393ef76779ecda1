from .models import BackendKind, EngineConfig, PaillierConfig, RetryConfig, ShamirConfig, StorageConfig
from .system import ENGINE_CONFIG_ENV_VAR, load_engine_config, resolve_engine_config_path

__all__ = [
    "BackendKind",
    "EngineConfig",
    "PaillierConfig",
    "RetryConfig",
    "ShamirConfig",
    "StorageConfig",
    "ENGINE_CONFIG_ENV_VAR",
    "load_engine_config",
    "resolve_engine_config_path",
]
