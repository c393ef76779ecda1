"""Utilities for locating and loading the engine configuration file."""

import os
from pathlib import Path
from typing import Optional, Tuple

from ledger_engine.config.models import EngineConfig

ENGINE_CONFIG_FILENAME = "engine-config.json"
ENGINE_CONFIG_ENV_VAR = "LEDGER_ENGINE_CONFIG"


def resolve_engine_config_path(base_dir: Optional[Path] = None) -> Path:
    """
    Resolve the path to the engine configuration file.

    The LEDGER_ENGINE_CONFIG environment variable wins; relative values are
    taken from the current directory. Otherwise the file is expected at
    config/engine-config.json under ``base_dir`` (default: current directory).
    """
    env_value = os.getenv(ENGINE_CONFIG_ENV_VAR)
    if env_value:
        candidate = Path(env_value)
        if not candidate.is_absolute():
            candidate = (Path.cwd() / candidate).resolve()
        return candidate
    root = Path(base_dir) if base_dir is not None else Path.cwd()
    return (root / "config" / ENGINE_CONFIG_FILENAME).resolve()


def load_engine_config(base_dir: Optional[Path] = None) -> Tuple[EngineConfig, Path]:
    """
    Load the engine configuration.

    Returns:
        (config, resolved_path). A missing file yields the defaults.

    Raises:
        ValueError: if the JSON is invalid or fails validation.
    """
    path = resolve_engine_config_path(base_dir)
    if not path.exists():
        return EngineConfig(), path
    return EngineConfig.from_file(path), path
