"""Config file I/O for aobridge.

The JSON file is read through BridgeConfig's own JsonConfigSettingsSource,
which ranks below the environment: AOBRIDGE_* variables always win over
file values, and nothing from the file is passed as init kwargs.
"""

from __future__ import annotations

import json
from pathlib import Path

from loguru import logger
from pydantic_settings import SettingsConfigDict

from aobridge.config.schema import BridgeConfig

_DEFAULT_CONFIG_DIR = Path.home() / ".aobridge"
_DEFAULT_CONFIG_FILE = _DEFAULT_CONFIG_DIR / "config.json"


def get_config_path() -> Path:
    return _DEFAULT_CONFIG_FILE


def _resolve(path: Path | None) -> Path:
    return (path or _DEFAULT_CONFIG_FILE).expanduser().resolve()


def _settings_for(config_path: Path) -> type[BridgeConfig]:
    """BridgeConfig whose JSON source reads config_path instead of the default file."""

    class FileBridgeConfig(BridgeConfig):
        model_config = SettingsConfigDict(json_file=config_path)

    return FileBridgeConfig


def load_config(path: Path | None = None) -> BridgeConfig:
    """Load config from `path` (default ~/.aobridge/config.json).

    A missing file yields defaults. Environment variables with the
    AOBRIDGE_ prefix override file values; nested keys use __ as the
    delimiter (e.g. AOBRIDGE_STORAGE__WALLET_ADDRESS).
    """
    config_path = _resolve(path)
    if config_path.exists():
        logger.debug("Loading config from {}", config_path)
    else:
        logger.debug("No config file at {}, using defaults and environment", config_path)

    loaded = _settings_for(config_path)()
    return BridgeConfig.model_construct(**{name: getattr(loaded, name) for name in BridgeConfig.model_fields})


def save_config(config: BridgeConfig, path: Path | None = None) -> Path:
    """Write config to disk as JSON, atomically (temp file then rename).

    Secrets are written in clear text so the file can be loaded again.
    """
    config_path = _resolve(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = config.model_dump(mode="json")
    _stringify_paths(data)

    tmp_path = config_path.with_suffix(".tmp")
    tmp_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    tmp_path.rename(config_path)
    logger.info("Saved config to {}", config_path)
    return config_path


def _stringify_paths(obj: dict) -> None:
    """Recursively convert any remaining Path-like values to strings."""
    for key, value in obj.items():
        if isinstance(value, Path):
            obj[key] = str(value)
        elif isinstance(value, dict):
            _stringify_paths(value)
