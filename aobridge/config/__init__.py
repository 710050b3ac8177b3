"""Configuration loading for aobridge."""

from aobridge.config.loader import get_config_path, load_config, save_config
from aobridge.config.schema import BridgeConfig

__all__ = ["BridgeConfig", "get_config_path", "load_config", "save_config"]
