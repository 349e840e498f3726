"""Configuration module for claude-meter."""

from claude_meter.config.loader import get_config_path, load_config, save_config
from claude_meter.config.schema import Config, DisplayMode, Thresholds
from claude_meter.config.store import ConfigError, SettingsStore

__all__ = [
    "Config",
    "ConfigError",
    "DisplayMode",
    "SettingsStore",
    "Thresholds",
    "get_config_path",
    "load_config",
    "save_config",
]
