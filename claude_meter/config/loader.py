"""Load and save the claude-meter config file."""

from __future__ import annotations

import json
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from claude_meter.config.schema import Config

_CONFIG_PATH = Path.home() / ".claude-meter" / "config.json"


def get_config_path() -> Path:
    """Return the default config file path."""
    return _CONFIG_PATH


def load_config(path: Path | None = None) -> Config:
    """Load config from disk, falling back to defaults.

    A missing file silently yields defaults; an unreadable or invalid one is
    logged and also yields defaults so the monitor still starts.
    """
    target = path or get_config_path()
    if not target.exists():
        return Config()

    try:
        data = json.loads(target.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning(f"[config] Cannot read {target}: {exc}")
        return Config()

    if not isinstance(data, dict):
        logger.warning(f"[config] Ignoring {target}: top-level value is not an object")
        return Config()

    try:
        return Config(**data)
    except ValidationError as exc:
        logger.warning(f"[config] Invalid config in {target}, using defaults: {exc}")
        return Config()


def save_config(config: Config, path: Path | None = None) -> Path:
    """Persist config to disk and return the written path."""
    target = path or get_config_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = config.model_dump(mode="json")
    target.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return target
