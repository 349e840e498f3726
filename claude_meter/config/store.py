"""Live settings holder shared by the CLI, the GUI shell and the monitor.

The current ``Config`` is replaced as a whole on every accepted change, so
readers (e.g. the monitor re-reading the poll interval) never see a
half-applied update. Rejected changes raise ``ConfigError`` and leave the
previous config in place.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from claude_meter.config.loader import save_config
from claude_meter.config.schema import Config, DisplayMode


class ConfigError(ValueError):
    """Rejected configuration change."""


class SettingsStore:
    def __init__(self, config: Config | None = None, path: Path | None = None) -> None:
        self._config = config or Config()
        self._path = path
        self._lock = threading.Lock()

    @property
    def config(self) -> Config:
        return self._config

    @property
    def path(self) -> Path | None:
        return self._path

    def update(self, **sections: dict[str, Any]) -> Config:
        """Merge partial section updates, validate, then swap and persist.

        Example: ``store.update(thresholds={"warning_pct": 60})``.
        """
        with self._lock:
            data = self._config.model_dump()
            for name, changes in sections.items():
                if name not in data:
                    raise ConfigError(f"Unknown config section: {name}")
                data[name] = {**data[name], **changes}
            try:
                new_config = Config(**data)
            except ValidationError as exc:
                messages = "; ".join(err["msg"] for err in exc.errors())
                logger.warning(f"[config] Rejected change {sections}: {messages}")
                raise ConfigError(messages) from exc

            self._config = new_config
            if self._path is not None:
                save_config(new_config, self._path)
            logger.debug(f"[config] Applied change {sections}")
            return new_config

    def set_thresholds(self, warning_pct: int, critical_pct: int) -> Config:
        return self.update(thresholds={"warning_pct": warning_pct, "critical_pct": critical_pct})

    def set_poll_interval(self, minutes: int) -> Config:
        return self.update(polling={"interval_minutes": minutes})

    def set_display(
        self,
        mode: DisplayMode | str | None = None,
        show_mascot: bool | None = None,
        show_percentage: bool | None = None,
    ) -> Config:
        changes: dict[str, Any] = {}
        if mode is not None:
            changes["mode"] = mode
        if show_mascot is not None:
            changes["show_mascot"] = show_mascot
        if show_percentage is not None:
            changes["show_percentage"] = show_percentage
        return self.update(display=changes)
