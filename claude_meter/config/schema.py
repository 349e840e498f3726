"""Configuration schema for claude-meter."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings

USAGE_API_URL = "https://api.anthropic.com/api/oauth/usage"


class DisplayMode(str, Enum):
    """Which usage window(s) the panel shows."""

    SESSION_ONLY = "session"
    WEEKLY_ONLY = "weekly"
    BOTH = "both"

    @property
    def windows(self) -> tuple[str, ...]:
        if self is DisplayMode.SESSION_ONLY:
            return ("session",)
        if self is DisplayMode.WEEKLY_ONLY:
            return ("weekly",)
        return ("session", "weekly")


class Thresholds(BaseModel):
    """Warning/critical percentages for severity colouring."""

    model_config = ConfigDict(frozen=True)

    warning_pct: int = Field(50, ge=0, le=100)
    critical_pct: int = Field(80, ge=0, le=100)

    @model_validator(mode="after")
    def _check_order(self) -> "Thresholds":
        if self.warning_pct >= self.critical_pct:
            raise ValueError(
                f"warning_pct ({self.warning_pct}) must be lower than "
                f"critical_pct ({self.critical_pct})"
            )
        return self


class DisplayConfig(BaseModel):
    """Panel display options (consumed by the GUI shell only)."""

    mode: DisplayMode = DisplayMode.BOTH
    show_mascot: bool = True
    show_percentage: bool = False


class PollingConfig(BaseModel):
    """Usage endpoint polling."""

    interval_minutes: int = Field(60, ge=5, le=120)
    request_timeout_s: float = Field(5.0, gt=0, le=30)
    usage_url: str = USAGE_API_URL


class PathsConfig(BaseModel):
    """Local Claude Code files."""

    claude_dir: str = "~/.claude"
    credentials: str = "~/.claude/.credentials.json"
    stats_cache: str = "~/.claude/stats-cache.json"


class ActionsConfig(BaseModel):
    """External commands launched from the panel menu."""

    terminal_command: str = "x-terminal-emulator -e claude"
    file_manager_command: str = "xdg-open"


class Config(BaseSettings):
    """Root configuration for claude-meter."""

    thresholds: Thresholds = Field(default_factory=Thresholds)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    actions: ActionsConfig = Field(default_factory=ActionsConfig)

    @property
    def poll_interval_s(self) -> float:
        return float(self.polling.interval_minutes * 60)

    @property
    def credentials_path(self) -> Path:
        return Path(self.paths.credentials).expanduser()

    @property
    def stats_cache_path(self) -> Path:
        return Path(self.paths.stats_cache).expanduser()

    @property
    def claude_dir_path(self) -> Path:
        return Path(self.paths.claude_dir).expanduser()

    model_config = ConfigDict(
        env_prefix="CLAUDE_METER_",
        env_nested_delimiter="__",
        extra="ignore",
    )
