"""Usage data models for quota monitoring."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Mapping

from claude_meter.usage.errors import ErrorKind

RawPayload = Any


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Credentials:
    """OAuth credentials read from the local trust store.

    Held only for the duration of one request, never cached between polls.
    """

    access_token: str
    plan: str | None = None
    expires_at: datetime | None = None

    def __repr__(self) -> str:
        return f"Credentials(plan={self.plan!r}, expires_at={self.expires_at!r})"


@dataclass(frozen=True)
class UsageWindow:
    """One rate-limit window (5h session or 7d weekly).

    ``reset_at`` is always absolute so a consumer reading the window later
    still gets an accurate countdown from ``remaining()``.
    """

    used_fraction: float = 0.0      # 0.0–1.0, clamped
    reset_at: datetime | None = None
    message_count: int = 0
    session_count: int = 0
    cost: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        object.__setattr__(self, "used_fraction", min(1.0, max(0.0, float(self.used_fraction))))
        object.__setattr__(self, "message_count", max(0, int(self.message_count)))
        object.__setattr__(self, "session_count", max(0, int(self.session_count)))
        object.__setattr__(self, "cost", max(Decimal("0"), Decimal(self.cost)))

    @property
    def used_percent(self) -> float:
        return self.used_fraction * 100.0

    def remaining(self, now: datetime | None = None) -> timedelta | None:
        """Time left until the window resets, measured at read time."""
        if self.reset_at is None:
            return None
        left = self.reset_at - (now or utc_now())
        return max(left, timedelta(0))


@dataclass(frozen=True)
class LocalStats:
    """Message/session/cost counters from the local stats cache."""

    today_messages: int = 0
    today_sessions: int = 0
    total_messages: int = 0
    total_sessions: int = 0
    total_cost_usd: Decimal = Decimal("0")


@dataclass(frozen=True)
class ParsedUsage:
    """Normalised result of one usage payload."""

    session: UsageWindow | None = None
    weekly: UsageWindow | None = None
    model_fractions: Mapping[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class Snapshot:
    """One immutable observation of usage and process state.

    A logged-out snapshot never carries usage windows.
    """

    session: UsageWindow | None = None
    weekly: UsageWindow | None = None
    running_processes: int = 0
    logged_in: bool = False
    fetched_at: datetime = field(default_factory=utc_now)
    error: ErrorKind | None = None
    plan: str | None = None
    model_fractions: Mapping[str, float] = field(default_factory=dict)
    stats: LocalStats | None = None
    last_success_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.logged_in:
            object.__setattr__(self, "session", None)
            object.__setattr__(self, "weekly", None)
            object.__setattr__(self, "model_fractions", {})
        object.__setattr__(self, "running_processes", max(0, int(self.running_processes)))
        object.__setattr__(self, "model_fractions", MappingProxyType(dict(self.model_fractions)))

    def window(self, name: str) -> UsageWindow | None:
        """Return the ``"session"`` or ``"weekly"`` window."""
        if name not in ("session", "weekly"):
            raise KeyError(name)
        return getattr(self, name)

    @property
    def has_error(self) -> bool:
        return self.error is not None

    def to_dict(self, now: datetime | None = None) -> dict[str, Any]:
        """JSON-friendly view; remaining seconds are computed against ``now``."""
        now = now or utc_now()

        def _window(w: UsageWindow | None) -> dict[str, Any] | None:
            if w is None:
                return None
            remaining = w.remaining(now)
            return {
                "used_fraction": w.used_fraction,
                "reset_at": w.reset_at.isoformat() if w.reset_at else None,
                "remaining_s": int(remaining.total_seconds()) if remaining is not None else None,
                "message_count": w.message_count,
                "session_count": w.session_count,
                "cost": str(w.cost),
            }

        stats = None
        if self.stats is not None:
            stats = {
                "today_messages": self.stats.today_messages,
                "today_sessions": self.stats.today_sessions,
                "total_messages": self.stats.total_messages,
                "total_sessions": self.stats.total_sessions,
                "total_cost_usd": str(self.stats.total_cost_usd),
            }

        return {
            "logged_in": self.logged_in,
            "plan": self.plan,
            "session": _window(self.session),
            "weekly": _window(self.weekly),
            "model_fractions": dict(self.model_fractions),
            "running_processes": self.running_processes,
            "fetched_at": self.fetched_at.isoformat(),
            "last_success_at": self.last_success_at.isoformat() if self.last_success_at else None,
            "error": self.error.value if self.error else None,
            "stats": stats,
        }
