"""Normalise the usage endpoint payload into typed windows.

The upstream schema is informal and changes without notice, so everything
that knows about field names lives here. Observed shape::

    {
      "five_hour":  {"utilization": 37.0, "resets_at": "2026-10-18T14:00:00Z"},
      "seven_day":  {"utilization": 42.0, "resets_at": "2026-10-22T09:00:00Z"},
      "seven_day_opus":   {"utilization": 3.0},
      "seven_day_sonnet": {"utilization": 40.0}
    }

Accepted alternatives per window: ``used_fraction``/``fraction`` (0–1),
``used``/``limit`` pair, ``resets_in_seconds``/``resets_in`` relative reset,
plus optional message/session counts and cost.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from loguru import logger

from claude_meter.usage.errors import ParseError
from claude_meter.usage.models import ParsedUsage, RawPayload, UsageWindow

_SESSION_KEYS = ("five_hour", "session")
_WEEKLY_KEYS = ("seven_day", "weekly")
_MODEL_KEYS = {
    "seven_day_opus": "opus",
    "seven_day_sonnet": "sonnet",
}


def _number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _fraction(entry: Mapping[str, Any]) -> float | None:
    """Return the raw (unclamped) used fraction, or None if absent."""
    for key in ("used_fraction", "fraction"):
        value = _number(entry.get(key))
        if value is not None:
            return value

    utilization = _number(entry.get("utilization"))
    if utilization is not None:
        return utilization / 100.0

    used = _number(entry.get("used"))
    limit = _number(entry.get("limit"))
    if used is not None and limit is not None:
        if limit <= 0:
            return 1.0 if used > 0 else 0.0
        return used / limit

    return None


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        ts = datetime.fromisoformat(text)
    except ValueError:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _reset_at(entry: Mapping[str, Any], fetched_at: datetime) -> datetime | None:
    absolute = _parse_timestamp(entry.get("resets_at"))
    if absolute is not None:
        return absolute
    for key in ("resets_in_seconds", "resets_in"):
        seconds = _number(entry.get(key))
        if seconds is not None:
            return fetched_at + timedelta(seconds=max(0.0, seconds))
    return None


def _count(entry: Mapping[str, Any], *keys: str) -> int:
    for key in keys:
        value = _number(entry.get(key))
        if value is not None:
            return max(0, int(value))
    return 0


def _cost(entry: Mapping[str, Any]) -> Decimal:
    for key in ("cost", "cost_usd"):
        value = entry.get(key)
        if value is None or isinstance(value, bool):
            continue
        try:
            cost = Decimal(str(value))
        except InvalidOperation:
            continue
        if cost.is_finite():
            return max(Decimal("0"), cost)
    return Decimal("0")


def parse_window(entry: Any, fetched_at: datetime) -> UsageWindow | None:
    """Build one window; ``None`` when the entry carries no usable fraction."""
    if not isinstance(entry, Mapping):
        return None
    fraction = _fraction(entry)
    if fraction is None:
        return None
    return UsageWindow(
        used_fraction=fraction,
        reset_at=_reset_at(entry, fetched_at),
        message_count=_count(entry, "message_count", "messages"),
        session_count=_count(entry, "session_count", "sessions"),
        cost=_cost(entry),
    )


def _first_window(payload: Mapping[str, Any], keys: tuple[str, ...], fetched_at: datetime) -> UsageWindow | None:
    for key in keys:
        if key in payload:
            window = parse_window(payload[key], fetched_at)
            if window is not None:
                return window
    return None


def parse(raw: RawPayload, fetched_at: datetime) -> ParsedUsage:
    """Parse a decoded payload into session/weekly windows.

    Raises ``ParseError`` only when the payload is not a JSON object; missing
    or broken windows resolve to ``None``.
    """
    if not isinstance(raw, Mapping):
        raise ParseError(f"Usage payload is {type(raw).__name__}, expected object")

    session = _first_window(raw, _SESSION_KEYS, fetched_at)
    weekly = _first_window(raw, _WEEKLY_KEYS, fetched_at)

    model_fractions: dict[str, float] = {}
    for key, name in _MODEL_KEYS.items():
        entry = raw.get(key)
        fraction = _fraction(entry) if isinstance(entry, Mapping) else None
        if fraction is not None:
            model_fractions[name] = min(1.0, max(0.0, fraction))

    logger.debug(
        "[usage] Parsed usage: "
        f"session={session.used_percent if session else None}, "
        f"weekly={weekly.used_percent if weekly else None}, "
        f"models={model_fractions}"
    )
    return ParsedUsage(session=session, weekly=weekly, model_fractions=model_fractions)
