"""Reader for Claude Code's local ``stats-cache.json``."""

from __future__ import annotations

import json
import math
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from loguru import logger

from claude_meter.usage.models import LocalStats

STATS_PATH = Path.home() / ".claude" / "stats-cache.json"


def _int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return 0
    return max(0, int(value))


def _decimal(value: Any) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return Decimal("0")
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        return Decimal("0")
    return result if result.is_finite() and result > 0 else Decimal("0")


def read_stats(path: Path | None = None, today: date | None = None) -> LocalStats | None:
    """Return today's and all-time counters, or None if the cache is unusable."""
    target = path or STATS_PATH
    try:
        data = json.loads(target.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as exc:
        logger.debug(f"[usage] Cannot read stats cache {target}: {exc}")
        return None
    if not isinstance(data, dict):
        return None

    day = (today or date.today()).isoformat()
    today_messages = today_sessions = 0
    activity = data.get("dailyActivity")
    for entry in activity if isinstance(activity, list) else []:
        if isinstance(entry, dict) and entry.get("date") == day:
            today_messages = _int(entry.get("messages", entry.get("messageCount")))
            today_sessions = _int(entry.get("sessions", entry.get("sessionCount")))
            break

    return LocalStats(
        today_messages=today_messages,
        today_sessions=today_sessions,
        total_messages=_int(data.get("totalMessages")),
        total_sessions=_int(data.get("totalSessions")),
        total_cost_usd=_decimal(data.get("totalCostUsd")),
    )
