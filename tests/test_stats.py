from datetime import date
from decimal import Decimal

from claude_meter.usage.stats import read_stats


def test_reads_today_and_totals(write_json):
    path = write_json("stats-cache.json", {
        "totalMessages": 1200,
        "totalSessions": 85,
        "totalCostUsd": 42.5,
        "dailyActivity": [
            {"date": "2026-10-17", "messages": 10, "sessions": 1},
            {"date": "2026-10-18", "messages": 33, "sessions": 4},
        ],
    })
    stats = read_stats(path, today=date(2026, 10, 18))
    assert stats.today_messages == 33
    assert stats.today_sessions == 4
    assert stats.total_messages == 1200
    assert stats.total_sessions == 85
    assert stats.total_cost_usd == Decimal("42.5")


def test_no_activity_today_counts_zero(write_json):
    path = write_json("stats-cache.json", {"totalMessages": 5, "dailyActivity": "broken"})
    stats = read_stats(path, today=date(2026, 10, 18))
    assert stats.today_messages == 0
    assert stats.total_messages == 5
    assert stats.total_cost_usd == Decimal("0")


def test_missing_or_invalid_cache_is_none(tmp_path):
    assert read_stats(tmp_path / "nope.json") is None
    bad = tmp_path / "bad.json"
    bad.write_text("[]", encoding="utf-8")
    assert read_stats(bad) is None
    bad.write_text("{oops", encoding="utf-8")
    assert read_stats(bad) is None
