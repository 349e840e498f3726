from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from claude_meter.usage.errors import ErrorKind, ParseError
from claude_meter.usage.parser import parse

from tests.conftest import NOW, PAYLOAD


def test_parses_observed_payload():
    parsed = parse(PAYLOAD, NOW)
    assert parsed.session.used_fraction == pytest.approx(0.37)
    assert parsed.session.reset_at == datetime(2026, 10, 18, 14, 0, tzinfo=timezone.utc)
    assert parsed.weekly.used_fraction == pytest.approx(0.42)
    assert parsed.weekly.reset_at == datetime(2026, 10, 22, 9, 0, tzinfo=timezone.utc)
    assert parsed.model_fractions == {"opus": pytest.approx(0.03), "sonnet": pytest.approx(0.40)}


@pytest.mark.parametrize(
    "entry",
    [
        {"used_fraction": 1.5},
        {"fraction": 3},
        {"utilization": 250.0},
        {"used": 120, "limit": 100},
    ],
)
def test_over_limit_saturates(entry):
    parsed = parse({"five_hour": entry}, NOW)
    assert parsed.session.used_fraction == 1.0


def test_missing_window_resolves_to_none():
    parsed = parse({"seven_day": {"utilization": 10}}, NOW)
    assert parsed.session is None
    assert parsed.weekly.used_fraction == pytest.approx(0.10)


def test_window_without_fraction_is_none():
    parsed = parse({"five_hour": {"resets_at": "2026-10-18T14:00:00Z"}, "seven_day": None}, NOW)
    assert parsed.session is None
    assert parsed.weekly is None


def test_relative_reset_is_made_absolute_from_fetch_time():
    parsed = parse({"five_hour": {"fraction": 0.2, "resets_in_seconds": 3600}}, NOW)
    assert parsed.session.reset_at == NOW + timedelta(hours=1)


def test_unparseable_reset_is_none():
    parsed = parse({"five_hour": {"fraction": 0.2, "resets_at": "soon"}}, NOW)
    assert parsed.session.reset_at is None


def test_fallback_keys_and_counts():
    parsed = parse(
        {
            "session": {"used": 30, "limit": 60, "messages": 12, "sessions": "2", "cost_usd": "1.25"},
            "weekly": {"fraction": 0.1, "message_count": -4, "cost": "abc"},
        },
        NOW,
    )
    assert parsed.session.used_fraction == 0.5
    assert parsed.session.message_count == 12
    assert parsed.session.session_count == 2
    assert parsed.session.cost == Decimal("1.25")
    assert parsed.weekly.message_count == 0
    assert parsed.weekly.cost == Decimal("0")


@pytest.mark.parametrize("raw", [None, [], "text", 42])
def test_non_object_payload_is_malformed(raw):
    with pytest.raises(ParseError) as excinfo:
        parse(raw, NOW)
    assert excinfo.value.kind is ErrorKind.MALFORMED_RESPONSE
