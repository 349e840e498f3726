from datetime import timedelta
from decimal import Decimal

import pytest

from claude_meter.usage.errors import ErrorKind
from claude_meter.usage.models import Snapshot, UsageWindow

from tests.conftest import NOW


def test_window_clamps_fields():
    window = UsageWindow(used_fraction=1.7, message_count=-3, session_count=2, cost=Decimal("-1"))
    assert window.used_fraction == 1.0
    assert window.message_count == 0
    assert window.session_count == 2
    assert window.cost == Decimal("0")


def test_remaining_is_computed_at_read_time():
    window = UsageWindow(used_fraction=0.2, reset_at=NOW + timedelta(hours=2))
    assert window.remaining(NOW) == timedelta(hours=2)
    assert window.remaining(NOW + timedelta(minutes=90)) == timedelta(minutes=30)
    assert window.remaining(NOW + timedelta(hours=3)) == timedelta(0)
    assert UsageWindow().remaining(NOW) is None


def test_logged_out_snapshot_drops_windows():
    snapshot = Snapshot(
        logged_in=False,
        session=UsageWindow(used_fraction=0.3),
        weekly=UsageWindow(used_fraction=0.4),
        model_fractions={"opus": 0.1},
    )
    assert snapshot.session is None
    assert snapshot.weekly is None
    assert dict(snapshot.model_fractions) == {}


def test_snapshot_is_immutable():
    snapshot = Snapshot(logged_in=True)
    with pytest.raises(AttributeError):
        snapshot.logged_in = False  # type: ignore[misc]
    with pytest.raises(TypeError):
        snapshot.model_fractions["opus"] = 0.5  # type: ignore[index]


def test_to_dict_reports_remaining_seconds():
    snapshot = Snapshot(
        logged_in=True,
        fetched_at=NOW,
        session=UsageWindow(used_fraction=0.25, reset_at=NOW + timedelta(minutes=10)),
        error=ErrorKind.TIMEOUT,
    )
    data = snapshot.to_dict(now=NOW)
    assert data["session"]["remaining_s"] == 600
    assert data["weekly"] is None
    assert data["error"] == "timeout"


def test_window_lookup_rejects_unknown_name():
    with pytest.raises(KeyError):
        Snapshot().window("monthly")
