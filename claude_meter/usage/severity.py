"""Threshold-based severity for usage windows.

Severity is always derived from a snapshot and thresholds on read; it is
never stored.
"""

from __future__ import annotations

from enum import IntEnum

from claude_meter.config.schema import DisplayMode, Thresholds
from claude_meter.usage.models import Snapshot


class Severity(IntEnum):
    GRAY = 0    # not logged in / unknown
    GREEN = 1
    YELLOW = 2
    RED = 3

    @property
    def label(self) -> str:
        return self.name.lower()


def severity(fraction: float, thresholds: Thresholds) -> Severity:
    """Classify a used fraction. Boundaries belong to the higher level."""
    if fraction >= thresholds.critical_pct / 100.0:
        return Severity.RED
    if fraction >= thresholds.warning_pct / 100.0:
        return Severity.YELLOW
    return Severity.GREEN


def window_severity(snapshot: Snapshot, name: str, thresholds: Thresholds) -> Severity:
    if not snapshot.logged_in:
        return Severity.GRAY
    window = snapshot.window(name)
    if window is None:
        return Severity.GRAY
    return severity(window.used_fraction, thresholds)


def overall_severity(
    snapshot: Snapshot,
    thresholds: Thresholds,
    mode: DisplayMode = DisplayMode.BOTH,
) -> Severity:
    """Highest severity among the windows the display mode shows."""
    return max(window_severity(snapshot, name, thresholds) for name in mode.windows)
