"""Usage tracking core: client, parser, severity and the polling monitor."""

from claude_meter.usage.errors import ErrorKind, UsageError
from claude_meter.usage.models import Credentials, LocalStats, Snapshot, UsageWindow
from claude_meter.usage.monitor import MonitorState, UsageMonitor
from claude_meter.usage.severity import Severity, overall_severity, severity, window_severity

__all__ = [
    "Credentials",
    "ErrorKind",
    "LocalStats",
    "MonitorState",
    "Severity",
    "Snapshot",
    "UsageError",
    "UsageMonitor",
    "UsageWindow",
    "overall_severity",
    "severity",
    "window_severity",
]
