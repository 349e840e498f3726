from __future__ import annotations

import asyncio
import json
import time
from datetime import datetime, timezone
from pathlib import Path

import pytest

from claude_meter.config.schema import Config
from claude_meter.config.store import SettingsStore
from claude_meter.usage.models import Credentials

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

PAYLOAD = {
    "five_hour": {"utilization": 37.0, "resets_at": "2026-10-18T14:00:00Z"},
    "seven_day": {"utilization": 42.0, "resets_at": "2026-10-22T09:00:00+00:00"},
    "seven_day_opus": {"utilization": 3.0},
    "seven_day_sonnet": {"utilization": 40.0},
}


class FakeClient:
    """Returns queued payloads, raising any queued exception instances."""

    def __init__(self, *results):
        self.results = list(results) or [PAYLOAD]
        self.calls = 0

    def fetch(self, credentials):
        self.calls += 1
        result = self.results[min(self.calls, len(self.results)) - 1]
        if isinstance(result, BaseException):
            raise result
        return result


async def wait_for(predicate, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(access_token="sk-ant-oat-test", plan="max")


@pytest.fixture
def settings() -> SettingsStore:
    return SettingsStore(Config())


@pytest.fixture
def write_json(tmp_path: Path):
    def _write(name: str, payload) -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write
