import json

import pytest
from pydantic import ValidationError

from claude_meter.config.loader import load_config, save_config
from claude_meter.config.schema import Config, DisplayMode, Thresholds
from claude_meter.config.store import ConfigError, SettingsStore


def test_defaults():
    config = Config()
    assert config.thresholds == Thresholds(warning_pct=50, critical_pct=80)
    assert config.polling.interval_minutes == 60
    assert config.poll_interval_s == 3600.0
    assert config.display.mode is DisplayMode.BOTH


@pytest.mark.parametrize("warning, critical", [(80, 50), (70, 70), (-1, 50), (50, 101)])
def test_invalid_thresholds_rejected(warning, critical):
    with pytest.raises(ValidationError):
        Thresholds(warning_pct=warning, critical_pct=critical)


def test_store_rejects_inverted_thresholds_and_keeps_old():
    store = SettingsStore(Config())
    store.set_thresholds(60, 90)
    with pytest.raises(ConfigError):
        store.set_thresholds(80, 50)
    assert store.config.thresholds.warning_pct == 60
    assert store.config.thresholds.critical_pct == 90


@pytest.mark.parametrize("minutes", [4, 121, 0])
def test_store_rejects_interval_out_of_range(minutes):
    store = SettingsStore(Config())
    with pytest.raises(ConfigError):
        store.set_poll_interval(minutes)
    assert store.config.polling.interval_minutes == 60


def test_store_swaps_whole_config_on_update():
    store = SettingsStore(Config())
    before = store.config
    after = store.set_poll_interval(15)
    assert before.polling.interval_minutes == 60
    assert after is store.config
    assert after.polling.interval_minutes == 15


def test_store_rejects_unknown_section():
    with pytest.raises(ConfigError):
        SettingsStore().update(nonsense={"a": 1})


def test_store_persists_when_bound_to_path(tmp_path):
    path = tmp_path / "config.json"
    store = SettingsStore(Config(), path=path)
    store.set_display(mode="weekly", show_mascot=False)
    reloaded = load_config(path)
    assert reloaded.display.mode is DisplayMode.WEEKLY_ONLY
    assert reloaded.display.show_mascot is False


def test_load_missing_or_invalid_file_gives_defaults(tmp_path):
    assert load_config(tmp_path / "absent.json") == Config()

    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"thresholds": {"warning_pct": 90, "critical_pct": 10}}), encoding="utf-8")
    assert load_config(bad).thresholds == Thresholds()

    bad.write_text("{", encoding="utf-8")
    assert load_config(bad) == Config()


def test_save_and_load(tmp_path):
    path = save_config(Config(polling={"interval_minutes": 30}), tmp_path / "nested" / "config.json")
    assert load_config(path).polling.interval_minutes == 30


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("CLAUDE_METER_POLLING__INTERVAL_MINUTES", "15")
    assert Config().polling.interval_minutes == 15
