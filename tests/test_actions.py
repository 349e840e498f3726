from pathlib import Path

from claude_meter.system import actions


class FakePopen:
    calls = []

    def __init__(self, argv, **kwargs):
        FakePopen.calls.append(argv)


def test_open_terminal_spawns_configured_command(monkeypatch):
    FakePopen.calls = []
    monkeypatch.setattr(actions.subprocess, "Popen", FakePopen)
    assert actions.open_terminal("gnome-terminal -- claude") is True
    assert FakePopen.calls == [["gnome-terminal", "--", "claude"]]


def test_open_directory_appends_path(monkeypatch, tmp_path):
    FakePopen.calls = []
    monkeypatch.setattr(actions.subprocess, "Popen", FakePopen)
    assert actions.open_directory(tmp_path) is True
    assert FakePopen.calls == [["xdg-open", str(Path(tmp_path))]]


def test_spawn_failure_returns_false(monkeypatch):
    def missing(argv, **kwargs):
        raise FileNotFoundError(argv[0])

    monkeypatch.setattr(actions.subprocess, "Popen", missing)
    assert actions.open_terminal("no-such-terminal") is False
    assert actions.open_terminal('broken "quote') is False
