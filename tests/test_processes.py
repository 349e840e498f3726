import psutil
import pytest

from claude_meter.system import processes
from claude_meter.system.processes import count_running, is_client_process


class FakeProc:
    def __init__(self, name, cmdline):
        self.info = {"name": name, "cmdline": cmdline}


@pytest.mark.parametrize(
    "name, cmdline, expected",
    [
        ("claude", ["claude"], True),
        ("node", ["node", "/usr/lib/node_modules/@anthropic-ai/claude-code/cli.js"], True),
        ("bash", ["/home/me/.local/bin/claude", "--resume"], True),
        ("python", ["python", "claude_meter"], False),
        ("vim", ["vim", "claude.md"], False),
        ("kworker", None, False),
        ("vim", ["vim", "/home/me/src/claude"], False),
        ("bash", ["bash", "-c", "cd ~/claude"], False),
        ("node", ["node", "/home/me/src/claude/server.js"], False),
        ("node", ["/usr/bin/node", "--no-warnings", "/usr/local/bin/claude"], True),
        ("bun", ["bun", "/opt/@anthropic-ai/claude-code/cli.js"], True),
    ],
)
def test_is_client_process(name, cmdline, expected):
    assert is_client_process(name, cmdline) is expected


def test_counts_matching_processes(monkeypatch):
    procs = [
        FakeProc("claude", ["claude"]),
        FakeProc("node", ["node", "@anthropic-ai/claude-code"]),
        FakeProc("zsh", ["zsh"]),
    ]
    monkeypatch.setattr(processes.psutil, "process_iter", lambda attrs=None: iter(procs))
    assert count_running() == 2


def test_enumeration_failure_counts_zero(monkeypatch):
    def denied(attrs=None):
        raise psutil.AccessDenied()

    monkeypatch.setattr(processes.psutil, "process_iter", denied)
    assert count_running() == 0
