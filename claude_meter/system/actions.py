"""Fire-and-forget launchers for the panel menu entries."""

from __future__ import annotations

import shlex
import subprocess
from pathlib import Path

from loguru import logger

DEFAULT_TERMINAL_COMMAND = "x-terminal-emulator -e claude"
DEFAULT_FILE_MANAGER_COMMAND = "xdg-open"
CLAUDE_DIR = Path.home() / ".claude"


def _spawn(command: str, *extra: str) -> bool:
    try:
        argv = [*shlex.split(command), *extra]
    except ValueError as exc:
        logger.error(f"[actions] Cannot parse command {command!r}: {exc}")
        return False
    if not argv:
        logger.error("[actions] Empty command")
        return False

    try:
        subprocess.Popen(
            argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as exc:
        logger.error(f"[actions] Failed to launch {argv[0]}: {exc}")
        return False
    logger.debug(f"[actions] Launched {argv}")
    return True


def open_terminal(command: str | None = None) -> bool:
    """Open a terminal running the Claude CLI."""
    return _spawn(command or DEFAULT_TERMINAL_COMMAND)


def open_directory(path: Path | str | None = None, command: str | None = None) -> bool:
    """Open ``path`` (default ``~/.claude``) in the file manager."""
    target = Path(path).expanduser() if path else CLAUDE_DIR
    return _spawn(command or DEFAULT_FILE_MANAGER_COMMAND, str(target))
