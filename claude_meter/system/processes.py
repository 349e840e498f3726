"""Count running Claude Code client processes."""

from __future__ import annotations

from typing import Iterable

import psutil
from loguru import logger

CLIENT_NAME = "claude"
# Interpreters the npm-installed CLI runs under.
SCRIPT_RUNTIMES = frozenset({"node", "nodejs", "bun", "deno"})


def _basename(arg: str) -> str:
    return arg.rstrip("/").rsplit("/", 1)[-1]


def _is_client_script(arg: str) -> bool:
    return _basename(arg) == CLIENT_NAME or ("@anthropic" in arg and CLIENT_NAME in arg)


def is_client_process(name: str | None, cmdline: Iterable[str] | None) -> bool:
    """Match the ``claude`` binary, or a JS runtime running the ``@anthropic-ai`` CLI.

    Only the executable and the runtime's script argument are inspected, so
    an editor opened on a path ending in ``claude`` is not counted.
    """
    if name == CLIENT_NAME:
        return True
    argv = [arg for arg in cmdline or () if arg]
    if not argv:
        return False
    if _basename(argv[0]) == CLIENT_NAME:
        return True
    if _basename(argv[0]) not in SCRIPT_RUNTIMES:
        return False
    for arg in argv[1:]:
        if arg.startswith("-"):
            continue
        return _is_client_script(arg)
    return False


def count_running() -> int:
    """Number of running client processes; 0 when processes are not visible."""
    count = 0
    try:
        for proc in psutil.process_iter(["name", "cmdline"]):
            info = proc.info
            try:
                if is_client_process(info.get("name"), info.get("cmdline")):
                    count += 1
            except TypeError:
                continue
    except (psutil.Error, OSError) as exc:
        logger.debug(f"[usage] Process enumeration failed: {exc}")
        return 0
    return count
