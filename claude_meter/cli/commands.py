"""CLI commands for claude-meter."""

from __future__ import annotations

import asyncio
import json
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from claude_meter import __version__

app = typer.Typer(
    name="claude_meter",
    help="claude-meter - Claude Code quota monitor",
    no_args_is_help=True,
)
config_app = typer.Typer(help="Show or change settings.", no_args_is_help=True)
app.add_typer(config_app, name="config")
console = Console()

_SEVERITY_STYLES = {
    "gray": "dim",
    "green": "green",
    "yellow": "yellow",
    "red": "red",
}

_ERROR_TEXT = {
    "not_logged_in": "Not logged in (run `claude login`)",
    "unauthorized": "Session expired (run `claude login`)",
    "timeout": "API error: request timed out",
    "unreachable": "API error: endpoint unreachable",
    "rate_limited": "API error: rate limited",
    "malformed_response": "API error: unexpected response",
}


def version_callback(value: bool) -> None:
    if value:
        console.print(f"claude-meter v{__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
) -> None:
    """claude-meter entrypoint."""
    del version
    _configure_logging(verbose)


def _settings(config_path: Path | None):
    from claude_meter.config.loader import get_config_path, load_config
    from claude_meter.config.store import SettingsStore

    path = config_path or get_config_path()
    return SettingsStore(load_config(path), path=path)


def format_remaining(remaining: timedelta | None) -> str:
    if remaining is None:
        return "unknown"
    seconds = int(remaining.total_seconds())
    if seconds <= 0:
        return "resetting"
    hours, rest = divmod(seconds, 3600)
    minutes = rest // 60
    if hours >= 24:
        days, hours = divmod(hours, 24)
        return f"resets in {days}d {hours}h"
    if hours:
        return f"resets in {hours}h {minutes}m"
    return f"resets in {minutes}m"


def _render(snapshot, config, now: datetime | None = None) -> None:
    from claude_meter.usage.severity import overall_severity, window_severity

    thresholds = config.thresholds
    table = Table(title="Claude usage", show_header=True, header_style="bold")
    table.add_column("Window")
    table.add_column("Used", justify="right")
    table.add_column("Reset")
    table.add_column("Severity")

    for name, label in (("session", "Session (5h)"), ("weekly", "Weekly (7d)")):
        window = snapshot.window(name)
        level = window_severity(snapshot, name, thresholds).label
        style = _SEVERITY_STYLES[level]
        if window is None:
            table.add_row(label, "-", "-", f"[{style}]{level}[/{style}]")
            continue
        table.add_row(
            label,
            f"[{style}]{window.used_percent:.0f}%[/{style}]",
            format_remaining(window.remaining(now)),
            f"[{style}]{level}[/{style}]",
        )
    for model, fraction in sorted(snapshot.model_fractions.items()):
        table.add_row(f"  {model} (7d)", f"{fraction * 100:.0f}%", "", "")
    console.print(table)

    overall = overall_severity(snapshot, thresholds, config.display.mode).label
    console.print(f"Overall: [{_SEVERITY_STYLES[overall]}]{overall}[/{_SEVERITY_STYLES[overall]}]")
    console.print(f"Plan: [cyan]{snapshot.plan or 'unknown'}[/cyan]")
    console.print(f"Running claude processes: [cyan]{snapshot.running_processes}[/cyan]")
    if snapshot.stats is not None:
        stats = snapshot.stats
        console.print(
            f"Today: {stats.today_messages} messages, {stats.today_sessions} sessions | "
            f"Total cost: ${stats.total_cost_usd:.2f}"
        )
    if snapshot.error is not None:
        console.print(f"[red]{_ERROR_TEXT.get(snapshot.error.value, snapshot.error.value)}[/red]")


@app.command()
def status(
    as_json: bool = typer.Option(False, "--json", help="Print the snapshot as JSON."),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file path."),
) -> None:
    """Poll usage once and print it."""
    from claude_meter.usage.monitor import UsageMonitor

    settings = _settings(config_path)
    monitor = UsageMonitor(settings)

    async def run_once():
        try:
            return await monitor.poll_once()
        finally:
            await monitor.stop()

    snapshot = asyncio.run(run_once())
    if as_json:
        console.print_json(json.dumps(snapshot.to_dict()))
    else:
        _render(snapshot, settings.config)
    if snapshot.error is not None:
        raise typer.Exit(2)


@app.command()
def watch(
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file path."),
) -> None:
    """Run the monitor and print every new snapshot until interrupted."""
    from claude_meter.usage.monitor import UsageMonitor

    settings = _settings(config_path)
    monitor = UsageMonitor(settings)
    monitor.subscribe(lambda snapshot: _render(snapshot, settings.config))

    async def run_forever() -> None:
        await monitor.start()
        try:
            await asyncio.Event().wait()
        finally:
            await monitor.stop()

    try:
        asyncio.run(run_forever())
    except KeyboardInterrupt:
        console.print("\nStopped.")


@config_app.command("show")
def config_show(
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file path."),
) -> None:
    """Print the effective configuration."""
    settings = _settings(config_path)
    console.print(f"Config: {settings.path} {'[green]OK[/green]' if settings.path.exists() else '[dim]defaults[/dim]'}")
    console.print_json(settings.config.model_dump_json())


@config_app.command("set-thresholds")
def config_set_thresholds(
    warning: int = typer.Argument(..., help="Warning percentage (yellow)."),
    critical: int = typer.Argument(..., help="Critical percentage (red)."),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file path."),
) -> None:
    """Set warning/critical thresholds."""
    from claude_meter.config.store import ConfigError

    settings = _settings(config_path)
    try:
        config = settings.set_thresholds(warning, critical)
    except ConfigError as exc:
        console.print(f"[red]Invalid thresholds:[/red] {exc}")
        raise typer.Exit(1)
    console.print(
        f"[green]OK[/green] warning={config.thresholds.warning_pct}% "
        f"critical={config.thresholds.critical_pct}%"
    )


@config_app.command("set-interval")
def config_set_interval(
    minutes: int = typer.Argument(..., help="Poll interval in minutes (5-120)."),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file path."),
) -> None:
    """Set the poll interval."""
    from claude_meter.config.store import ConfigError

    settings = _settings(config_path)
    try:
        config = settings.set_poll_interval(minutes)
    except ConfigError as exc:
        console.print(f"[red]Invalid interval:[/red] {exc}")
        raise typer.Exit(1)
    console.print(f"[green]OK[/green] interval={config.polling.interval_minutes}min")


@config_app.command("set-display")
def config_set_display(
    mode: str = typer.Argument(..., help="session | weekly | both"),
    mascot: Optional[bool] = typer.Option(None, "--mascot/--no-mascot", help="Show the mascot."),
    percentage: Optional[bool] = typer.Option(None, "--percentage/--no-percentage", help="Show percentage text."),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file path."),
) -> None:
    """Set which windows the panel shows."""
    from claude_meter.config.store import ConfigError

    settings = _settings(config_path)
    try:
        config = settings.set_display(mode=mode, show_mascot=mascot, show_percentage=percentage)
    except ConfigError as exc:
        console.print(f"[red]Invalid display settings:[/red] {exc}")
        raise typer.Exit(1)
    console.print(f"[green]OK[/green] display={config.display.mode.value}")


@app.command("open-terminal")
def open_terminal_cmd(
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file path."),
) -> None:
    """Open a terminal running claude."""
    from claude_meter.system.actions import open_terminal

    settings = _settings(config_path)
    if not open_terminal(settings.config.actions.terminal_command):
        raise typer.Exit(1)


@app.command("open-dir")
def open_dir_cmd(
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file path."),
) -> None:
    """Open the ~/.claude directory in the file manager."""
    from claude_meter.system.actions import open_directory

    settings = _settings(config_path)
    config = settings.config
    if not open_directory(config.claude_dir_path, config.actions.file_manager_command):
        raise typer.Exit(1)
