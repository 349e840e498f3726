"""Entry point for ``python -m claude_meter``."""

from claude_meter.cli.commands import app

if __name__ == "__main__":
    app()
