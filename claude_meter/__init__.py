"""claude-meter - rolling quota monitor for Claude Code."""

__version__ = "0.1.0"
