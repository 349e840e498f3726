"""CLI module for claude-meter."""
