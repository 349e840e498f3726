"""Local system collaborators: process observer and desktop actions."""

from claude_meter.system.actions import open_directory, open_terminal
from claude_meter.system.processes import count_running

__all__ = ["count_running", "open_directory", "open_terminal"]
