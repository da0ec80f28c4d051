"""Helpers shared by the engine and the CLI.

Only side-effect-free helpers are re-exported here; console output
lives in reclaim.utils.formatting and is imported by the CLI alone.
"""

from reclaim.utils.shell import CommandResult, command_exists, run_command
from reclaim.utils.sizes import MB, format_size, path_size

__all__ = [
    "MB",
    "CommandResult",
    "command_exists",
    "format_size",
    "path_size",
    "run_command",
]
