"""CLI commands for reclaim.

This package contains all subcommand implementations.
"""

from reclaim.cli.commands import config, inventory, restore, scan, sessions

__all__ = ["config", "inventory", "restore", "scan", "sessions"]
