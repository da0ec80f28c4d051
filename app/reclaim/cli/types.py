"""Shared types and utilities for CLI commands.

This module provides common enums and helper functions used across
multiple CLI command modules to avoid code duplication.
"""

import json
from enum import Enum
from pathlib import Path
from typing import Any

import typer

from reclaim.core.config import ConfigError, Settings, load_config, load_config_or_default
from reclaim.core.paths import get_config_path
from reclaim.utils.formatting import print_error, print_info


class OutputFormat(str, Enum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


class ModuleChoice(str, Enum):
    """Inspection modules selectable on the command line."""

    LAUNCHD = "launchd"
    BINARIES = "binaries"
    CACHES = "caches"
    LEFTOVERS = "leftovers"
    LOGS = "logs"
    DISK = "disk"
    BREW = "brew"
    STARTUP = "startup"
    INTEL = "intel"
    PERMISSIONS = "permissions"


def _chosen_config(ctx: typer.Context | None) -> Path | None:
    options = ctx.obj if ctx is not None and isinstance(ctx.obj, dict) else {}
    return options.get("config_path")


def config_path_from(ctx: typer.Context | None) -> Path:
    """Return the file chosen with the global --config option, or the default."""
    return _chosen_config(ctx) or get_config_path()


def require_settings(ctx: typer.Context | None = None) -> Settings:
    """Load settings or exit with an error message.

    Args:
        ctx: Command context carrying the global --config choice.

    Returns:
        Validated Settings. Defaults when the default file does not exist;
        a file named with --config must exist.

    Raises:
        typer.Exit: If the configuration is missing, unreadable or invalid.
    """
    chosen = _chosen_config(ctx)
    try:
        return load_config(chosen) if chosen is not None else load_config_or_default()
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


def export_json(data: Any, export_path: Path) -> None:
    """Write a JSON document to a file or exit with an error message.

    Args:
        data: JSON-serializable data.
        export_path: Destination file.

    Raises:
        typer.Exit: If the path is a directory or cannot be written.
    """
    export_path = export_path.resolve()
    if export_path.is_dir():
        print_error(f"Export path is a directory: {export_path}")
        raise typer.Exit(code=1)

    try:
        export_path.parent.mkdir(parents=True, exist_ok=True)
        export_path.write_text(json.dumps(data, indent=2))
        print_info(f"Results exported to {export_path}")
    except OSError as e:
        print_error(f"Failed to export: {e}")
        raise typer.Exit(code=1) from e
