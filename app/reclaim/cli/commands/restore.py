"""Restore command for undoing a relocation.

This module provides the `reclaim restore` command, which moves the
items of a backup session back to their original locations after
verifying their checksums.
"""

from typing import Annotated

import typer

from reclaim.cli.display import create_relocation_table, print_relocation_summary
from reclaim.cli.types import require_settings
from reclaim.relocation.models import ManifestEntry
from reclaim.relocation.restore import restore_session
from reclaim.relocation.session import find_session
from reclaim.utils.formatting import console, print_error, print_info, print_warning
from reclaim.utils.sizes import format_size


def restore(
    ctx: typer.Context,
    session: Annotated[
        str,
        typer.Argument(
            help="Session name, session directory, or 'latest'.",
        ),
    ] = "latest",
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Restore every item without asking.",
        ),
    ] = False,
) -> None:
    """Move the items of a backup session back where they came from.

    Every item is verified against the checksum recorded when it was
    moved; an item that does not match is left in the backup. Running
    restore again on the same session changes nothing.

    Examples:
        reclaim restore                     # Restore the latest session
        reclaim restore 20261019T101500Z    # Restore a specific session
        reclaim restore latest -y           # Restore without prompting
    """
    settings = require_settings(ctx)
    backup_root = settings.resolved_backup_root()

    found = find_session(backup_root, session)
    if found is None:
        print_error(f"No backup session '{session}' in {backup_root}")
        raise typer.Exit(code=1)

    print_info(f"Restoring session {found.path}")
    report = restore_session(found.path, confirm=_confirm_entry, assume_yes=yes)

    if report.manifest_missing:
        print_warning(report.message or "manual restore required")
        raise typer.Exit(code=1)
    if report.error is not None:
        print_error(report.error)
        raise typer.Exit(code=1)
    if not report.results:
        print_info("The session contains no relocated items.")
        return

    console.print(create_relocation_table(report.results, "Restore"))
    print_relocation_summary(report.results, verb="restored")

    if not report.success:
        raise typer.Exit(code=1)


def _confirm_entry(entry: ManifestEntry) -> bool:
    return typer.confirm(
        f"Restore {entry.original_path} ({format_size(entry.size_bytes)})?",
        default=True,
    )
