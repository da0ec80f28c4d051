"""Sessions command for listing backup sessions.

This module provides the `reclaim sessions` command for viewing the
backup sessions created by earlier relocations.
"""

import json
from typing import Annotated, Any

import typer

from reclaim.cli.types import require_settings
from reclaim.relocation.models import EntryState, ManifestEntry
from reclaim.relocation.session import BackupSession, list_sessions
from reclaim.utils.formatting import console, create_table, print_info, print_warning
from reclaim.utils.sizes import format_size

app = typer.Typer(
    name="sessions",
    help="List backup sessions.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def sessions(
    ctx: typer.Context,
    limit: Annotated[
        int,
        typer.Option(
            "--limit",
            "-n",
            help="Maximum number of sessions to show.",
        ),
    ] = 20,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show backup sessions, newest first.

    Examples:
        reclaim sessions            # Show the last 20 sessions
        reclaim sessions -n 5       # Show the last 5 sessions
        reclaim sessions --json     # Output as JSON
    """
    if ctx.invoked_subcommand is not None:
        return

    backup_root = require_settings(ctx).resolved_backup_root()
    found = list_sessions(backup_root)[:limit]

    if not found:
        print_info(f"No backup sessions in {backup_root}.")
        return

    listed: list[tuple[BackupSession, list[ManifestEntry] | None]] = []
    for session in found:
        try:
            entries = session.manifest.entries() if session.manifest.exists() else None
        except OSError as e:
            print_warning(f"Cannot read {session.manifest.path}: {e}")
            continue
        listed.append((session, entries))

    if json_output:
        console.print_json(json.dumps([_session_to_dict(s, e) for s, e in listed]))
        return

    table = create_table(f"Backup Sessions ({backup_root})")
    table.add_column("Session", no_wrap=True)
    table.add_column("Items", justify="right", width=6)
    table.add_column("Size", style="size", justify="right", width=10)
    table.add_column("Moved", justify="right", width=6)
    table.add_column("Restored", justify="right", width=8)

    for session, entries in listed:
        if entries is None:
            table.add_row(session.name, "-", "-", "[warning]no manifest[/]", "-")
            continue
        counts = _count_states(entries)
        table.add_row(
            session.name,
            str(len(entries)),
            format_size(sum(e.size_bytes for e in entries)),
            str(counts[EntryState.COMMITTED.value]),
            str(counts[EntryState.RESTORED.value]),
        )

    console.print(table)


def _count_states(entries: list[ManifestEntry]) -> dict[str, int]:
    counts = dict.fromkeys((state.value for state in EntryState), 0)
    for entry in entries:
        counts[entry.state.value] += 1
    return counts


def _session_to_dict(
    session: BackupSession,
    entries: list[ManifestEntry] | None,
) -> dict[str, Any]:
    data: dict[str, Any] = {
        "session": session.name,
        "path": str(session.path),
        "manifest": entries is not None,
    }
    if entries is not None:
        data["items"] = len(entries)
        data["size_bytes"] = sum(e.size_bytes for e in entries)
        data.update(_count_states(entries))
    return data
