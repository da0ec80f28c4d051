"""Inventory command implementation.

Lists the installed software the attribution resolver matches against.
"""

import json
from typing import Annotated

import typer

from reclaim.cli.types import OutputFormat, require_settings
from reclaim.context import build_context
from reclaim.inventory.models import InventoryEntry
from reclaim.utils.formatting import console, create_table, print_warning

app = typer.Typer(
    help="Show the installed-software inventory.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def inventory(
    ctx: typer.Context,
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format: table or json.",
            case_sensitive=False,
        ),
    ] = OutputFormat.TABLE,
    count_only: Annotated[
        bool,
        typer.Option(
            "--count",
            "-c",
            help="Only show entry counts.",
        ),
    ] = False,
) -> None:
    """Show installed apps and Homebrew packages known to reclaim.

    Examples:
        reclaim inventory               # Table of every entry
        reclaim inventory --count       # Counts per source and kind
        reclaim inventory --format json # Output as JSON
    """
    if ctx.invoked_subcommand is not None:
        return

    context = build_context(require_settings(ctx))
    index = context.inventory
    entries = index.entries()
    stats = index.stats()

    if output_format == OutputFormat.JSON:
        data = {
            "stats": stats,
            "unavailable_sources": list(index.unavailable_sources()),
            "entries": [_entry_to_dict(e) for e in entries],
        }
        console.print_json(json.dumps(data))
        return

    for source in index.unavailable_sources():
        print_warning(f"Inventory source unavailable: {source}")

    if not count_only:
        table = create_table(f"Inventory ({len(entries)} entries)")
        table.add_column("Identifier", no_wrap=True)
        table.add_column("Name")
        table.add_column("Source", width=16)
        table.add_column("Kind", width=12)
        for entry in entries:
            table.add_row(
                entry.identifier,
                entry.display_name,
                entry.source.value,
                entry.kind.value,
            )
        console.print(table)

    counts = ", ".join(f"{name}: {count}" for name, count in sorted(stats.items()))
    console.print(f"\n[dim]{counts}[/dim]")


def _entry_to_dict(entry: InventoryEntry) -> dict[str, object]:
    return {
        "identifier": entry.identifier,
        "display_name": entry.display_name,
        "source": entry.source.value,
        "kind": entry.kind.value,
        "roots": list(entry.roots),
        "present": entry.is_present(),
    }
