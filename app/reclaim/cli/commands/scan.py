"""Scan command implementation.

Runs the inspection modules, shows what they flagged and, with --apply,
offers each flagged item for relocation into a backup session.
"""

import json
from pathlib import Path
from typing import Annotated

import typer

from reclaim.cli.display import (
    create_module_table,
    create_relocation_table,
    create_summary_table,
    print_relocation_summary,
    print_run_summary,
)
from reclaim.cli.types import ModuleChoice, OutputFormat, export_json, require_settings
from reclaim.context import build_context
from reclaim.gate import ConfirmationGate
from reclaim.inspection import default_modules
from reclaim.orchestrator import Orchestrator, RunSummary
from reclaim.relocation.manager import SafeRelocationManager
from reclaim.relocation.models import RelocationStatus
from reclaim.utils.formatting import console, print_error, print_info, print_warning
from reclaim.utils.log import configure_logging

app = typer.Typer(
    help="Inspect the system for clutter and optionally relocate it.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def scan(
    ctx: typer.Context,
    modules: Annotated[
        list[ModuleChoice] | None,
        typer.Option(
            "--module",
            "-m",
            help="Module to run (repeatable). Default: all modules.",
            case_sensitive=False,
        ),
    ] = None,
    explain: Annotated[
        bool,
        typer.Option(
            "--explain",
            help="Log why each item was flagged or kept.",
        ),
    ] = False,
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format: table or json.",
            case_sensitive=False,
        ),
    ] = OutputFormat.TABLE,
    export_path: Annotated[
        Path | None,
        typer.Option(
            "--export",
            "-e",
            help="Export the run summary to a JSON file.",
        ),
    ] = None,
    apply: Annotated[
        bool,
        typer.Option(
            "--apply",
            help="Offer flagged items for relocation into a backup session.",
        ),
    ] = False,
) -> None:
    """Scan caches, logs, leftovers, launch jobs, binaries and disk usage.

    Without --apply nothing is changed. With --apply every flagged item
    is confirmed one by one and moved into a backup session that
    `reclaim restore` can undo.

    Examples:
        reclaim scan                        # Run every module
        reclaim scan -m caches -m logs      # Run selected modules
        reclaim scan --explain              # Show per-item reasoning
        reclaim scan --format json          # Output as JSON
        reclaim scan --export run.json      # Export to JSON file
        reclaim scan -m caches --apply      # Relocate confirmed caches
    """
    if ctx.invoked_subcommand is not None:
        return

    if apply and output_format == OutputFormat.JSON:
        print_error("--apply cannot be combined with --format json.")
        raise typer.Exit(code=2)

    options = ctx.obj or {}
    if explain:
        configure_logging(
            verbose=options.get("verbose", False),
            quiet=options.get("quiet", False),
            explain=True,
        )

    settings = require_settings(ctx)
    context = build_context(settings, explain=explain)
    orchestrator = Orchestrator(context, default_modules())
    selected = [m.value for m in modules] if modules else None
    summary = orchestrator.run(selected)

    if export_path is not None:
        export_json(summary.to_dict(), export_path)

    if summary.aborted:
        print_error(f"Run aborted: {summary.abort_reason}")
        raise typer.Exit(code=1)

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(summary.to_dict()))
        return

    _print_summary(summary, disk_top_n=settings.disk_top_n)

    relocatable = [r for r in summary.records if not r.report_only]
    if not apply:
        if relocatable:
            print_info("Dry run: use --apply to move flagged items into a backup session.")
        return

    if not relocatable:
        print_info("Nothing to relocate.")
        return

    gate = ConfirmationGate(apply=True)
    if not gate.interactive:
        print_warning("--apply needs an interactive terminal; nothing will be moved.")

    with SafeRelocationManager(
        context.home,
        settings.resolved_backup_root(),
        extra_protected=settings.protected_identifiers,
    ) as manager:
        results = orchestrator.relocate(summary, gate, manager)
        session = manager.session

    console.print(create_relocation_table(results, "Relocation"))
    print_relocation_summary(results)
    if session is not None:
        print_info(f"Backup session: {session.path}")
        print_info(f"Undo with: reclaim restore {session.name}")

    if any(r.status == RelocationStatus.FAILED for r in results):
        raise typer.Exit(code=1)


def _print_summary(summary: RunSummary, disk_top_n: int) -> None:
    """Display per-module tables followed by the run summary."""
    for outcome in summary.outcomes:
        report = outcome.report
        if report is None:
            continue
        if report.records:
            limit = disk_top_n if report.module == "disk" else None
            console.print(create_module_table(report, limit=limit))
        for note in report.notes:
            console.print(f"[dim]{report.module}: {note}[/dim]")

    console.print(create_summary_table(summary))
    print_run_summary(summary)
