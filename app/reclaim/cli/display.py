"""Shared Rich display functions for runs, relocations and restores.

Provides reusable table builders and summary printers used by the
scan, restore, sessions and inventory commands.
"""

from collections.abc import Sequence

from rich.table import Table

from reclaim.attribution.models import Confidence, Verdict
from reclaim.inspection.models import FlaggedRecord, ModuleReport
from reclaim.orchestrator import OutcomeStatus, RunSummary
from reclaim.relocation.models import RelocationResult, RelocationStatus
from reclaim.utils.formatting import console, create_table, print_success, print_warning
from reclaim.utils.sizes import format_size

_CONFIDENCE_STYLES: dict[Confidence, str] = {
    Confidence.INVENTORY_MATCHED: "confidence.inventory-matched",
    Confidence.HEURISTIC: "confidence.heuristic",
    Confidence.NONE: "confidence.none",
}

_STATUS_MARKUP: dict[RelocationStatus, str] = {
    RelocationStatus.MOVED: "[moved]moved[/]",
    RelocationStatus.SKIPPED: "[skipped]skipped[/]",
    RelocationStatus.FAILED: "[failed]failed[/]",
}


def format_verdict(verdict: Verdict) -> str:
    """Render a verdict's confidence and owner as Rich markup."""
    style = _CONFIDENCE_STYLES[verdict.confidence]
    text = f"[{style}]{verdict.confidence.value}[/]"
    if verdict.owner:
        text += f" [muted]{verdict.owner}[/]"
    return text


def create_module_table(report: ModuleReport, limit: int | None = None) -> Table:
    """Create a Rich table of one module's flagged records.

    Args:
        report: Module report to display.
        limit: Show only the largest ``limit`` records, largest first.
            Records are shown in discovery order when omitted.

    Returns:
        Rich Table configured for record display.
    """
    records: Sequence[FlaggedRecord] = report.records
    title = f"{report.module} ({report.count} flagged, {format_size(report.total_bytes)})"
    if limit is not None and len(records) > limit:
        records = sorted(records, key=lambda r: r.size_bytes, reverse=True)[:limit]
        title += f", top {limit}"

    table = create_table(title)
    table.add_column("Path", style="path", no_wrap=False)
    table.add_column("Size", style="size", justify="right", width=10)
    table.add_column("Attribution")
    table.add_column("Reason", style="muted")

    for record in records:
        reason = record.flag_reason
        if record.report_only:
            reason += " (report only)"
        table.add_row(
            record.path,
            format_size(record.size_bytes),
            format_verdict(record.verdict),
            reason,
        )

    return table


def create_summary_table(summary: RunSummary) -> Table:
    """Create a Rich table with one row per module of a run.

    Args:
        summary: Completed run.

    Returns:
        Rich Table with status, counts and duration per module.
    """
    table = create_table("Run Summary")
    table.add_column("Module")
    table.add_column("Status", justify="center", width=8)
    table.add_column("Flagged", justify="right", width=8)
    table.add_column("Size", style="size", justify="right", width=10)
    table.add_column("Time", justify="right", width=8)
    table.add_column("Notes", style="muted")

    for outcome in summary.outcomes:
        if outcome.status == OutcomeStatus.OK and outcome.report is not None:
            status = "[success]ok[/]"
            flagged = str(outcome.report.count)
            size = format_size(outcome.report.total_bytes)
            notes = ", ".join(
                f"{s.path}: {s.reason}" for s in outcome.report.skipped_locations
            )
        elif outcome.status == OutcomeStatus.FAILED:
            status = "[error]failed[/]"
            flagged, size = "-", "-"
            notes = outcome.error or ""
        else:
            status = "[muted]skipped[/]"
            flagged, size, notes = "-", "-", ""

        table.add_row(
            outcome.module,
            status,
            flagged,
            size,
            f"{outcome.duration_seconds:.2f}s",
            notes,
        )

    return table


def print_run_summary(summary: RunSummary) -> None:
    """Print totals of a run below its tables."""
    count = len(summary.records)
    console.print(
        f"\n[dim]Flagged {count} item(s), {format_size(summary.total_bytes)} total[/dim]"
    )
    for source in summary.unavailable_sources:
        print_warning(f"Inventory source unavailable: {source}")


def create_relocation_table(results: Sequence[RelocationResult], title: str) -> Table:
    """Create a Rich table of relocation or restore results.

    Args:
        results: Results to display.
        title: Table title.

    Returns:
        Rich Table with path, status and detail columns.
    """
    table = create_table(title)
    table.add_column("Path", style="path")
    table.add_column("Status", justify="center", width=8)
    table.add_column("Detail", style="muted")

    for result in results:
        if result.status == RelocationStatus.MOVED:
            detail = result.backup_path or ""
        else:
            detail = result.reason or ""
        table.add_row(result.path, _STATUS_MARKUP[result.status], detail)

    return table


def print_relocation_summary(results: Sequence[RelocationResult], verb: str = "moved") -> None:
    """Print counts of moved, skipped and failed items.

    Args:
        results: Relocation or restore results.
        verb: Past tense of the operation for the success line.
    """
    moved = sum(1 for r in results if r.status == RelocationStatus.MOVED)
    skipped = sum(1 for r in results if r.status == RelocationStatus.SKIPPED)
    failed = sum(1 for r in results if r.status == RelocationStatus.FAILED)

    if failed == 0:
        print_success(f"{moved} item(s) {verb}, {skipped} skipped.")
    else:
        console.print(
            f"\n[success]{moved} {verb}[/success], [muted]{skipped} skipped[/muted], "
            f"[error]{failed} failed[/error]"
        )
