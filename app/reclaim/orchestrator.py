"""Run orchestration.

The orchestrator populates the inventory once, runs the selected
inspection modules in their fixed order and aggregates their reports
into a RunSummary. A failing module is recorded and the run goes on;
only an unreadable home directory or a failed inventory aborts a run.
"""

import logging
import os
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from reclaim.context import RunContext
from reclaim.gate import ConfirmationGate
from reclaim.inspection import MODULE_ORDER, default_modules
from reclaim.inspection.base import InspectionModule
from reclaim.inspection.models import FlaggedRecord, ModuleReport
from reclaim.relocation.manager import SafeRelocationManager
from reclaim.relocation.models import RelocationResult

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    """Lifecycle of a run."""

    IDLE = "idle"
    POPULATING_INVENTORY = "populating-inventory"
    RUNNING_MODULES = "running-modules"
    AGGREGATING = "aggregating"
    DONE = "done"
    ABORTED = "aborted"


class OutcomeStatus(str, Enum):
    """How a single module fared in a run."""

    OK = "ok"
    FAILED = "failed"
    SKIPPED = "skipped"


class OrchestratorAbort(Exception):
    """Raised inside a run when it cannot continue."""


@dataclass(frozen=True, slots=True)
class ModuleOutcome:
    """Result of one module in a run.

    Attributes:
        module: Module name.
        status: ok, failed or skipped (not selected).
        duration_seconds: Wall-clock time spent in the module.
        report: The module's report when it completed.
        error: Error message when it failed.
    """

    module: str
    status: OutcomeStatus
    duration_seconds: float = 0.0
    report: ModuleReport | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON reporting."""
        return {
            "module": self.module,
            "status": self.status.value,
            "duration_seconds": round(self.duration_seconds, 6),
            "error": self.error,
            "report": self.report.to_dict() if self.report is not None else None,
        }


@dataclass(frozen=True, slots=True)
class RunSummary:
    """Aggregated output of a run.

    Attributes:
        state: Final state, done or aborted.
        outcomes: One outcome per known module, in execution order.
        abort_reason: Why the run aborted.
        unavailable_sources: Inventory sources that could not be read.
    """

    state: RunState
    outcomes: tuple[ModuleOutcome, ...] = ()
    abort_reason: str | None = None
    unavailable_sources: tuple[str, ...] = ()

    @property
    def aborted(self) -> bool:
        return self.state == RunState.ABORTED

    @property
    def records(self) -> tuple[FlaggedRecord, ...]:
        """All flagged records, in module order then discovery order."""
        return tuple(
            record
            for outcome in self.outcomes
            if outcome.report is not None
            for record in outcome.report.records
        )

    @property
    def durations(self) -> dict[str, float]:
        """Seconds spent per module; 0 for modules that did not run."""
        return {outcome.module: outcome.duration_seconds for outcome in self.outcomes}

    @property
    def total_bytes(self) -> int:
        """Total size of all flagged records."""
        return sum(record.size_bytes for record in self.records)

    @property
    def failed_modules(self) -> tuple[str, ...]:
        return tuple(o.module for o in self.outcomes if o.status == OutcomeStatus.FAILED)

    def records_for(self, module: str) -> tuple[FlaggedRecord, ...]:
        """Flagged records of one module."""
        for outcome in self.outcomes:
            if outcome.module == module and outcome.report is not None:
                return outcome.report.records
        return ()

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON reporting."""
        return {
            "state": self.state.value,
            "abort_reason": self.abort_reason,
            "count": len(self.records),
            "total_bytes": self.total_bytes,
            "durations": {name: round(d, 6) for name, d in self.durations.items()},
            "unavailable_sources": list(self.unavailable_sources),
            "modules": [outcome.to_dict() for outcome in self.outcomes],
        }


class Orchestrator:
    """Runs inspection modules against one RunContext.

    Args:
        context: Run context shared by every module.
        modules: Module instances. Defaults to default_modules(). They
            always run in MODULE_ORDER regardless of the given order.
    """

    def __init__(
        self,
        context: RunContext,
        modules: Sequence[InspectionModule] | None = None,
    ) -> None:
        self.context = context
        self.state = RunState.IDLE
        given = list(modules) if modules is not None else default_modules()
        self._modules = sorted(given, key=_module_rank)

    @property
    def module_names(self) -> tuple[str, ...]:
        return tuple(module.name for module in self._modules)

    def run(self, selected: Iterable[str] | None = None) -> RunSummary:
        """Execute a full run.

        Args:
            selected: Names of modules to run. Defaults to all.

        Returns:
            RunSummary in state done or aborted.

        Raises:
            ValueError: If a selected module name is unknown.
        """
        wanted = set(selected) if selected is not None else set(self.module_names)
        unknown = wanted - set(self.module_names)
        if unknown:
            msg = f"Unknown module(s): {', '.join(sorted(unknown))}"
            raise ValueError(msg)

        try:
            self._check_home()
            self._transition(RunState.POPULATING_INVENTORY)
            self._populate_inventory()
        except OrchestratorAbort as e:
            self._transition(RunState.ABORTED)
            logger.error("Run aborted: %s", e)
            return RunSummary(
                state=RunState.ABORTED,
                outcomes=tuple(
                    ModuleOutcome(module=name, status=OutcomeStatus.SKIPPED)
                    for name in self.module_names
                ),
                abort_reason=str(e),
            )

        self._transition(RunState.RUNNING_MODULES)
        outcomes = [
            self._run_module(module)
            if module.name in wanted
            else ModuleOutcome(module=module.name, status=OutcomeStatus.SKIPPED)
            for module in self._modules
        ]

        self._transition(RunState.AGGREGATING)
        summary = RunSummary(
            state=RunState.DONE,
            outcomes=tuple(outcomes),
            unavailable_sources=self.context.inventory.unavailable_sources(),
        )
        self._transition(RunState.DONE)
        logger.info(
            "Run finished: %d flagged, %d module(s) failed",
            len(summary.records),
            len(summary.failed_modules),
        )
        return summary

    def relocate(
        self,
        summary: RunSummary,
        gate: ConfirmationGate,
        manager: SafeRelocationManager,
    ) -> list[RelocationResult]:
        """Offer every flagged record of a run for relocation.

        Args:
            summary: A completed run.
            gate: Decides per record whether it may be moved.
            manager: Performs the moves.

        Returns:
            One result per record, in record order.
        """
        results: list[RelocationResult] = []
        for record in summary.records:
            if record.report_only:
                results.append(RelocationResult.skipped(record.path, "report-only"))
                continue
            results.append(manager.relocate(record, gate.authorize(record)))
        return results

    def _check_home(self) -> None:
        home = self.context.home
        if not home.is_dir() or not os.access(home, os.R_OK | os.X_OK):
            msg = f"Home directory {home} is not readable"
            raise OrchestratorAbort(msg)

    def _populate_inventory(self) -> None:
        try:
            self.context.inventory.ensure_ready()
        except Exception as e:
            msg = f"Inventory could not be built: {e}"
            raise OrchestratorAbort(msg) from e

    def _run_module(self, module: InspectionModule) -> ModuleOutcome:
        logger.debug("Running module %s", module.name)
        started = time.perf_counter()
        try:
            report = module.inspect(self.context)
        except Exception as e:
            duration = time.perf_counter() - started
            logger.error("Module %s failed: %s", module.name, e)
            logger.debug("Module %s traceback", module.name, exc_info=True)
            return ModuleOutcome(
                module=module.name,
                status=OutcomeStatus.FAILED,
                duration_seconds=duration,
                error=str(e) or type(e).__name__,
            )

        duration = time.perf_counter() - started
        logger.debug("Module %s: %d flagged in %.3fs", module.name, report.count, duration)
        return ModuleOutcome(
            module=module.name,
            status=OutcomeStatus.OK,
            duration_seconds=duration,
            report=report,
        )

    def _transition(self, state: RunState) -> None:
        logger.debug("Run state: %s -> %s", self.state.value, state.value)
        self.state = state


def _module_rank(module: InspectionModule) -> int:
    try:
        return MODULE_ORDER.index(module.name)
    except ValueError:
        return len(MODULE_ORDER)
