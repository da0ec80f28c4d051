"""Abstract base class for inspection modules.

Every module follows the same contract: walk a fixed list of root
locations, turn what it finds into Candidates, apply an inclusive size
threshold, attribute each remaining candidate and flag what is left.
Modules only describe their roots and candidates; inspect() drives the
rest so the contract is enforced in one place.
"""

import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import ClassVar

from reclaim.attribution.models import Candidate, Confidence, Domain, Verdict
from reclaim.context import RunContext
from reclaim.inspection.models import FlaggedRecord, ModuleReport, SkippedLocation
from reclaim.utils.sizes import format_size, path_size

logger = logging.getLogger(__name__)

# Upper bound on concurrent directory size walks
_MAX_SIZE_WORKERS = 8


class InspectionModule(ABC):
    """Abstract base class for all inspection modules.

    Example:
        >>> module = CachesModule()
        >>> report = module.inspect(context)
        >>> for record in report.records:
        ...     print(record.path, record.verdict.confidence.value)

    Args:
        roots: Root locations to inspect instead of default_roots().
        threshold: Size threshold in bytes instead of the configured or
            default one.
    """

    name: ClassVar[str]
    domain: ClassVar[Domain]
    default_threshold: ClassVar[int]

    # Size-consumer domains (caches, logs, disk) keep reporting items whose
    # owner is still installed; orphan domains never do.
    reports_installed_owners: ClassVar[bool] = False

    def __init__(
        self,
        *,
        roots: Sequence[Path] | None = None,
        threshold: int | None = None,
    ) -> None:
        self._roots = tuple(roots) if roots is not None else None
        self._threshold = threshold

    @abstractmethod
    def default_roots(self, home: Path) -> tuple[Path, ...]:
        """Return the root locations inspected by default.

        Args:
            home: Home directory of the inspected user.
        """

    @abstractmethod
    def iter_candidates(self, root: Path, context: RunContext) -> Iterator[Candidate]:
        """Yield candidates found below one root, in a stable order.

        Args:
            root: An existing, readable root location.
            context: Run context.

        Raises:
            OSError: If the root cannot be listed. inspect() records the
                root as skipped.
        """

    def roots(self, context: RunContext) -> tuple[Path, ...]:
        """Return the roots inspected in this run."""
        if self._roots is not None:
            return self._roots
        return self.default_roots(context.home)

    def threshold(self, context: RunContext) -> int:
        """Return the inclusive size threshold in bytes for this run."""
        if self._threshold is not None:
            return self._threshold
        return context.settings.threshold_bytes(self.name, self.default_threshold)

    def bypasses_threshold(self, candidate: Candidate, context: RunContext) -> bool:
        """Whether a candidate is considered regardless of its size."""
        return False

    def is_report_only(self, candidate: Candidate, context: RunContext) -> bool:
        """Whether a flagged candidate may only be reported, never relocated.

        Items outside the home directory cannot be moved without
        elevated privileges, so they are report-only by default.
        """
        return not _is_within(candidate.path, context.home)

    def flag_reason(
        self,
        candidate: Candidate,
        verdict: Verdict,
        threshold: int,
        context: RunContext,
    ) -> str | None:
        """Explain why a candidate is flagged, or return None to keep it.

        Args:
            candidate: Candidate at or above the threshold.
            verdict: Its ownership verdict (never protected).
            threshold: Threshold applied.
            context: Run context.

        Returns:
            Flag reason, or None if the candidate should not be flagged.
        """
        return f"{format_size(candidate.size_bytes)} at or above {format_size(threshold)}"

    def notes(self, records: Sequence[FlaggedRecord], context: RunContext) -> tuple[str, ...]:
        """Return informational findings to attach to the report."""
        return ()

    def inspect(self, context: RunContext) -> ModuleReport:
        """Run the module over all of its roots.

        Absent or unreadable roots are recorded as skipped, never raised.

        Args:
            context: Run context.

        Returns:
            ModuleReport with flagged records in discovery order.
        """
        threshold = self.threshold(context)
        records: list[FlaggedRecord] = []
        skipped: list[SkippedLocation] = []
        seen: set[str] = set()
        scanned = 0

        for root in self.roots(context):
            problem = location_problem(root)
            if problem is not None:
                context.note(logger, "%s: skipping %s (%s)", self.name, root, problem)
                skipped.append(SkippedLocation(path=str(root), reason=problem))
                continue

            try:
                candidates = list(self.iter_candidates(root, context))
            except PermissionError:
                logger.warning("Permission denied inspecting %s", root)
                skipped.append(SkippedLocation(path=str(root), reason="permission-denied"))
                continue
            except OSError as e:
                logger.warning("Cannot inspect %s: %s", root, e)
                skipped.append(SkippedLocation(path=str(root), reason=e.strerror or str(e)))
                continue

            for candidate in candidates:
                if candidate.path in seen:
                    continue
                seen.add(candidate.path)
                scanned += 1

                record = self._evaluate(candidate, threshold, context)
                if record is not None:
                    records.append(record)

        return ModuleReport(
            module=self.name,
            records=tuple(records),
            skipped_locations=tuple(skipped),
            scanned_count=scanned,
            threshold_bytes=threshold,
            notes=self.notes(records, context),
        )

    def _evaluate(
        self,
        candidate: Candidate,
        threshold: int,
        context: RunContext,
    ) -> FlaggedRecord | None:
        """Apply threshold, attribution and ownership rules to one candidate."""
        if candidate.size_bytes < threshold and not self.bypasses_threshold(candidate, context):
            logger.debug(
                "%s: below threshold %s (%s)",
                self.name,
                candidate.path,
                format_size(candidate.size_bytes),
            )
            return None

        verdict = context.resolver.attribute(candidate, self.domain)

        if verdict.protected:
            context.note(logger, "%s: protected %s (%s)", self.name, candidate.path, verdict.reason)
            return None

        owned = verdict.confidence != Confidence.NONE and verdict.owner_present
        if owned and not self.reports_installed_owners:
            context.note(
                logger, "%s: owner installed %s (%s)", self.name, candidate.path, verdict.reason
            )
            return None

        reason = self.flag_reason(candidate, verdict, threshold, context)
        if reason is None:
            return None

        record = FlaggedRecord(
            candidate=candidate,
            verdict=verdict,
            module=self.name,
            flag_reason=reason,
            report_only=self.is_report_only(candidate, context),
        )
        context.note(
            logger,
            "%s: flagged %s: %s [%s: %s]",
            self.name,
            candidate.path,
            reason,
            verdict.confidence.value,
            verdict.reason,
        )
        return record


def location_problem(root: Path) -> str | None:
    """Check whether a root location can be inspected.

    Args:
        root: Root location.

    Returns:
        None if the root is an accessible directory, otherwise a reason.
    """
    if not os.path.lexists(root):
        return "missing"
    if not root.is_dir():
        return "not-a-directory"
    if not os.access(root, os.R_OK | os.X_OK):
        return "permission-denied"
    return None


def measure_sizes(paths: Sequence[Path]) -> list[int]:
    """Measure several paths concurrently, preserving input order.

    Args:
        paths: Paths to measure.

    Returns:
        Sizes in bytes, one per input path, in input order.
    """
    if len(paths) <= 1:
        return [path_size(p) for p in paths]
    with ThreadPoolExecutor(max_workers=min(_MAX_SIZE_WORKERS, len(paths))) as pool:
        return list(pool.map(path_size, paths))


def modification_time(path: Path) -> float | None:
    """Return a path's mtime without following symlinks, or None."""
    try:
        return path.lstat().st_mtime
    except OSError:
        return None


def child_candidates(
    root: Path,
    *,
    hint: Callable[[Path], str | None] = lambda p: p.name,
    include: Callable[[Path], bool] = lambda p: True,
) -> list[Candidate]:
    """Build candidates for the direct children of a directory.

    Children are sorted by name so the result is stable for a given
    filesystem state.

    Args:
        root: Directory to list.
        hint: Derives the identifier hint from a child path.
        include: Filters children before they are measured.

    Returns:
        Candidates in sorted name order.

    Raises:
        OSError: If the directory cannot be listed.
    """
    children = [child for child in sorted(root.iterdir()) if include(child)]
    sizes = measure_sizes(children)
    return [
        Candidate(
            path=str(child),
            size_bytes=size,
            mtime=modification_time(child),
            identifier_hint=hint(child),
        )
        for child, size in zip(children, sizes, strict=True)
    ]


def _is_within(path: str, root: Path) -> bool:
    """Check whether ``path`` is ``root`` or lies below it."""
    root_str = str(root).rstrip("/")
    return path == root_str or path.startswith(root_str + "/")
