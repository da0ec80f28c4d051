"""Homebrew inspection module.

Reports the state of the Homebrew installation: leaves, pinned and
outdated formulae, outdated casks, the largest kegs in the Cellar and
the size of the Homebrew download cache. Only outdated formulae that are
not pinned are flagged. Every record is report-only; upgrading or
cleaning up is left to ``brew`` itself.
"""

import logging
import subprocess
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path

from reclaim.attribution.models import Candidate, Domain, Verdict
from reclaim.context import RunContext
from reclaim.inspection.base import InspectionModule, child_candidates, measure_sizes
from reclaim.inspection.models import FlaggedRecord, ModuleReport
from reclaim.inventory.sources import HomebrewSource
from reclaim.utils.shell import command_exists, run_command
from reclaim.utils.sizes import format_size

logger = logging.getLogger(__name__)

# Number of kegs listed in the largest-kegs note
TOP_KEGS = 10


@dataclass(frozen=True, slots=True)
class BrewState:
    """What ``brew`` reports about the installation.

    Attributes:
        prefix: Homebrew prefix, if known.
        leaves: Formulae no other formula depends on.
        pinned: Pinned formulae.
        outdated_formulae: Formulae with a newer version available.
        outdated_casks: Casks with a newer version available.
    """

    prefix: Path | None = None
    leaves: frozenset[str] = frozenset()
    pinned: frozenset[str] = frozenset()
    outdated_formulae: frozenset[str] = frozenset()
    outdated_casks: frozenset[str] = frozenset()


def query_brew_state(brew: str = "brew") -> BrewState | None:
    """Ask Homebrew about leaves, pins and outdated packages.

    A query that fails contributes an empty set; the rest still count.

    Args:
        brew: Name or path of the brew executable.

    Returns:
        The collected state, or None if brew is not installed.
    """
    if not command_exists(brew):
        return None

    def names(*args: str) -> frozenset[str]:
        try:
            result = run_command([brew, *args], timeout=120.0)
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning("brew %s failed: %s", " ".join(args), e)
            return frozenset()
        if not result.success:
            logger.warning("brew %s failed: %s", " ".join(args), result.stderr.strip())
            return frozenset()
        # First column only; verbose listings append version columns
        return frozenset(line.split()[0] for line in result.lines())

    try:
        prefix = HomebrewSource(brew).prefix()
    except (OSError, subprocess.SubprocessError) as e:
        logger.warning("brew --prefix failed: %s", e)
        prefix = None

    return BrewState(
        prefix=prefix,
        leaves=names("leaves"),
        pinned=names("list", "--pinned"),
        outdated_formulae=names("outdated", "--formula", "--quiet"),
        outdated_casks=names("outdated", "--cask", "--quiet"),
    )


class BrewModule(InspectionModule):
    """Reports Homebrew kegs and flags unpinned outdated formulae.

    Args:
        brew: Name or path of the brew executable.
        roots: Cellar directories to inspect instead of ``<prefix>/Cellar``.
        threshold: Size threshold in bytes.
    """

    name = "brew"
    domain = Domain.BREW
    default_threshold = 0
    reports_installed_owners = True

    def __init__(
        self,
        *,
        brew: str = "brew",
        roots: Sequence[Path] | None = None,
        threshold: int | None = None,
    ) -> None:
        super().__init__(roots=roots, threshold=threshold)
        self._brew = brew
        self._state = BrewState()
        self._kegs: list[Candidate] = []

    def default_roots(self, home: Path) -> tuple[Path, ...]:
        if self._state.prefix is None:
            return ()
        return (self._state.prefix / "Cellar",)

    def inspect(self, context: RunContext) -> ModuleReport:
        state = query_brew_state(self._brew)
        if state is None:
            context.note(logger, "brew: Homebrew not installed")
            return ModuleReport(
                module=self.name,
                threshold_bytes=self.threshold(context),
                notes=("Homebrew is not installed",),
            )
        self._state = state
        self._kegs = []
        return super().inspect(context)

    def iter_candidates(self, root: Path, context: RunContext) -> Iterator[Candidate]:
        state = self._state
        for keg in child_candidates(root, include=lambda p: p.is_dir()):
            formula = keg.name
            try:
                versions = sorted(v.name for v in Path(keg.path).iterdir() if v.is_dir())
            except OSError:
                versions = []
            candidate = Candidate(
                path=keg.path,
                size_bytes=keg.size_bytes,
                mtime=keg.mtime,
                identifier_hint=f"brew:formula:{formula}",
                details={
                    "formula": formula,
                    "versions": ", ".join(versions),
                    "leaf": "yes" if formula in state.leaves else "no",
                    "pinned": "yes" if formula in state.pinned else "no",
                    "outdated": "yes" if formula in state.outdated_formulae else "no",
                },
            )
            self._kegs.append(candidate)
            yield candidate

    def is_report_only(self, candidate: Candidate, context: RunContext) -> bool:
        return True

    def flag_reason(
        self,
        candidate: Candidate,
        verdict: Verdict,
        threshold: int,
        context: RunContext,
    ) -> str | None:
        formula = candidate.details.get("formula", candidate.name)
        if candidate.details.get("outdated") != "yes":
            return None
        if candidate.details.get("pinned") == "yes":
            context.note(logger, "brew: %s is outdated but pinned", formula)
            return None
        return f"outdated: {formula} ({candidate.details.get('versions') or 'unknown version'})"

    def notes(self, records: Sequence[FlaggedRecord], context: RunContext) -> tuple[str, ...]:
        state = self._state
        notes = [
            f"{len(self._kegs)} formulae installed, {len(state.leaves)} leaves",
            f"{len(records)} outdated unpinned formulae",
            f"{len(state.outdated_casks)} outdated casks",
        ]

        pinned_outdated = sorted(state.pinned & state.outdated_formulae)
        if pinned_outdated:
            notes.append(f"Pinned and outdated: {', '.join(pinned_outdated)}")
        if state.outdated_casks:
            notes.append(f"Outdated casks: {', '.join(sorted(state.outdated_casks))}")

        largest = sorted(self._kegs, key=lambda c: c.size_bytes, reverse=True)[:TOP_KEGS]
        for keg in largest:
            versions = keg.details.get("versions") or "?"
            notes.append(f"Keg {keg.name} {versions}: {format_size(keg.size_bytes)}")

        cache = context.home / "Library" / "Caches" / "Homebrew"
        if cache.is_dir():
            downloads = cache / "downloads"
            cache_size, downloads_size = measure_sizes([cache, downloads])
            notes.append(
                f"Download cache {cache}: {format_size(cache_size)}"
                f" ({format_size(downloads_size)} in downloads)"
            )
        return tuple(notes)
