"""Leftovers inspection module.

Surfaces per-app data left behind after an app was removed: folders
under Application Support, Containers, Group Containers and Saved
Application State named after a bundle id no installed app claims.
Preferences are inspected too but only reported, never relocated.

An allowlist in the configuration names exact paths under ~/Library
that are always reported, whatever their name or size.
"""

import logging
import os
from collections.abc import Iterator, Sequence
from pathlib import Path

from reclaim.attribution.heuristics import BUNDLE_ID_PATTERN
from reclaim.attribution.models import Candidate, Domain, Verdict
from reclaim.context import RunContext
from reclaim.inspection.base import InspectionModule, child_candidates
from reclaim.inspection.models import ModuleReport
from reclaim.utils.sizes import MB, format_size

logger = logging.getLogger(__name__)

# File suffixes stripped to recover the bundle id from a leftover's name
_NAME_SUFFIXES: tuple[str, ...] = (".plist", ".savedState")


def leftover_hint(path: Path) -> str:
    """Derive the bundle id hint from a leftover's file or folder name."""
    name = path.name
    for suffix in _NAME_SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


class LeftoversModule(InspectionModule):
    """Flags orphaned per-app data at or above the leftovers threshold (50 MB)."""

    name = "leftovers"
    domain = Domain.LEFTOVERS
    default_threshold = 50 * MB

    def __init__(
        self,
        *,
        roots: Sequence[Path] | None = None,
        threshold: int | None = None,
    ) -> None:
        super().__init__(roots=roots, threshold=threshold)
        self._allowed: frozenset[str] = frozenset()

    def default_roots(self, home: Path) -> tuple[Path, ...]:
        library = home / "Library"
        return (
            library / "Application Support",
            library / "Containers",
            library / "Group Containers",
            library / "Saved Application State",
            library / "Preferences",
        )

    def iter_candidates(self, root: Path, context: RunContext) -> Iterator[Candidate]:
        yield from child_candidates(root, hint=leftover_hint)

    def inspect(self, context: RunContext) -> ModuleReport:
        self._allowed = self.load_allowlist(context)
        return super().inspect(context)

    def load_allowlist(self, context: RunContext) -> frozenset[str]:
        """Return configured allowlist paths that lie under ~/Library."""
        library = os.path.join(str(context.home), "Library") + "/"
        allowed: set[str] = set()
        for path in context.settings.allowlist_paths():
            normalized = os.path.normpath(str(path))
            if normalized.startswith(library):
                allowed.add(normalized)
            else:
                logger.warning("Ignoring leftovers allowlist entry outside ~/Library: %s", path)
        return frozenset(allowed)

    def is_allowlisted(self, candidate: Candidate, context: RunContext) -> bool:
        """Whether the candidate's exact path is allowlisted."""
        return os.path.normpath(candidate.path) in self._allowed

    def bypasses_threshold(self, candidate: Candidate, context: RunContext) -> bool:
        return self.is_allowlisted(candidate, context)

    def is_report_only(self, candidate: Candidate, context: RunContext) -> bool:
        if self.is_allowlisted(candidate, context):
            return False
        if os.path.basename(os.path.dirname(candidate.path)) == "Preferences":
            return True
        return super().is_report_only(candidate, context)

    def flag_reason(
        self,
        candidate: Candidate,
        verdict: Verdict,
        threshold: int,
        context: RunContext,
    ) -> str | None:
        if self.is_allowlisted(candidate, context):
            return "explicit allowlist match"

        hint = candidate.identifier_hint or candidate.name
        if not BUNDLE_ID_PATTERN.match(hint):
            context.note(logger, "leftovers: not bundle-id shaped %s", candidate.path)
            return None

        return f"no installed app for '{hint}' ({format_size(candidate.size_bytes)})"
