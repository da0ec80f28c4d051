"""Binaries inspection module.

Flags executables in /usr/local/bin that no installed package provides,
and symlinks there whose target is gone.
"""

import os
from collections.abc import Iterator
from pathlib import Path

from reclaim.attribution.models import Candidate, Domain, Verdict
from reclaim.context import RunContext
from reclaim.inspection.base import InspectionModule, modification_time


class BinariesModule(InspectionModule):
    """Flags unowned executables in /usr/local/bin."""

    name = "binaries"
    domain = Domain.BINARIES
    default_threshold = 0

    def default_roots(self, home: Path) -> tuple[Path, ...]:
        return (Path("/usr/local/bin"),)

    def iter_candidates(self, root: Path, context: RunContext) -> Iterator[Candidate]:
        for entry in sorted(root.iterdir()):
            dangling = entry.is_symlink() and not entry.exists()
            if not dangling and (entry.is_dir() or not os.access(entry, os.X_OK)):
                continue

            try:
                size = entry.lstat().st_size
            except OSError:
                continue

            details: dict[str, str] = {}
            if entry.is_symlink():
                details["target"] = os.readlink(entry)
            yield Candidate(
                path=str(entry),
                size_bytes=size,
                mtime=modification_time(entry),
                identifier_hint=entry.name,
                details=details,
            )

    def flag_reason(
        self,
        candidate: Candidate,
        verdict: Verdict,
        threshold: int,
        context: RunContext,
    ) -> str | None:
        target = candidate.details.get("target")
        if target is not None and not os.path.exists(candidate.path):
            return f"dangling symlink to {target}"
        return "not provided by any installed package"
