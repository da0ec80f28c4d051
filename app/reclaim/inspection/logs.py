"""Logs inspection module.

Surfaces large log files and log folders. User logs can be relocated;
system log locations are reported only, since moving them would need
elevated privileges.
"""

import re
from collections.abc import Iterator, Sequence
from pathlib import Path

from reclaim.attribution.models import Candidate, Domain
from reclaim.context import RunContext
from reclaim.inspection.base import InspectionModule, child_candidates
from reclaim.inspection.models import FlaggedRecord
from reclaim.utils.sizes import MB, format_size


def _rotation_pattern(base: str) -> re.Pattern[str]:
    """Match rotated siblings: base.old, base.gz, base.1, base.1.gz, ..."""
    return re.compile(rf"^{re.escape(base)}\.(old|gz|bz2|\d+(\.(gz|bz2))?)$")


def rotation_siblings(path: Path) -> list[Path]:
    """List rotated copies of a log file sitting next to it.

    Args:
        path: The base log file.

    Returns:
        Sorted sibling paths; empty if the directory cannot be read.
    """
    pattern = _rotation_pattern(path.name)
    try:
        return sorted(p for p in path.parent.iterdir() if pattern.match(p.name))
    except OSError:
        return []


class LogsModule(InspectionModule):
    """Flags log files and folders at or above the logs threshold (50 MB)."""

    name = "logs"
    domain = Domain.LOGS
    default_threshold = 50 * MB
    reports_installed_owners = True

    def default_roots(self, home: Path) -> tuple[Path, ...]:
        return (home / "Library" / "Logs", Path("/Library/Logs"), Path("/var/log"))

    def iter_candidates(self, root: Path, context: RunContext) -> Iterator[Candidate]:
        yield from child_candidates(root)

    def notes(self, records: Sequence[FlaggedRecord], context: RunContext) -> tuple[str, ...]:
        if not context.explain:
            return ()

        notes: list[str] = []
        for record in records:
            path = Path(record.path)
            if not path.is_file():
                continue
            siblings = rotation_siblings(path)
            if not siblings:
                continue
            total = 0
            for sibling in siblings:
                try:
                    total += sibling.lstat().st_size
                except OSError:
                    continue
            notes.append(
                f"{record.path}: {len(siblings)} rotated copies ({format_size(total)})"
            )
        return tuple(notes)
