"""Disk usage inspection module.

Reports the largest consumers in the usual data locations and the
package-manager and toolchain roots. This module is inspection only:
every record it produces is report-only.
"""

from collections.abc import Iterator
from pathlib import Path

from reclaim.attribution.models import Candidate, Domain
from reclaim.context import RunContext
from reclaim.inspection.base import (
    InspectionModule,
    child_candidates,
    measure_sizes,
    modification_time,
)
from reclaim.utils.sizes import MB

# Path fragments mapped to report categories, checked in order
_CATEGORIES: tuple[tuple[str, str], ...] = (
    ("/Library/Application Support/", "Application Support"),
    ("/Library/Caches/", "Caches"),
    ("/Library/Logs/", "Logs"),
    ("/Library/Containers/", "Containers"),
    ("/Library/Group Containers/", "Containers"),
)


def toolchain_roots(home: Path) -> tuple[Path, ...]:
    """Package-manager and toolchain roots measured as a whole."""
    return (
        Path("/opt/homebrew"),
        Path("/usr/local"),
        home / ".cargo",
        home / ".npm",
        home / ".pnpm",
        home / ".yarn",
        home / ".gradle",
        home / ".m2",
        home / "Library" / "Developer" / "Xcode" / "DerivedData",
        home / "Library" / "Developer" / "Xcode" / "Archives",
    )


def disk_category(path: str, home: Path) -> str:
    """Classify a path into a disk report category.

    Args:
        path: Absolute path.
        home: Home directory.

    Returns:
        One of "Toolchains", "Application Support", "Caches", "Logs",
        "Containers" or "Other".
    """
    if Path(path) in toolchain_roots(home):
        return "Toolchains"
    for fragment, category in _CATEGORIES:
        if fragment in path:
            return category
    return "Other"


class DiskModule(InspectionModule):
    """Reports disk consumers at or above the disk threshold (200 MB)."""

    name = "disk"
    domain = Domain.DISK
    default_threshold = 200 * MB
    reports_installed_owners = True

    def default_roots(self, home: Path) -> tuple[Path, ...]:
        library = home / "Library"
        return (
            library / "Application Support",
            library / "Caches",
            library / "Logs",
            Path("/Library/Logs"),
            library / "Containers",
            library / "Group Containers",
            *toolchain_roots(home),
        )

    def iter_candidates(self, root: Path, context: RunContext) -> Iterator[Candidate]:
        if root in toolchain_roots(context.home):
            (size,) = measure_sizes([root])
            yield Candidate(
                path=str(root),
                size_bytes=size,
                mtime=modification_time(root),
                identifier_hint=root.name,
                details={"category": "Toolchains"},
            )
            return

        for candidate in child_candidates(root):
            yield Candidate(
                path=candidate.path,
                size_bytes=candidate.size_bytes,
                mtime=candidate.mtime,
                identifier_hint=candidate.identifier_hint,
                details={"category": disk_category(candidate.path, context.home)},
            )

    def is_report_only(self, candidate: Candidate, context: RunContext) -> bool:
        return True
