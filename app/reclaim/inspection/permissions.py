"""Access preflight module.

Checks which inspected locations reclaim can actually read. macOS
privacy protection (TCC) refuses listing the app containers with EPERM
until the terminal has Full Disk Access; system locations may simply be
unreadable without administrator rights. Nothing is flagged: the module
reports the blocked locations and what to do about them.
"""

import errno
import logging
import os
from collections.abc import Iterator, Mapping
from pathlib import Path

from reclaim.attribution.models import Candidate, Domain
from reclaim.context import RunContext
from reclaim.inspection.base import InspectionModule, location_problem
from reclaim.inspection.models import ModuleReport, SkippedLocation

logger = logging.getLogger(__name__)

PRIVACY_PROTECTED = "privacy-protected"

# TERM_PROGRAM values mapped to the app that needs Full Disk Access
HOST_APPS: dict[str, str] = {
    "Apple_Terminal": "Terminal",
    "iTerm.app": "iTerm",
    "vscode": "Visual Studio Code",
    "WarpTerminal": "Warp",
    "ghostty": "Ghostty",
    "WezTerm": "WezTerm",
}


def access_problem(root: Path) -> str | None:
    """Check whether a location can be listed.

    Args:
        root: Location to check.

    Returns:
        None if its entries can be read, otherwise a reason:
        ``privacy-protected`` for EPERM, ``permission-denied`` for EACCES,
        or the reason given by location_problem().
    """
    problem = location_problem(root)
    if problem is not None and problem != "permission-denied":
        return problem

    try:
        with os.scandir(root) as entries:
            next(entries, None)
    except PermissionError as e:
        return PRIVACY_PROTECTED if e.errno == errno.EPERM else "permission-denied"
    except OSError as e:
        return e.strerror or str(e)
    return None


def host_app(environ: Mapping[str, str] | None = None) -> str | None:
    """Name the app reclaim runs in, from ``TERM_PROGRAM``."""
    environ = environ if environ is not None else os.environ
    program = environ.get("TERM_PROGRAM")
    if not program:
        return None
    return HOST_APPS.get(program, program)


class PermissionsModule(InspectionModule):
    """Reports locations that are blocked for the current user."""

    name = "permissions"
    domain = Domain.PERMISSIONS
    default_threshold = 0

    def default_roots(self, home: Path) -> tuple[Path, ...]:
        library = home / "Library"
        return (
            library / "Containers",
            library / "Group Containers",
            Path("/Library/LaunchAgents"),
            Path("/Library/LaunchDaemons"),
            Path("/Library/Logs"),
            Path("/var/log"),
        )

    def iter_candidates(self, root: Path, context: RunContext) -> Iterator[Candidate]:
        # Access checks produce no candidates
        return iter(())

    def inspect(self, context: RunContext) -> ModuleReport:
        roots = self.roots(context)
        blocked: list[SkippedLocation] = []
        for root in roots:
            reason = access_problem(root)
            if reason is None:
                context.note(logger, "permissions: %s is readable", root)
                continue
            if reason != "missing":
                logger.warning("Cannot read %s (%s)", root, reason)
            blocked.append(SkippedLocation(path=str(root), reason=reason))

        return ModuleReport(
            module=self.name,
            skipped_locations=tuple(blocked),
            scanned_count=len(roots),
            threshold_bytes=self.threshold(context),
            notes=self._guidance(blocked),
        )

    def _guidance(self, blocked: list[SkippedLocation]) -> tuple[str, ...]:
        protected = [s.path for s in blocked if s.reason == PRIVACY_PROTECTED]
        denied = [s.path for s in blocked if s.reason == "permission-denied"]
        if not protected and not denied:
            return ("All inspected locations are readable",)

        notes: list[str] = []
        if protected:
            app = host_app() or "your terminal app"
            notes.append(f"Blocked by privacy protection: {', '.join(protected)}")
            notes.append(
                f"Grant Full Disk Access to {app} in System Settings > Privacy & Security"
                " > Full Disk Access, then restart it"
            )
        if denied:
            notes.append(
                f"Readable only with administrator rights: {', '.join(denied)};"
                " reclaim inspects what it can see and never escalates"
            )
        return tuple(notes)
