"""Launch services inspection module.

Flags launch agent and daemon property lists whose program no longer
exists on disk. Jobs that are currently loaded, jobs owned by installed
software and jobs without a resolvable program are left alone.
"""

import logging
import os
import plistlib
import subprocess
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path

from reclaim.attribution.models import Candidate, Domain, Verdict
from reclaim.context import RunContext
from reclaim.inspection.base import InspectionModule, modification_time
from reclaim.inspection.models import ModuleReport
from reclaim.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LaunchJob:
    """The parts of a launchd property list reclaim looks at.

    Attributes:
        label: Job label.
        program: ``Program`` or ``ProgramArguments[0]``, if any.
        run_at_load: Whether ``RunAtLoad`` is set.
        keep_alive: Whether ``KeepAlive`` is set to anything truthy.
    """

    label: str
    program: str | None = None
    run_at_load: bool = False
    keep_alive: bool = False


def read_launch_job(path: Path) -> LaunchJob | None:
    """Read a launchd property list.

    Args:
        path: Property list path.

    Returns:
        The parsed job, or None if the plist is unreadable or has no label.
    """
    try:
        with open(path, "rb") as f:
            data = plistlib.load(f)
    except (OSError, plistlib.InvalidFileException, ValueError) as e:
        logger.debug("Cannot parse %s: %s", path, e)
        return None

    if not isinstance(data, dict):
        return None

    label = data.get("Label")
    if not isinstance(label, str) or not label.strip():
        return None

    program = data.get("Program")
    if not isinstance(program, str) or not program:
        arguments = data.get("ProgramArguments")
        program = None
        if isinstance(arguments, list) and arguments and isinstance(arguments[0], str):
            program = arguments[0] or None

    # KeepAlive may be a bool or a dict of conditions
    return LaunchJob(
        label=label.strip(),
        program=program,
        run_at_load=data.get("RunAtLoad") is True,
        keep_alive=bool(data.get("KeepAlive")),
    )


def loaded_job_labels() -> frozenset[str]:
    """Return labels of jobs currently loaded in launchd.

    Returns:
        Loaded labels; empty when launchctl is unavailable.
    """
    if not command_exists("launchctl"):
        return frozenset()

    try:
        result = run_command(["launchctl", "list"], timeout=15.0)
    except (OSError, subprocess.SubprocessError) as e:
        logger.warning("Cannot list launchd jobs: %s", e)
        return frozenset()

    if not result.success:
        logger.warning("launchctl list failed: %s", result.stderr.strip())
        return frozenset()

    labels: set[str] = set()
    # Columns: PID, Status, Label (first line is a header)
    for line in result.stdout.splitlines()[1:]:
        parts = line.split(None, 2)
        if len(parts) == 3:
            labels.add(parts[2].strip())
    return frozenset(labels)


class LaunchdModule(InspectionModule):
    """Flags launch jobs whose program is missing."""

    name = "launchd"
    domain = Domain.LAUNCHD
    default_threshold = 0

    def __init__(
        self,
        *,
        roots: Sequence[Path] | None = None,
        threshold: int | None = None,
    ) -> None:
        super().__init__(roots=roots, threshold=threshold)
        self._loaded: frozenset[str] = frozenset()

    def default_roots(self, home: Path) -> tuple[Path, ...]:
        return (
            Path("/Library/LaunchAgents"),
            Path("/Library/LaunchDaemons"),
            home / "Library" / "LaunchAgents",
            home / "Library" / "LaunchDaemons",
        )

    def inspect(self, context: RunContext) -> ModuleReport:
        self._loaded = loaded_job_labels()
        return super().inspect(context)

    def iter_candidates(self, root: Path, context: RunContext) -> Iterator[Candidate]:
        scope = "user" if _is_within(root, context.home) else "system"
        persistence = "boot" if root.name == "LaunchDaemons" else "login"

        for plist in sorted(root.glob("*.plist")):
            job = read_launch_job(plist)
            if job is None:
                context.note(logger, "launchd: no label in %s", plist)
                continue

            try:
                size = plist.lstat().st_size
            except OSError:
                continue

            details = {"label": job.label, "scope": scope, "persistence": persistence}
            if job.program:
                details["program"] = job.program
            yield Candidate(
                path=str(plist),
                size_bytes=size,
                mtime=modification_time(plist),
                identifier_hint=job.label,
                details=details,
            )

    def flag_reason(
        self,
        candidate: Candidate,
        verdict: Verdict,
        threshold: int,
        context: RunContext,
    ) -> str | None:
        label = candidate.details.get("label", candidate.name)
        if label in self._loaded:
            context.note(logger, "launchd: active job %s", label)
            return None

        program = candidate.details.get("program")
        if not program or not os.path.isabs(program):
            # Bare names like "sh" resolve through PATH at launch time
            context.note(logger, "launchd: unknown program for %s: %s", label, program)
            return None

        if os.path.lexists(program):
            context.note(logger, "launchd: program exists for %s: %s", label, program)
            return None

        return f"program missing: {program}"


def _is_within(path: Path, root: Path) -> bool:
    return path == root or root in path.parents
