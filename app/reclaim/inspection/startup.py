"""Startup items inspection module.

Lists what starts with the machine or the session: launch agents and
daemons that run at boot or login, and the login items registered with
System Events. Each job gets a best-effort impact estimate. Jobs with no
known owner are flagged; all records are report-only.
"""

import logging
import subprocess
from collections import Counter
from collections.abc import Iterator, Sequence
from enum import Enum
from pathlib import Path

from reclaim.attribution.models import Candidate, Confidence, Domain, Verdict
from reclaim.context import RunContext
from reclaim.inspection.base import InspectionModule, modification_time
from reclaim.inspection.launchd import LaunchJob, read_launch_job
from reclaim.inspection.models import FlaggedRecord, ModuleReport
from reclaim.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

_LOGIN_ITEMS_SCRIPT = 'tell application "System Events" to get the name of every login item'


class Timing(str, Enum):
    """When a startup item runs."""

    BOOT = "boot"
    LOGIN = "login"
    ON_DEMAND = "on-demand"


class Impact(str, Enum):
    """Estimated effect of a startup item on boot and login."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Keyword groups and their weight; only the first matching group counts
IMPACT_CATEGORIES: tuple[tuple[int, tuple[str, ...]], ...] = (
    (3, ("vmware", "virtualbox", "parallels", "qemu", "utm")),
    (
        2,
        ("dropbox", "onedrive", "google drive", "googledrive", "box", "nextcloud", "sync"),
    ),
    (
        2,
        (
            "crowdstrike",
            "falcon",
            "sentinelone",
            "carbonblack",
            "defender",
            "symantec",
            "sophos",
            "antivirus",
            "malware",
            "vpn",
            "zscaler",
            "globalprotect",
            "paloalto",
        ),
    ),
    (1, ("docker", "k8s", "kubernetes", "colima", "rancher", "homebrew", "brew")),
)

_TIMING_SCORE = {Timing.BOOT: 3, Timing.LOGIN: 2, Timing.ON_DEMAND: 0}
_OWNER_SCORE = {Confidence.INVENTORY_MATCHED: 0, Confidence.HEURISTIC: 1, Confidence.NONE: 3}


def job_timing(job: LaunchJob, root: Path) -> Timing:
    """Classify when a launch job starts.

    Daemons start at boot. Agents start at login when they are marked
    RunAtLoad or KeepAlive, and on demand otherwise.
    """
    if root.name == "LaunchDaemons":
        return Timing.BOOT
    if job.run_at_load or job.keep_alive:
        return Timing.LOGIN
    return Timing.ON_DEMAND


def estimate_impact(
    timing: Timing,
    confidence: Confidence,
    label: str,
    program: str | None,
) -> Impact:
    """Estimate the startup impact of a job.

    Points are added for early timing, weak attribution, programs outside
    the system locations and heavy categories (virtualization, sync,
    security software, developer tooling). Six points or more is high,
    two or more is medium.

    Args:
        timing: When the job starts.
        confidence: How its owner was determined.
        label: Job label or login item name.
        program: Program path, if known.

    Returns:
        The estimated impact.
    """
    score = _TIMING_SCORE[timing] + _OWNER_SCORE[confidence]

    if not program:
        score += 1
    elif program.startswith(("/System/", "/usr/libexec/")):
        score -= 2
    elif program.startswith("/Applications/"):
        score += 1
    elif program.startswith(("/Users/", "/Library/")):
        score += 2

    haystack = f"{label} {program or ''}".lower()
    for weight, keywords in IMPACT_CATEGORIES:
        if any(keyword in haystack for keyword in keywords):
            score += weight
            break

    impact = Impact.HIGH if score >= 6 else Impact.MEDIUM if score >= 2 else Impact.LOW

    if impact == Impact.HIGH and timing == Timing.ON_DEMAND:
        impact = Impact.MEDIUM
    if impact == Impact.HIGH and not program and confidence != Confidence.NONE:
        impact = Impact.MEDIUM
    if confidence == Confidence.NONE and timing == Timing.BOOT:
        impact = Impact.HIGH
    return impact


def login_items() -> tuple[str, ...]:
    """Return the names of the session's login items.

    Returns:
        Login item names; empty when System Events cannot be queried.
    """
    if not command_exists("osascript"):
        return ()

    try:
        result = run_command(["osascript", "-e", _LOGIN_ITEMS_SCRIPT], timeout=15.0)
    except (OSError, subprocess.SubprocessError) as e:
        logger.warning("Cannot list login items: %s", e)
        return ()

    if not result.success:
        logger.warning("Cannot list login items: %s", result.stderr.strip())
        return ()

    # AppleScript renders a list as "A, B, C"
    return tuple(name.strip() for name in result.stdout.split(", ") if name.strip())


class StartupModule(InspectionModule):
    """Reports startup items and flags those without a known owner."""

    name = "startup"
    domain = Domain.STARTUP
    default_threshold = 0
    reports_installed_owners = True

    def __init__(
        self,
        *,
        roots: Sequence[Path] | None = None,
        threshold: int | None = None,
    ) -> None:
        super().__init__(roots=roots, threshold=threshold)
        self._impacts: Counter[Impact] = Counter()
        self._login_items: tuple[str, ...] = ()

    def default_roots(self, home: Path) -> tuple[Path, ...]:
        return (
            home / "Library" / "LaunchAgents",
            Path("/Library/LaunchAgents"),
            Path("/Library/LaunchDaemons"),
        )

    def inspect(self, context: RunContext) -> ModuleReport:
        self._impacts = Counter()
        self._login_items = login_items()
        return super().inspect(context)

    def iter_candidates(self, root: Path, context: RunContext) -> Iterator[Candidate]:
        for plist in sorted(root.glob("*.plist")):
            job = read_launch_job(plist)
            if job is None:
                continue
            try:
                size = plist.lstat().st_size
            except OSError:
                continue

            details = {"label": job.label, "timing": job_timing(job, root).value}
            if job.program:
                details["program"] = job.program
            yield Candidate(
                path=str(plist),
                size_bytes=size,
                mtime=modification_time(plist),
                identifier_hint=job.label,
                details=details,
            )

    def is_report_only(self, candidate: Candidate, context: RunContext) -> bool:
        return True

    def flag_reason(
        self,
        candidate: Candidate,
        verdict: Verdict,
        threshold: int,
        context: RunContext,
    ) -> str | None:
        label = candidate.details.get("label", candidate.name)
        timing = Timing(candidate.details.get("timing", Timing.LOGIN.value))
        program = candidate.details.get("program")
        impact = estimate_impact(timing, verdict.confidence, label, program)
        self._impacts[impact] += 1

        if verdict.confidence != Confidence.NONE:
            context.note(
                logger, "startup: %s owned (%s), %s impact", label, verdict.reason, impact.value
            )
            return None
        return f"unknown owner, starts at {timing.value}, {impact.value} impact"

    def notes(self, records: Sequence[FlaggedRecord], context: RunContext) -> tuple[str, ...]:
        notes = [
            f"{sum(self._impacts.values())} startup jobs: "
            + ", ".join(f"{self._impacts[i]} {i.value}" for i in reversed(Impact))
            + " impact"
        ]
        for name in self._login_items:
            entry = context.inventory.resolve_name(name)
            owner = entry.display_name if entry is not None else "unknown owner"
            notes.append(f"Login item {name}: {owner}")
        return tuple(notes)
