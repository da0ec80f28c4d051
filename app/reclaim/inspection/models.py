"""Inspection domain models.

This module defines what an inspection module reports: the records it
flagged and the locations it had to skip.
"""

from dataclasses import dataclass
from typing import Any

from reclaim.attribution.models import Candidate, Verdict


@dataclass(frozen=True, slots=True)
class FlaggedRecord:
    """A candidate an inspection module flagged for review or relocation.

    Uniquely identified within a run by (module, path).

    Attributes:
        candidate: The flagged filesystem item.
        verdict: Ownership verdict for the item.
        module: Name of the module that flagged it.
        flag_reason: Why the item was flagged.
        report_only: The item may be reported but never relocated.
    """

    candidate: Candidate
    verdict: Verdict
    module: str
    flag_reason: str
    report_only: bool = False

    def __post_init__(self) -> None:
        """Validate record data after initialization."""
        if not self.module:
            msg = "Flagged record module cannot be empty"
            raise ValueError(msg)
        if self.verdict.protected:
            msg = f"Protected item cannot be flagged: {self.candidate.path}"
            raise ValueError(msg)

    @property
    def key(self) -> tuple[str, str]:
        """Identity of the record within a run."""
        return (self.module, self.candidate.path)

    @property
    def path(self) -> str:
        """Path of the flagged item."""
        return self.candidate.path

    @property
    def size_bytes(self) -> int:
        """Size of the flagged item in bytes."""
        return self.candidate.size_bytes

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON reporting."""
        return {
            "module": self.module,
            "path": self.candidate.path,
            "size_bytes": self.candidate.size_bytes,
            "mtime": self.candidate.mtime,
            "identifier_hint": self.candidate.identifier_hint,
            "details": dict(self.candidate.details),
            "flag_reason": self.flag_reason,
            "report_only": self.report_only,
            "verdict": self.verdict.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class SkippedLocation:
    """A root location an inspection module could not inspect.

    Attributes:
        path: The location.
        reason: Why it was skipped ("missing", "permission-denied", ...).
    """

    path: str
    reason: str


@dataclass(frozen=True, slots=True)
class ModuleReport:
    """Output of one inspection module run.

    Attributes:
        module: Module name.
        records: Flagged records in discovery order.
        skipped_locations: Roots that were absent or unreadable.
        scanned_count: Number of candidates considered.
        threshold_bytes: Size threshold applied (inclusive).
        notes: Informational findings that are not records.
    """

    module: str
    records: tuple[FlaggedRecord, ...] = ()
    skipped_locations: tuple[SkippedLocation, ...] = ()
    scanned_count: int = 0
    threshold_bytes: int = 0
    notes: tuple[str, ...] = ()

    @property
    def count(self) -> int:
        """Number of flagged records."""
        return len(self.records)

    @property
    def total_bytes(self) -> int:
        """Total size of flagged records."""
        return sum(record.size_bytes for record in self.records)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON reporting."""
        return {
            "module": self.module,
            "count": self.count,
            "total_bytes": self.total_bytes,
            "scanned_count": self.scanned_count,
            "threshold_bytes": self.threshold_bytes,
            "skipped_locations": [
                {"path": s.path, "reason": s.reason} for s in self.skipped_locations
            ],
            "notes": list(self.notes),
            "records": [record.to_dict() for record in self.records],
        }
