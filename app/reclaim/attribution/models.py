"""Attribution domain models.

A Candidate is a filesystem fact reported by an inspection module. The
resolver turns it into a Verdict: who owns it and how sure we are.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum


class Confidence(str, Enum):
    """How an owner was determined.

    Attributes:
        INVENTORY_MATCHED: The inventory index confirmed the owner.
        HEURISTIC: A naming or location convention suggested the owner.
        NONE: No owner could be determined.
    """

    INVENTORY_MATCHED = "inventory-matched"
    HEURISTIC = "heuristic"
    NONE = "none"


class Domain(str, Enum):
    """Inspection domain, selecting the heuristic chain used."""

    LAUNCHD = "launchd"
    BINARIES = "binaries"
    CACHES = "caches"
    LEFTOVERS = "leftovers"
    LOGS = "logs"
    DISK = "disk"
    BREW = "brew"
    STARTUP = "startup"
    INTEL = "intel"
    PERMISSIONS = "permissions"


@dataclass(frozen=True, slots=True)
class Candidate:
    """A filesystem item considered by an inspection module.

    Attributes:
        path: Absolute path of the item.
        size_bytes: Size in bytes (recursive for directories).
        mtime: Last modification time as a POSIX timestamp, if known.
        identifier_hint: Identifier suggested by the item's location or
            content (folder name, container id, launchd label).
        details: Module-specific facts (e.g. launchd "program", "scope").
    """

    path: str
    size_bytes: int
    mtime: float | None = None
    identifier_hint: str | None = None
    details: Mapping[str, str] = field(default_factory=lambda: {})

    def __post_init__(self) -> None:
        """Validate candidate data after initialization."""
        if not self.path:
            msg = "Candidate path cannot be empty"
            raise ValueError(msg)
        if self.size_bytes < 0:
            msg = f"Candidate size cannot be negative, got {self.size_bytes}"
            raise ValueError(msg)

    @property
    def name(self) -> str:
        """Basename of the candidate path."""
        return os.path.basename(self.path.rstrip("/"))


@dataclass(frozen=True, slots=True)
class Verdict:
    """Ownership decision for a Candidate.

    Attributes:
        confidence: How the owner was determined.
        reason: Human-readable explanation of the decision.
        owner: Owner identifier, None when unknown.
        owner_name: Owner display name, if known.
        rule: Name of the lookup or heuristic rule that matched.
        protected: The owner is a protected identifier; never flag.
        owner_present: The owner is still installed on disk.
    """

    confidence: Confidence
    reason: str
    owner: str | None = None
    owner_name: str | None = None
    rule: str | None = None
    protected: bool = False
    owner_present: bool = False

    def __post_init__(self) -> None:
        """Validate verdict consistency after initialization."""
        if not self.reason:
            msg = "Verdict reason cannot be empty"
            raise ValueError(msg)
        if self.confidence == Confidence.NONE and self.owner is not None:
            msg = "A verdict without confidence cannot name an owner"
            raise ValueError(msg)
        if self.confidence != Confidence.NONE and not self.owner:
            msg = f"A {self.confidence.value} verdict must name an owner"
            raise ValueError(msg)

    @property
    def is_owned_and_installed(self) -> bool:
        """True when the inventory confirmed an owner that is still on disk."""
        return self.confidence == Confidence.INVENTORY_MATCHED and self.owner_present

    def to_dict(self) -> dict[str, object]:
        """Serialize for JSON reporting."""
        return {
            "confidence": self.confidence.value,
            "owner": self.owner,
            "owner_name": self.owner_name,
            "rule": self.rule,
            "reason": self.reason,
            "protected": self.protected,
            "owner_present": self.owner_present,
        }
