"""Relocation domain models.

This module defines the backup manifest entry written for every
relocated item and the results reported for relocation and restore.
"""

import json
import uuid
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class SessionConflictError(RuntimeError):
    """Raised when another run holds the backup root lock."""


class IntegrityError(OSError):
    """Raised when a copied or backed-up item does not match its checksum."""


class EntryState(str, Enum):
    """Lifecycle state of a manifest entry.

    Attributes:
        INTENT: Recorded before the move; the move may not have happened.
        COMMITTED: The move completed.
        RESTORED: The item was moved back to its original path.
    """

    INTENT = "intent"
    COMMITTED = "committed"
    RESTORED = "restored"


class RelocationStatus(str, Enum):
    """Outcome of a relocation or restore attempt."""

    MOVED = "moved"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ManifestEntry:
    """One line of a backup session manifest.

    The manifest is append-only: a state change appends a new line with
    the same id, and the last line for an id is its effective state.

    Attributes:
        id: Unique identifier (12-character hex string from UUID).
        original_path: Where the item lived before relocation.
        backup_path: Where the item lives inside the session.
        checksum: Content checksum ("sha256:<hex>").
        timestamp: When the line was written (ISO 8601 with timezone).
        state: Lifecycle state.
        module: Inspection module that flagged the item.
        size_bytes: Size of the item at relocation time.
    """

    id: str
    original_path: str
    backup_path: str
    checksum: str
    timestamp: str
    state: EntryState
    module: str = ""
    size_bytes: int = 0

    def __post_init__(self) -> None:
        """Validate entry data after initialization."""
        if not self.id:
            msg = "Manifest entry ID cannot be empty"
            raise ValueError(msg)
        if not self.original_path or not self.backup_path:
            msg = "Manifest entry paths cannot be empty"
            raise ValueError(msg)
        if not self.checksum.startswith("sha256:"):
            msg = f"Unsupported checksum format: {self.checksum!r}"
            raise ValueError(msg)

    def with_state(self, state: EntryState) -> "ManifestEntry":
        """Return a copy in a new state, timestamped now."""
        return replace(self, state=state, timestamp=_now_iso())

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage.

        Returns:
            Dictionary representation of the entry.
        """
        return {
            "id": self.id,
            "original_path": self.original_path,
            "backup_path": self.backup_path,
            "checksum": self.checksum,
            "timestamp": self.timestamp,
            "state": self.state.value,
            "module": self.module,
            "size_bytes": self.size_bytes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ManifestEntry":
        """Deserialize from dictionary.

        Args:
            data: Dictionary containing entry data.

        Returns:
            ManifestEntry instance.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If the state or checksum is invalid.
        """
        return cls(
            id=data["id"],
            original_path=data["original_path"],
            backup_path=data["backup_path"],
            checksum=data["checksum"],
            timestamp=data["timestamp"],
            state=EntryState(data["state"]),
            module=data.get("module", ""),
            size_bytes=int(data.get("size_bytes", 0)),
        )

    def to_json_line(self) -> str:
        """Serialize to JSON line for JSONL storage.

        Returns:
            Single JSON line (no trailing newline).
        """
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_json_line(cls, line: str) -> "ManifestEntry":
        """Deserialize from JSON line.

        Args:
            line: Single JSON line (with or without trailing whitespace).

        Returns:
            ManifestEntry instance.

        Raises:
            json.JSONDecodeError: If line is not valid JSON.
            KeyError: If required fields are missing.
            ValueError: If data is invalid.
        """
        data = json.loads(line.strip())
        if not isinstance(data, dict):
            msg = "Manifest line is not a JSON object"
            raise ValueError(msg)
        return cls.from_dict(data)


def create_manifest_entry(
    original_path: str,
    backup_path: str,
    checksum: str,
    *,
    module: str = "",
    size_bytes: int = 0,
) -> ManifestEntry:
    """Create a new manifest entry in the INTENT state.

    Args:
        original_path: Item path before relocation.
        backup_path: Item path inside the backup session.
        checksum: Content checksum of the item.
        module: Inspection module that flagged the item.
        size_bytes: Size of the item.

    Returns:
        New ManifestEntry with a generated id and current timestamp.
    """
    return ManifestEntry(
        id=uuid.uuid4().hex[:12],
        original_path=original_path,
        backup_path=backup_path,
        checksum=checksum,
        timestamp=_now_iso(),
        state=EntryState.INTENT,
        module=module,
        size_bytes=size_bytes,
    )


@dataclass(frozen=True, slots=True)
class RelocationResult:
    """Result of relocating or restoring a single item.

    Attributes:
        path: The item's original path.
        status: Outcome.
        reason: Skip or failure reason (None when moved).
        backup_path: Backup location, when known.
        checksum: Content checksum, when computed.
    """

    path: str
    status: RelocationStatus
    reason: str | None = None
    backup_path: str | None = None
    checksum: str | None = None

    @property
    def success(self) -> bool:
        """True unless the attempt failed."""
        return self.status != RelocationStatus.FAILED

    @classmethod
    def moved(cls, path: str, backup_path: str, checksum: str) -> "RelocationResult":
        return cls(path, RelocationStatus.MOVED, None, backup_path, checksum)

    @classmethod
    def skipped(cls, path: str, reason: str, backup_path: str | None = None) -> "RelocationResult":
        return cls(path, RelocationStatus.SKIPPED, reason, backup_path)

    @classmethod
    def failed(cls, path: str, reason: str, backup_path: str | None = None) -> "RelocationResult":
        return cls(path, RelocationStatus.FAILED, reason, backup_path)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON reporting."""
        return {
            "path": self.path,
            "status": self.status.value,
            "reason": self.reason,
            "backup_path": self.backup_path,
            "checksum": self.checksum,
        }


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()
