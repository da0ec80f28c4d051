"""Restoring a backup session to the original locations.

Restore reads the session manifest, verifies every backed-up item
against its recorded checksum and moves it back. A mismatching item is
never moved. Restoring an already restored session changes nothing.
"""

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from reclaim.relocation.checksum import compute_checksum
from reclaim.relocation.models import (
    EntryState,
    ManifestEntry,
    RelocationResult,
    RelocationStatus,
    SessionConflictError,
)
from reclaim.relocation.session import BackupSession, SessionLock, deferred_sigint
from reclaim.relocation.transfer import move_item

logger = logging.getLogger(__name__)

MANUAL_RESTORE_MESSAGE = (
    "manual restore required: the session has no manifest, copy items from "
    "its items/ directory back below your home directory"
)


@dataclass(frozen=True, slots=True)
class RestoreReport:
    """Outcome of restoring one backup session.

    Attributes:
        session: Session directory.
        results: Per-entry results, newest entry first.
        manifest_missing: The session had no manifest; nothing was moved.
        message: Guidance for the user, if any.
        error: Why the session could not be processed at all.
    """

    session: str
    results: tuple[RelocationResult, ...] = ()
    manifest_missing: bool = False
    message: str | None = None
    error: str | None = None

    @property
    def restored(self) -> tuple[RelocationResult, ...]:
        """Results of items moved back."""
        return tuple(r for r in self.results if r.status == RelocationStatus.MOVED)

    @property
    def failed(self) -> tuple[RelocationResult, ...]:
        """Results of items that could not be restored."""
        return tuple(r for r in self.results if r.status == RelocationStatus.FAILED)

    @property
    def success(self) -> bool:
        """True when the session was processed and no entry failed."""
        return not self.manifest_missing and self.error is None and not self.failed

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON reporting."""
        return {
            "session": self.session,
            "manifest_missing": self.manifest_missing,
            "message": self.message,
            "error": self.error,
            "results": [r.to_dict() for r in self.results],
        }


@dataclass
class _RestoreRun:
    session: BackupSession
    confirm: Callable[[ManifestEntry], bool] | None
    assume_yes: bool
    results: list[RelocationResult] = field(default_factory=list)


def restore_session(
    session_path: Path,
    *,
    confirm: Callable[[ManifestEntry], bool] | None = None,
    assume_yes: bool = False,
) -> RestoreReport:
    """Move every item of a backup session back to where it came from.

    Each item is confirmed through ``confirm`` unless ``assume_yes`` is
    set. Without either, items are skipped as non-interactive.

    Args:
        session_path: Session directory.
        confirm: Per-item prompt; returns True to restore the item.
        assume_yes: Restore without prompting.

    Returns:
        RestoreReport with one result per manifest entry.
    """
    session = BackupSession(session_path)
    if not session.manifest.exists():
        logger.warning("No manifest in %s", session_path)
        return RestoreReport(
            session=str(session_path),
            manifest_missing=True,
            message=MANUAL_RESTORE_MESSAGE,
        )

    lock = SessionLock(session_path.parent)
    try:
        lock.acquire()
    except (SessionConflictError, OSError) as e:
        logger.error("Cannot lock %s: %s", session_path.parent, e)
        return RestoreReport(session=str(session_path), error=str(e))

    try:
        run = _RestoreRun(session=session, confirm=confirm, assume_yes=assume_yes)
        for entry in reversed(session.manifest.entries()):
            run.results.append(_restore_entry(run, entry))
    finally:
        lock.release()

    return RestoreReport(session=str(session_path), results=tuple(run.results))


def _restore_entry(run: _RestoreRun, entry: ManifestEntry) -> RelocationResult:
    original = Path(entry.original_path)
    backup = Path(entry.backup_path)
    path = entry.original_path

    if entry.state == EntryState.RESTORED:
        return RelocationResult.skipped(path, "already-restored", entry.backup_path)

    original_present = os.path.lexists(original)
    backup_present = os.path.lexists(backup)

    if entry.state == EntryState.INTENT and (original_present or not backup_present):
        # The move never happened
        return RelocationResult.skipped(path, "incomplete-relocation", entry.backup_path)

    if not backup_present:
        if original_present:
            return RelocationResult.skipped(path, "already-restored", entry.backup_path)
        return RelocationResult.failed(path, "backup-missing", entry.backup_path)

    try:
        actual = compute_checksum(backup)
    except OSError as e:
        logger.warning("Cannot read backup %s: %s", backup, e)
        return RelocationResult.failed(path, "backup-unreadable", entry.backup_path)

    if actual != entry.checksum:
        logger.warning("Backup %s does not match its recorded checksum", backup)
        if entry.state == EntryState.INTENT:
            return RelocationResult.skipped(path, "incomplete-relocation", entry.backup_path)
        return RelocationResult.failed(path, "integrity-mismatch", entry.backup_path)

    if original_present:
        return RelocationResult.failed(path, "original-exists", entry.backup_path)

    if not run.assume_yes:
        if run.confirm is None:
            return RelocationResult.skipped(path, "non-interactive", entry.backup_path)
        if not run.confirm(entry):
            return RelocationResult.skipped(path, "no-confirmation", entry.backup_path)

    with deferred_sigint():
        try:
            move_item(backup, original, entry.checksum)
        except OSError as e:
            logger.warning("Cannot restore %s: %s", path, e)
            return RelocationResult.failed(path, e.strerror or str(e), entry.backup_path)

        try:
            run.session.manifest.append(entry.with_state(EntryState.RESTORED))
        except OSError as e:
            logger.error("Cannot record restore of %s: %s", path, e)

    logger.info("Restored %s", path)
    return RelocationResult(
        path=path,
        status=RelocationStatus.MOVED,
        backup_path=entry.backup_path,
        checksum=entry.checksum,
    )
