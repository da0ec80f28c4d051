"""Safe relocation of flagged items into a backup session.

Relocation never deletes anything: items are moved into a timestamped
backup session and every move is recorded in the session manifest
before it happens, so a backup can always be found and restored.
"""

import errno
import logging
import os
import threading
from collections.abc import Iterable
from pathlib import Path

from reclaim.attribution.protected import matching_pattern
from reclaim.core.paths import ensure_backup_root
from reclaim.gate import Authorization
from reclaim.inspection.models import FlaggedRecord
from reclaim.relocation.checksum import compute_checksum
from reclaim.relocation.models import (
    EntryState,
    IntegrityError,
    ManifestEntry,
    RelocationResult,
    SessionConflictError,
    create_manifest_entry,
)
from reclaim.relocation.session import BackupSession, SessionLock, deferred_sigint
from reclaim.relocation.transfer import move_item

logger = logging.getLogger(__name__)


class SafeRelocationManager:
    """Moves authorized records into a lazily created backup session.

    The backup root is locked on the first relocation and stays locked
    until close(), so two runs never write sessions under the same root
    at once. Relocations within one manager are serialized.

    Example:
        >>> with SafeRelocationManager(home, backup_root) as manager:
        ...     result = manager.relocate(record, gate.authorize(record))

    Args:
        home: Home directory; only items below it are relocated.
        backup_root: Directory that holds backup sessions.
        extra_protected: Additional protected identifier patterns.
    """

    def __init__(
        self,
        home: Path,
        backup_root: Path,
        *,
        extra_protected: Iterable[str] = (),
    ) -> None:
        self.home = home
        self.backup_root = backup_root
        self._extra_protected = tuple(extra_protected)
        self._lock = SessionLock(backup_root)
        self._write_lock = threading.Lock()
        self._session: BackupSession | None = None

    @property
    def session(self) -> BackupSession | None:
        """The session created by this manager, if any relocation happened."""
        return self._session

    def relocate(self, record: FlaggedRecord, authorization: Authorization) -> RelocationResult:
        """Move one record into the backup session.

        Args:
            record: The flagged record to relocate.
            authorization: The confirmation gate's decision for it.

        Returns:
            RelocationResult. A failed result guarantees the original is
            untouched and the manifest has no entry for it.
        """
        path = record.path

        if not authorization.granted:
            return RelocationResult.skipped(path, authorization.reason or "not-authorized")
        if record.report_only:
            return RelocationResult.skipped(path, "report-only")

        pattern = self._protected_pattern(record)
        if pattern is not None:
            logger.warning("Refusing to relocate %s: protected by %s", path, pattern)
            return RelocationResult.skipped(path, "protected-owner")

        original = Path(os.path.normpath(path))
        if not _is_below(original, self.home):
            return RelocationResult.skipped(path, "outside-home")
        if not os.path.lexists(original):
            return RelocationResult.failed(path, "source-vanished")

        try:
            session = self._ensure_session()
        except SessionConflictError as e:
            logger.error("%s", e)
            return RelocationResult.failed(path, "conflicting-session")
        except (OSError, RuntimeError) as e:
            logger.error("Cannot create backup session: %s", e)
            return RelocationResult.failed(path, "backup-unavailable")

        destination = _free_destination(session.destination_for(original, self.home))

        try:
            checksum = compute_checksum(original)
        except OSError as e:
            logger.warning("Cannot read %s: %s", path, e)
            return RelocationResult.failed(path, _failure_reason(e))

        entry = create_manifest_entry(
            str(original),
            str(destination),
            checksum,
            module=record.module,
            size_bytes=record.size_bytes,
        )

        with self._write_lock, deferred_sigint():
            try:
                session.manifest.append(entry)
            except OSError as e:
                logger.error("Cannot write manifest %s: %s", session.manifest.path, e)
                return RelocationResult.failed(path, "manifest-write-failed")

            try:
                move_item(original, destination, checksum)
            except OSError as e:
                logger.warning("Cannot move %s: %s", path, e)
                self._discard(session, entry.id)
                return RelocationResult.failed(path, _failure_reason(e))

            self._commit(session, entry)

        logger.info("Moved %s to %s", path, destination)
        return RelocationResult.moved(path, str(destination), checksum)

    def close(self) -> None:
        """Release the backup root lock."""
        self._lock.release()

    def __enter__(self) -> "SafeRelocationManager":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _ensure_session(self) -> BackupSession:
        if self._session is None:
            ensure_backup_root(self.backup_root)
            self._lock.acquire()
            self._session = BackupSession.create(self.backup_root)
        return self._session

    def _protected_pattern(self, record: FlaggedRecord) -> str | None:
        verdict = record.verdict
        for value in (
            verdict.owner,
            verdict.owner_name,
            record.candidate.identifier_hint,
            record.candidate.name,
        ):
            pattern = matching_pattern(value, self._extra_protected)
            if pattern is not None:
                return pattern
        return None

    @staticmethod
    def _commit(session: BackupSession, entry: ManifestEntry) -> None:
        try:
            session.manifest.append(entry.with_state(EntryState.COMMITTED))
        except OSError as e:
            # The intent line still points at the backup, which restore accepts
            logger.error("Cannot record completed move of %s: %s", entry.original_path, e)

    @staticmethod
    def _discard(session: BackupSession, entry_id: str) -> None:
        try:
            session.manifest.remove(entry_id)
        except OSError as e:
            logger.error("Cannot drop manifest entry %s: %s", entry_id, e)


def _failure_reason(error: OSError) -> str:
    if isinstance(error, IntegrityError):
        return "integrity-mismatch"
    if isinstance(error, PermissionError):
        return "permission-denied"
    if isinstance(error, FileNotFoundError):
        return "source-vanished"
    if error.errno == errno.EXDEV:
        return "cross-device"
    return error.strerror or str(error)


def _free_destination(destination: Path) -> Path:
    """Return the destination, suffixed with -N if it is already taken."""
    candidate = destination
    sequence = 0
    while os.path.lexists(candidate):
        sequence += 1
        candidate = destination.with_name(f"{destination.name}-{sequence}")
    return candidate


def _is_below(path: Path, root: Path) -> bool:
    """Check that a path lies strictly below root once ".." is collapsed."""
    normalized = Path(os.path.normpath(os.path.abspath(path)))
    return Path(os.path.normpath(os.path.abspath(root))) in normalized.parents
