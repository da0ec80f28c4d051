"""Safe relocation into backup sessions and restore from them."""

from reclaim.relocation.checksum import compute_checksum
from reclaim.relocation.manager import SafeRelocationManager
from reclaim.relocation.manifest import BackupManifest
from reclaim.relocation.models import (
    EntryState,
    IntegrityError,
    ManifestEntry,
    RelocationResult,
    RelocationStatus,
    SessionConflictError,
    create_manifest_entry,
)
from reclaim.relocation.restore import RestoreReport, restore_session
from reclaim.relocation.session import BackupSession, SessionLock, find_session, list_sessions

__all__ = [
    "BackupManifest",
    "BackupSession",
    "EntryState",
    "IntegrityError",
    "ManifestEntry",
    "RelocationResult",
    "RelocationStatus",
    "RestoreReport",
    "SafeRelocationManager",
    "SessionConflictError",
    "SessionLock",
    "compute_checksum",
    "create_manifest_entry",
    "find_session",
    "list_sessions",
    "restore_session",
]
