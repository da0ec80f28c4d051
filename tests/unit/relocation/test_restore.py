"""Unit tests for restoring backup sessions."""

from collections.abc import Callable
from pathlib import Path

import pytest
from reclaim.gate import Authorization
from reclaim.inspection.models import FlaggedRecord
from reclaim.relocation.checksum import compute_checksum
from reclaim.relocation.manager import SafeRelocationManager
from reclaim.relocation.models import (
    EntryState,
    ManifestEntry,
    RelocationStatus,
    create_manifest_entry,
)
from reclaim.relocation.restore import restore_session
from reclaim.relocation.session import BackupSession, SessionLock


@pytest.fixture
def relocated(
    home: Path,
    backup_root: Path,
    make_file: Callable[..., Path],
    make_record: Callable[..., FlaggedRecord],
) -> tuple[BackupSession, list[Path]]:
    """A session holding two relocated items and their original paths."""
    cache = home / "Library" / "Caches" / "com.example.App"
    make_file(cache / "data", content=b"cache data")
    log = make_file(home / "Library" / "Logs" / "app.log", content=b"log lines")

    with SafeRelocationManager(home, backup_root) as manager:
        manager.relocate(make_record(cache, size=10), Authorization.grant())
        manager.relocate(make_record(log, module="logs"), Authorization.grant())
        session = manager.session

    assert session is not None
    return session, [cache, log]


class TestRestoreSession:
    """Tests for restore_session function."""

    def test_restores_every_item(self, relocated: tuple[BackupSession, list[Path]]) -> None:
        """All items return to their original paths with their content."""
        session, originals = relocated
        cache, log = originals

        report = restore_session(session.path, assume_yes=True)

        assert report.success
        assert len(report.restored) == 2
        assert (cache / "data").read_bytes() == b"cache data"
        assert log.read_bytes() == b"log lines"
        assert all(e.state == EntryState.RESTORED for e in session.manifest.entries())

    def test_restores_newest_first(self, relocated: tuple[BackupSession, list[Path]]) -> None:
        """Entries are processed in reverse relocation order."""
        session, originals = relocated

        report = restore_session(session.path, assume_yes=True)

        assert [r.path for r in report.results] == [str(p) for p in reversed(originals)]

    def test_second_restore_changes_nothing(
        self, relocated: tuple[BackupSession, list[Path]]
    ) -> None:
        """Restoring twice is a no-op the second time."""
        session, _ = relocated
        restore_session(session.path, assume_yes=True)
        lines_before = session.manifest.path.read_text()

        report = restore_session(session.path, assume_yes=True)

        assert report.success
        assert report.restored == ()
        assert {r.reason for r in report.results} == {"already-restored"}
        assert session.manifest.path.read_text() == lines_before

    def test_tampered_backup_is_not_moved(
        self, relocated: tuple[BackupSession, list[Path]]
    ) -> None:
        """A backup whose checksum changed stays in the session."""
        session, originals = relocated
        _, log = originals
        backup = _backup_of(session, "logs")
        backup.write_bytes(b"tampered")

        report = restore_session(session.path, assume_yes=True)

        assert not report.success
        failed = {r.path: r.reason for r in report.failed}
        assert failed == {str(log): "integrity-mismatch"}
        assert not log.exists()
        assert backup.read_bytes() == b"tampered"
        assert len(report.restored) == 1

    def test_existing_original_is_not_overwritten(
        self, relocated: tuple[BackupSession, list[Path]]
    ) -> None:
        """A path recreated since relocation blocks its restore."""
        session, originals = relocated
        _, log = originals
        log.write_bytes(b"new log")

        report = restore_session(session.path, assume_yes=True)

        failed = {r.path: r.reason for r in report.failed}
        assert failed == {str(log): "original-exists"}
        assert log.read_bytes() == b"new log"

    def test_missing_backup_fails(self, relocated: tuple[BackupSession, list[Path]]) -> None:
        """A backup deleted by hand is reported."""
        session, originals = relocated
        _, log = originals
        _backup_of(session, "logs").unlink()

        report = restore_session(session.path, assume_yes=True)

        failed = {r.path: r.reason for r in report.failed}
        assert failed == {str(log): "backup-missing"}

    def test_non_interactive_without_confirm(
        self, relocated: tuple[BackupSession, list[Path]]
    ) -> None:
        """Without a prompt or --yes nothing is restored."""
        session, originals = relocated

        report = restore_session(session.path)

        assert report.restored == ()
        assert {r.reason for r in report.results} == {"non-interactive"}
        assert not any(p.exists() for p in originals)

    def test_declined_items_stay_in_backup(
        self, relocated: tuple[BackupSession, list[Path]]
    ) -> None:
        """The confirm callback decides per item."""
        session, originals = relocated
        cache, log = originals

        def confirm(entry: ManifestEntry) -> bool:
            return entry.module == "caches"

        report = restore_session(session.path, confirm=confirm)

        assert cache.exists()
        assert not log.exists()
        skipped = {
            r.path: r.reason for r in report.results if r.status == RelocationStatus.SKIPPED
        }
        assert skipped == {str(log): "no-confirmation"}

    def test_missing_manifest(self, backup_root: Path) -> None:
        """A session without manifest asks for a manual restore."""
        session = backup_root / "20261019T101500Z"
        (session / "items").mkdir(parents=True)

        report = restore_session(session, assume_yes=True)

        assert report.manifest_missing
        assert not report.success
        assert report.message is not None
        assert report.message.startswith("manual restore required")

    def test_conflicting_run(self, relocated: tuple[BackupSession, list[Path]]) -> None:
        """Restore refuses to run while the backup root is locked."""
        session, originals = relocated

        with SessionLock(session.path.parent):
            report = restore_session(session.path, assume_yes=True)

        assert report.error is not None
        assert not report.success
        assert not any(p.exists() for p in originals)

    def test_intent_without_move_is_skipped(self, home: Path, backup_root: Path) -> None:
        """An intent whose move never happened is left alone."""
        original = home / "Library" / "Caches" / "x"
        original.parent.mkdir(parents=True)
        original.write_bytes(b"still here")
        session = BackupSession.create(_mk(backup_root))
        session.manifest.append(
            create_manifest_entry(
                str(original),
                str(session.path / "items" / "Library" / "Caches" / "x"),
                compute_checksum(original),
            )
        )

        report = restore_session(session.path, assume_yes=True)

        assert [r.reason for r in report.results] == ["incomplete-relocation"]
        assert original.read_bytes() == b"still here"

    def test_intent_with_completed_move_is_restored(self, home: Path, backup_root: Path) -> None:
        """An intent whose move finished before a crash is restorable."""
        original = home / "Library" / "Caches" / "x"
        session = BackupSession.create(_mk(backup_root))
        backup = session.path / "items" / "Library" / "Caches" / "x"
        backup.parent.mkdir(parents=True)
        backup.write_bytes(b"moved before crash")
        session.manifest.append(
            create_manifest_entry(str(original), str(backup), compute_checksum(backup))
        )

        report = restore_session(session.path, assume_yes=True)

        assert report.success
        assert original.read_bytes() == b"moved before crash"


def _mk(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def _backup_of(session: BackupSession, module: str) -> Path:
    entry = next(e for e in session.manifest.entries() if e.module == module)
    return Path(entry.backup_path)
