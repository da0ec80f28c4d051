"""Unit tests for backup sessions and the session lock."""

import os
import signal
from datetime import UTC, datetime
from pathlib import Path

import pytest
from reclaim.relocation.models import SessionConflictError
from reclaim.relocation.session import (
    BackupSession,
    SessionLock,
    deferred_sigint,
    find_session,
    list_sessions,
)

NOW = datetime(2026, 10, 19, 10, 15, 0, tzinfo=UTC)


class TestBackupSession:
    """Tests for BackupSession."""

    def test_create_uses_utc_timestamp(self, tmp_path: Path) -> None:
        """Session directories are named after their UTC start time."""
        session = BackupSession.create(tmp_path, now=NOW)

        assert session.name == "20261019T101500Z"
        assert session.path.is_dir()
        assert session.manifest.path == session.path / "manifest.jsonl"

    def test_same_second_sessions_get_suffix(self, tmp_path: Path) -> None:
        """A second session in the same second gets a -1 suffix."""
        first = BackupSession.create(tmp_path, now=NOW)
        second = BackupSession.create(tmp_path, now=NOW)
        third = BackupSession.create(tmp_path, now=NOW)

        assert first.name == "20261019T101500Z"
        assert second.name == "20261019T101500Z-1"
        assert third.name == "20261019T101500Z-2"

    def test_destination_mirrors_home_layout(self, tmp_path: Path) -> None:
        """Items keep their path relative to home inside items/."""
        session = BackupSession(tmp_path / "s")
        home = Path("/Users/me")

        destination = session.destination_for(home / "Library" / "Caches" / "x", home)

        assert destination == tmp_path / "s" / "items" / "Library" / "Caches" / "x"

    def test_destination_outside_home(self, tmp_path: Path) -> None:
        """Paths outside home keep their absolute layout."""
        session = BackupSession(tmp_path / "s")

        destination = session.destination_for(Path("/opt/x"), Path("/Users/me"))

        assert destination == tmp_path / "s" / "items" / "opt" / "x"


class TestListSessions:
    """Tests for list_sessions and find_session."""

    def test_missing_root(self, tmp_path: Path) -> None:
        """A missing root has no sessions."""
        assert list_sessions(tmp_path / "missing") == []

    def test_newest_first(self, tmp_path: Path) -> None:
        """Sessions are sorted newest first, suffixes after their base."""
        for name in ("20261018T090000Z", "20261019T101500Z", "20261019T101500Z-1"):
            (tmp_path / name).mkdir()
        (tmp_path / "not-a-session").mkdir()
        (tmp_path / ".lock").write_text("1")

        names = [s.name for s in list_sessions(tmp_path)]

        assert names == ["20261019T101500Z-1", "20261019T101500Z", "20261018T090000Z"]

    def test_find_latest(self, tmp_path: Path) -> None:
        """'latest' resolves to the newest session."""
        (tmp_path / "20261018T090000Z").mkdir()
        (tmp_path / "20261019T101500Z").mkdir()

        session = find_session(tmp_path, "latest")

        assert session is not None
        assert session.name == "20261019T101500Z"

    def test_find_by_name_and_path(self, tmp_path: Path) -> None:
        """Sessions can be referenced by name or directory path."""
        (tmp_path / "20261018T090000Z").mkdir()

        by_name = find_session(tmp_path, "20261018T090000Z")
        by_path = find_session(tmp_path, str(tmp_path / "20261018T090000Z"))

        assert by_name is not None and by_name.path == tmp_path / "20261018T090000Z"
        assert by_path is not None and by_path.path == tmp_path / "20261018T090000Z"

    def test_find_nothing(self, tmp_path: Path) -> None:
        """Unknown references resolve to None."""
        assert find_session(tmp_path, "latest") is None
        assert find_session(tmp_path, "20990101T000000Z") is None


class TestSessionLock:
    """Tests for SessionLock."""

    def test_acquire_and_release(self, tmp_path: Path) -> None:
        """The lock records the holder pid and can be released."""
        lock = SessionLock(tmp_path)

        with lock:
            assert lock.held
            assert lock.path.read_text() == str(os.getpid())

        assert not lock.held

    def test_second_holder_conflicts(self, tmp_path: Path) -> None:
        """A second lock on the same root fails without waiting."""
        with SessionLock(tmp_path):
            other = SessionLock(tmp_path)
            with pytest.raises(SessionConflictError, match="Another reclaim run"):
                other.acquire()

    def test_lock_free_after_release(self, tmp_path: Path) -> None:
        """The root can be locked again after release."""
        with SessionLock(tmp_path):
            pass

        with SessionLock(tmp_path) as lock:
            assert lock.held


class TestDeferredSigint:
    """Tests for deferred_sigint context manager."""

    def test_interrupt_delivered_after_block(self) -> None:
        """SIGINT inside the block is raised once the block completes."""
        completed = []

        with pytest.raises(KeyboardInterrupt):
            with deferred_sigint():
                os.kill(os.getpid(), signal.SIGINT)
                completed.append(True)

        assert completed == [True]

    def test_handler_restored(self) -> None:
        """The previous SIGINT handler is reinstated."""
        before = signal.getsignal(signal.SIGINT)

        with deferred_sigint():
            pass

        assert signal.getsignal(signal.SIGINT) is before
