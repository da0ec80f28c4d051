"""Backup sessions and the lock that serializes them.

A backup session is one timestamped directory below the backup root
holding the relocated items and their manifest:

    <backup_root>/20261019T101500Z/
        manifest.jsonl
        items/Library/Caches/com.example.App/...

Only one process relocates or restores under a backup root at a time;
the lock file at the root enforces that.
"""

import fcntl
import logging
import os
import re
import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from types import FrameType
from typing import IO

from reclaim.relocation.manifest import BackupManifest
from reclaim.relocation.models import SessionConflictError

logger = logging.getLogger(__name__)

# Same format the backup directories have always used
TIMESTAMP_FORMAT = "%Y%m%dT%H%M%SZ"

_SESSION_NAME_PATTERN = re.compile(r"^(?P<stamp>\d{8}T\d{6}Z)(?:-(?P<seq>\d+))?$")

LOCK_FILENAME = ".lock"
ITEMS_DIRNAME = "items"


class BackupSession:
    """One backup session directory and its manifest.

    Attributes:
        path: Session directory.
        manifest: The session's append-only manifest.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self.manifest = BackupManifest(path / BackupManifest.FILENAME)

    @property
    def name(self) -> str:
        """Session directory name (its timestamp)."""
        return self.path.name

    @classmethod
    def create(cls, root: Path, now: datetime | None = None) -> "BackupSession":
        """Create a new, empty session directory below a backup root.

        Two sessions started within the same second get distinct
        directories: the later ones gain a "-1", "-2", ... suffix.

        Args:
            root: Existing backup root.
            now: Session time. Defaults to the current UTC time.

        Returns:
            The new session.

        Raises:
            OSError: If the directory cannot be created.
        """
        stamp = (now or datetime.now(UTC)).strftime(TIMESTAMP_FORMAT)
        candidate = root / stamp
        sequence = 0
        while True:
            try:
                candidate.mkdir()
            except FileExistsError:
                sequence += 1
                candidate = root / f"{stamp}-{sequence}"
                continue
            break

        logger.info("Created backup session %s", candidate)
        return cls(candidate)

    def destination_for(self, original: Path, home: Path) -> Path:
        """Return where an item is stored inside this session.

        Items keep their path relative to the home directory, so a
        backup can be navigated and restored by hand.

        Args:
            original: Absolute path of the item.
            home: Home directory the item lives under.

        Returns:
            Destination path inside the session.
        """
        try:
            relative = original.relative_to(home)
        except ValueError:
            relative = Path(str(original).lstrip("/"))
        return self.path / ITEMS_DIRNAME / relative


class SessionLock:
    """Exclusive advisory lock on a backup root.

    Example:
        >>> with SessionLock(root):
        ...     session = BackupSession.create(root)

    Args:
        root: Backup root to lock.
    """

    def __init__(self, root: Path) -> None:
        self.root = root
        self._file: IO[str] | None = None

    @property
    def path(self) -> Path:
        """Lock file location."""
        return self.root / LOCK_FILENAME

    @property
    def held(self) -> bool:
        """Whether this instance holds the lock."""
        return self._file is not None

    def acquire(self) -> None:
        """Take the lock without waiting.

        Raises:
            SessionConflictError: If another process holds the lock.
            OSError: If the lock file cannot be opened.
        """
        if self._file is not None:
            return

        lock_file = self.path.open("a+", encoding="utf-8")
        try:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError as e:
            lock_file.seek(0)
            holder = lock_file.read().strip() or "unknown"
            lock_file.close()
            msg = f"Another reclaim run (pid {holder}) is using {self.root}"
            raise SessionConflictError(msg) from e

        lock_file.seek(0)
        lock_file.truncate()
        lock_file.write(str(os.getpid()))
        lock_file.flush()
        self._file = lock_file

    def release(self) -> None:
        """Release the lock if held."""
        if self._file is None:
            return
        try:
            fcntl.flock(self._file.fileno(), fcntl.LOCK_UN)
        finally:
            self._file.close()
            self._file = None

    def __enter__(self) -> "SessionLock":
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


def list_sessions(root: Path) -> list[BackupSession]:
    """List the sessions below a backup root, newest first.

    Args:
        root: Backup root.

    Returns:
        Sessions sorted by timestamp and sequence, newest first. Empty
        if the root doesn't exist.
    """
    if not root.is_dir():
        return []

    found: list[tuple[str, int, Path]] = []
    for child in root.iterdir():
        match = _SESSION_NAME_PATTERN.match(child.name)
        if match is None or not child.is_dir():
            continue
        found.append((match.group("stamp"), int(match.group("seq") or 0), child))

    found.sort(reverse=True)
    return [BackupSession(path) for _, _, path in found]


def find_session(root: Path, reference: str) -> BackupSession | None:
    """Resolve a session reference given on the command line.

    Args:
        root: Backup root.
        reference: "latest", a session name, or a session directory path.

    Returns:
        The session, or None if nothing matches.
    """
    if reference == "latest":
        sessions = list_sessions(root)
        return sessions[0] if sessions else None

    by_name = root / reference
    if _SESSION_NAME_PATTERN.match(reference) and by_name.is_dir():
        return BackupSession(by_name)

    path = Path(reference).expanduser()
    if path.is_dir():
        return BackupSession(path)
    return None


@contextmanager
def deferred_sigint() -> Iterator[None]:
    """Hold back SIGINT until the enclosed block completes.

    Wraps each manifest-then-move step so an interrupt lands between
    steps, never inside one. Outside the main thread signal handlers
    cannot be installed and the block runs unguarded.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    received: list[int] = []

    def _hold(signum: int, frame: FrameType | None) -> None:
        received.append(signum)
        logger.warning("Interrupt received, finishing the current item first")

    previous = signal.signal(signal.SIGINT, _hold)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)

    if received:
        if callable(previous):
            previous(signal.SIGINT, None)
        elif previous != signal.SIG_IGN:
            raise KeyboardInterrupt
