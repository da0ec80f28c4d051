"""Append-only manifest of a backup session.

This module provides the BackupManifest class for persisting relocation
records in a JSONL file. Every line is a complete ManifestEntry; a state
change appends a new line with the same id instead of editing the old
one.
"""

import json
import logging
import os
from pathlib import Path
from tempfile import NamedTemporaryFile

from reclaim.relocation.models import ManifestEntry

logger = logging.getLogger(__name__)


class BackupManifest:
    """Manages the manifest.jsonl file of one backup session.

    Writes are flushed and fsynced before append() returns, so an entry
    that append() reported is on disk. A last line without its newline
    is the remainder of an interrupted write and is ignored on read.

    Callers serialize writes; the manifest itself holds no lock.

    Attributes:
        path: Location of the manifest file.
    """

    FILENAME = "manifest.jsonl"

    def __init__(self, path: Path) -> None:
        """Initialize BackupManifest.

        Args:
            path: Path to the manifest file. It need not exist yet.
        """
        self.path = path

    def exists(self) -> bool:
        """Check whether the manifest file exists."""
        return self.path.is_file()

    def append(self, entry: ManifestEntry) -> None:
        """Append an entry and force it to disk.

        Args:
            entry: The manifest entry to record.

        Raises:
            OSError: If the file cannot be written or synced.
        """
        created = not self.path.exists()
        line = entry.to_json_line() + "\n"

        with self.path.open(mode="a+b") as f:
            # Terminate a torn line left by an interrupted write so the
            # new entry starts on a line of its own
            if f.tell() > 0:
                f.seek(-1, os.SEEK_END)
                if f.read(1) != b"\n":
                    f.write(b"\n")
            f.write(line.encode("utf-8"))
            f.flush()
            os.fsync(f.fileno())

        if created:
            _fsync_directory(self.path.parent)

    def read(self) -> list[ManifestEntry]:
        """Read every valid line, oldest first.

        Corrupt lines are skipped with a warning. An unterminated last
        line is skipped silently.

        Returns:
            All manifest lines in write order. Empty if the file doesn't
            exist.

        Raises:
            OSError: If the file exists but cannot be read.
        """
        if not self.path.exists():
            return []

        data = self.path.read_bytes().decode("utf-8", errors="replace")
        lines = data.split("\n")
        # The final element is "" for a fully terminated file and the
        # torn remainder of an interrupted write otherwise
        if lines[-1]:
            logger.debug("Ignoring incomplete last line of %s", self.path)
        lines = lines[:-1]

        entries: list[ManifestEntry] = []
        for line_num, line in enumerate(lines, start=1):
            line = line.strip()
            if not line:
                continue

            try:
                entries.append(ManifestEntry.from_json_line(line))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                logger.warning(
                    "Skipping corrupt manifest line %d in %s: %s",
                    line_num,
                    self.path,
                    str(e),
                )
                continue

        return entries

    def entries(self) -> list[ManifestEntry]:
        """Return the effective entry per id, in order of first appearance.

        Returns:
            One entry per relocated item carrying its latest state.
        """
        latest: dict[str, ManifestEntry] = {}
        for entry in self.read():
            latest[entry.id] = entry
        return list(latest.values())

    def get(self, entry_id: str) -> ManifestEntry | None:
        """Find the effective entry for an id.

        Args:
            entry_id: The entry ID to find.

        Returns:
            ManifestEntry if found, None otherwise.
        """
        for entry in self.entries():
            if entry.id == entry_id:
                return entry
        return None

    def remove(self, entry_id: str) -> None:
        """Drop every line of an entry whose move did not happen.

        The file is rewritten through a temporary file and renamed into
        place, so readers see either the old or the new manifest.

        Args:
            entry_id: ID of the entry to drop.

        Raises:
            OSError: If the manifest cannot be rewritten.
        """
        kept = [entry for entry in self.read() if entry.id != entry_id]

        tmp_path: Path | None = None
        try:
            with NamedTemporaryFile(
                mode="wb",
                dir=self.path.parent,
                prefix=".manifest-",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_path = Path(f.name)
                for entry in kept:
                    f.write((entry.to_json_line() + "\n").encode("utf-8"))
                f.flush()
                os.fsync(f.fileno())
            os.replace(str(tmp_path), str(self.path))
        except BaseException:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
            raise

        _fsync_directory(self.path.parent)


def _fsync_directory(path: Path) -> None:
    """Persist a directory's entry list (new or renamed files)."""
    try:
        fd = os.open(path, os.O_RDONLY)
    except OSError as e:
        logger.debug("Cannot open %s for sync: %s", path, e)
        return
    try:
        os.fsync(fd)
    except OSError as e:
        logger.debug("Cannot sync %s: %s", path, e)
    finally:
        os.close(fd)
