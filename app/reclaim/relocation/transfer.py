"""Moving items between their original location and a backup session.

A move is a rename when source and destination share a filesystem.
Across filesystems the item is copied to a temporary name next to the
destination, verified against its checksum and renamed into place. The
source is then renamed aside on its own filesystem, so its original path
disappears in one step, and only the aside copy is deleted.
"""

import errno
import logging
import os
import shutil
from pathlib import Path

from reclaim.relocation.checksum import compute_checksum
from reclaim.relocation.models import IntegrityError

logger = logging.getLogger(__name__)

ASIDE_SUFFIX = ".reclaim-removing"


def move_item(source: Path, destination: Path, checksum: str) -> None:
    """Move a file, symlink or directory to a destination path.

    When this returns the source path no longer exists. When it raises,
    the source is untouched and nothing is left at the destination.

    Args:
        source: Item to move.
        destination: Target path. Must not exist; parents are created.
        checksum: Expected checksum of the item, used to verify a copy.

    Raises:
        FileExistsError: If the destination already exists.
        IntegrityError: If a cross-device copy does not match the checksum.
        OSError: If the move fails otherwise.
    """
    if os.path.lexists(destination):
        raise FileExistsError(errno.EEXIST, "Destination exists", str(destination))

    destination.parent.mkdir(parents=True, exist_ok=True)

    try:
        os.rename(source, destination)
        return
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise

    logger.debug("Cross-device move of %s, copying", source)
    _copy_verified(source, destination, checksum)

    aside = aside_path(source)
    try:
        os.rename(source, aside)
    except OSError:
        logger.warning("Cannot detach %s, discarding its copy", source)
        _remove(destination)
        raise

    try:
        _remove(aside)
    except OSError as e:
        logger.warning("Moved %s but could not delete %s: %s", source, aside, e)


def aside_path(source: Path) -> Path:
    """Return a free hidden sibling name used while deleting a moved source."""
    candidate = source.with_name(f".{source.name}{ASIDE_SUFFIX}")
    sequence = 0
    while os.path.lexists(candidate):
        sequence += 1
        candidate = source.with_name(f".{source.name}-{sequence}{ASIDE_SUFFIX}")
    return candidate


def _copy_verified(source: Path, destination: Path, checksum: str) -> None:
    staging = destination.with_name(f".{destination.name}.partial")
    if os.path.lexists(staging):
        _remove(staging)

    try:
        if source.is_symlink():
            os.symlink(os.readlink(source), staging)
        elif source.is_dir():
            shutil.copytree(source, staging, symlinks=True)
        else:
            shutil.copy2(source, staging, follow_symlinks=False)

        actual = compute_checksum(staging)
        if actual != checksum:
            msg = f"Copy of {source} does not match its checksum"
            raise IntegrityError(errno.EIO, msg, str(staging))

        os.rename(staging, destination)
    except BaseException:
        if os.path.lexists(staging):
            _remove(staging)
        raise


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()
