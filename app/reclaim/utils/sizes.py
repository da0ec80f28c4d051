"""Byte-size helpers shared by the engine and the CLI."""

import os
from pathlib import Path

MB = 1024 * 1024


def format_size(size_bytes: int | None) -> str:
    """Format byte count as human-readable string."""
    if size_bytes is None or size_bytes == 0:
        return "0 B"
    size = float(size_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if abs(size) < 1024:
            return f"{size:.1f} {unit}" if unit != "B" else f"{int(size)} B"
        size /= 1024
    return f"{size:.1f} TB"


def path_size(path: Path) -> int:
    """Measure the on-disk size of a path without following symlinks.

    Directories are summed recursively. Entries that vanish or cannot be
    read while walking are counted as zero, so a partially readable
    directory reports the size of what could be seen.

    Args:
        path: File, symlink or directory to measure.

    Returns:
        Size in bytes.
    """
    try:
        st = path.lstat()
    except OSError:
        return 0

    if path.is_symlink() or not path.is_dir():
        return st.st_size

    total = 0
    for dirpath, dirnames, filenames in os.walk(path, followlinks=False):
        for name in filenames + [d for d in dirnames if os.path.islink(os.path.join(dirpath, d))]:
            try:
                total += os.lstat(os.path.join(dirpath, name)).st_size
            except OSError:
                continue
    return total
