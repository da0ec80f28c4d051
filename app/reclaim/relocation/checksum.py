"""Content checksums for relocated items.

Files hash their content. Symlinks hash their target. Directories hash
every entry below them in sorted order: relative path, entry type, and
content or link target. Two trees with the same checksum therefore
have the same shape and the same bytes.
"""

import hashlib
import os
from pathlib import Path

_CHUNK_SIZE = 1024 * 1024


def compute_checksum(path: Path) -> str:
    """Compute the content checksum of a file, symlink or directory.

    Args:
        path: Item to hash. Symlinks are not followed.

    Returns:
        Checksum string of the form "sha256:<hex>".

    Raises:
        OSError: If any part of the item cannot be read.
    """
    digest = hashlib.sha256()
    if path.is_symlink():
        digest.update(b"L\0" + os.fsencode(os.readlink(path)))
    elif path.is_dir():
        digest.update(b"D\0")
        _update_tree(path, path, digest)
    else:
        digest.update(b"F\0" + _file_digest(path))
    return f"sha256:{digest.hexdigest()}"


def _update_tree(directory: Path, base: Path, digest: "hashlib._Hash") -> None:
    for child in sorted(directory.iterdir(), key=lambda p: p.name):
        relative = os.fsencode(child.relative_to(base).as_posix())
        if child.is_symlink():
            digest.update(b"L\0" + relative + b"\0" + os.fsencode(os.readlink(child)) + b"\0")
        elif child.is_dir():
            digest.update(b"D\0" + relative + b"\0")
            _update_tree(child, base, digest)
        else:
            digest.update(b"F\0" + relative + b"\0" + _file_digest(child))


def _file_digest(path: Path) -> bytes:
    file_hash = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            file_hash.update(chunk)
    return file_hash.digest()
