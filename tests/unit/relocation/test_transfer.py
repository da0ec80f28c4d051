"""Unit tests for moving items into and out of backups."""

import errno
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from reclaim.relocation.checksum import compute_checksum
from reclaim.relocation.models import IntegrityError
from reclaim.relocation.transfer import ASIDE_SUFFIX, move_item

_REAL_RENAME = os.rename


def _cross_device_once(src: object, dst: object) -> None:
    """Fail direct renames like a move across filesystems.

    Renames of the staging copy and of the detached source stay on one
    filesystem and succeed.
    """
    if not any(str(p).endswith((".partial", ASIDE_SUFFIX)) for p in (src, dst)):
        raise OSError(errno.EXDEV, "Invalid cross-device link")
    _REAL_RENAME(src, dst)  # type: ignore[arg-type]


class TestMoveItem:
    """Tests for move_item function."""

    def test_moves_file_and_creates_parents(self, tmp_path: Path) -> None:
        """A same-device move renames the file into a new tree."""
        source = tmp_path / "src" / "file"
        source.parent.mkdir()
        source.write_bytes(b"data")
        destination = tmp_path / "dst" / "a" / "file"

        move_item(source, destination, compute_checksum(source))

        assert not source.exists()
        assert destination.read_bytes() == b"data"

    def test_refuses_existing_destination(self, tmp_path: Path) -> None:
        """An existing destination is never overwritten."""
        source = tmp_path / "src"
        source.write_bytes(b"new")
        destination = tmp_path / "dst"
        destination.write_bytes(b"old")

        with pytest.raises(FileExistsError):
            move_item(source, destination, compute_checksum(source))

        assert source.read_bytes() == b"new"
        assert destination.read_bytes() == b"old"

    def test_cross_device_directory_copy(self, tmp_path: Path) -> None:
        """Across filesystems a directory is copied, verified and removed."""
        source = tmp_path / "src"
        (source / "sub").mkdir(parents=True)
        (source / "sub" / "f").write_bytes(b"content")
        os.symlink("sub/f", source / "link")
        checksum = compute_checksum(source)
        destination = tmp_path / "dst" / "src"

        with patch("reclaim.relocation.transfer.os.rename", side_effect=_cross_device_once):
            move_item(source, destination, checksum)

        assert not source.exists()
        assert compute_checksum(destination) == checksum
        assert (destination / "link").is_symlink()

    def test_cross_device_mismatch_keeps_source(self, tmp_path: Path) -> None:
        """A copy that does not match the checksum is discarded."""
        source = tmp_path / "src"
        source.write_bytes(b"content")
        destination = tmp_path / "dst" / "src"

        with (
            patch("reclaim.relocation.transfer.os.rename", side_effect=_cross_device_once),
            pytest.raises(IntegrityError),
        ):
            move_item(source, destination, "sha256:" + "0" * 64)

        assert source.read_bytes() == b"content"
        assert not destination.exists()
        assert not list(destination.parent.iterdir())

    def test_other_rename_errors_propagate(self, tmp_path: Path) -> None:
        """Errors other than EXDEV are raised without copying."""
        source = tmp_path / "src"
        source.write_bytes(b"content")

        with (
            patch(
                "reclaim.relocation.transfer.os.rename",
                side_effect=PermissionError(errno.EACCES, "Permission denied"),
            ),
            pytest.raises(PermissionError),
        ):
            move_item(source, tmp_path / "dst", compute_checksum(source))

        assert source.exists()

    def test_cross_device_cleanup_failure_still_moves(self, tmp_path: Path) -> None:
        """A detached source that cannot be deleted does not undo the move."""
        source = tmp_path / "src"
        source.mkdir()
        (source / "a").write_bytes(b"a")
        (source / "b").write_bytes(b"b")
        checksum = compute_checksum(source)
        destination = tmp_path / "dst" / "src"

        def partial_delete(path: Path) -> None:
            (path / "a").unlink()
            raise PermissionError(errno.EACCES, "Permission denied", str(path / "b"))

        with (
            patch("reclaim.relocation.transfer.os.rename", side_effect=_cross_device_once),
            patch("reclaim.relocation.transfer._remove", side_effect=partial_delete),
        ):
            move_item(source, destination, checksum)

        assert not source.exists()
        assert compute_checksum(destination) == checksum
        leftover = tmp_path / f".src{ASIDE_SUFFIX}"
        assert sorted(p.name for p in leftover.iterdir()) == ["b"]

    def test_cross_device_detach_failure_keeps_source(self, tmp_path: Path) -> None:
        """If the source cannot be renamed aside, the copy is discarded."""
        source = tmp_path / "src"
        source.write_bytes(b"content")
        destination = tmp_path / "dst" / "src"

        def no_detach(src: object, dst: object) -> None:
            if str(dst).endswith(ASIDE_SUFFIX):
                raise PermissionError(errno.EACCES, "Permission denied")
            _cross_device_once(src, dst)

        with (
            patch("reclaim.relocation.transfer.os.rename", side_effect=no_detach),
            pytest.raises(PermissionError),
        ):
            move_item(source, destination, compute_checksum(source))

        assert source.read_bytes() == b"content"
        assert not os.path.lexists(destination)
        assert list(destination.parent.iterdir()) == []

    def test_aside_name_is_unique(self, tmp_path: Path) -> None:
        """A leftover from an earlier move does not block the next one."""
        source = tmp_path / "src"
        source.write_bytes(b"new")
        (tmp_path / f".src{ASIDE_SUFFIX}").write_bytes(b"old")
        destination = tmp_path / "dst" / "src"

        with patch("reclaim.relocation.transfer.os.rename", side_effect=_cross_device_once):
            move_item(source, destination, compute_checksum(source))

        assert destination.read_bytes() == b"new"
        assert (tmp_path / f".src{ASIDE_SUFFIX}").read_bytes() == b"old"
        assert not (tmp_path / f".src-1{ASIDE_SUFFIX}").exists()
