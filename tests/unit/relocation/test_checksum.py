"""Unit tests for content checksums."""

import os
from pathlib import Path

from reclaim.relocation.checksum import compute_checksum


class TestComputeChecksum:
    """Tests for compute_checksum function."""

    def test_file_checksum_format(self, tmp_path: Path) -> None:
        """Checksums are sha256-prefixed hex strings."""
        path = tmp_path / "file"
        path.write_bytes(b"hello")

        checksum = compute_checksum(path)

        assert checksum.startswith("sha256:")
        assert len(checksum) == len("sha256:") + 64

    def test_same_content_same_checksum(self, tmp_path: Path) -> None:
        """Files with identical content hash identically."""
        a = tmp_path / "a"
        b = tmp_path / "b"
        a.write_bytes(b"data")
        b.write_bytes(b"data")

        assert compute_checksum(a) == compute_checksum(b)

    def test_content_change_changes_checksum(self, tmp_path: Path) -> None:
        """Changing one byte changes the checksum."""
        path = tmp_path / "file"
        path.write_bytes(b"data")
        before = compute_checksum(path)

        path.write_bytes(b"datA")

        assert compute_checksum(path) != before

    def test_directory_checksum_covers_tree(self, tmp_path: Path) -> None:
        """A nested file change alters the directory checksum."""
        root = tmp_path / "dir"
        (root / "sub").mkdir(parents=True)
        (root / "sub" / "f").write_bytes(b"one")
        before = compute_checksum(root)

        (root / "sub" / "f").write_bytes(b"two")

        assert compute_checksum(root) != before

    def test_directory_checksum_covers_names(self, tmp_path: Path) -> None:
        """Renaming an entry alters the directory checksum."""
        root = tmp_path / "dir"
        root.mkdir()
        (root / "a").write_bytes(b"x")
        before = compute_checksum(root)

        (root / "a").rename(root / "b")

        assert compute_checksum(root) != before

    def test_directory_checksum_independent_of_location(self, tmp_path: Path) -> None:
        """Moving a tree does not change its checksum."""
        root = tmp_path / "dir"
        (root / "sub").mkdir(parents=True)
        (root / "sub" / "f").write_bytes(b"content")
        before = compute_checksum(root)

        moved = tmp_path / "elsewhere" / "dir"
        moved.parent.mkdir()
        root.rename(moved)

        assert compute_checksum(moved) == before

    def test_symlink_hashes_target_not_content(self, tmp_path: Path) -> None:
        """Symlinks are not followed."""
        target = tmp_path / "target"
        target.write_bytes(b"content")
        link = tmp_path / "link"
        os.symlink(target, link)
        before = compute_checksum(link)

        target.write_bytes(b"changed")

        assert compute_checksum(link) == before
        assert compute_checksum(link) != compute_checksum(target)

    def test_dangling_symlink(self, tmp_path: Path) -> None:
        """A dangling symlink can still be hashed."""
        link = tmp_path / "link"
        os.symlink(tmp_path / "gone", link)

        assert compute_checksum(link).startswith("sha256:")
