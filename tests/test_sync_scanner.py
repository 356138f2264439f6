"""Tests for local reconciliation and orphan detection."""

import os
import tempfile
from pathlib import Path

import pytest

from idgsync.models import ArchiveEntry, LocalStatus
from idgsync.sync.scanner import (
    LocalReconciler,
    find_orphans,
    normalize_path,
    scan_local_files,
)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def file_entry(name, parent_path="newstuff", size=1024):
    return ArchiveEntry(
        name=name,
        parent_path=parent_path,
        permissions="-rw-r--r--",
        hardlink_count=1,
        owner="ftp",
        group="ftp",
        size=size,
        modified="Jan 5 2011",
    )


def dir_entry(name, parent_path=""):
    return ArchiveEntry(
        name=name,
        parent_path=parent_path,
        permissions="drwxr-xr-x",
        hardlink_count=2,
        owner="ftp",
        group="ftp",
        size=4096,
        modified="Jan 5 2011",
        total_blocks=0,
    )


class TestLocalReconciler:
    """Tests for LocalReconciler."""

    def test_paths(self, temp_dir):
        """Test short and absolute paths are derived from the archive path."""
        reconciler = LocalReconciler(str(temp_dir))
        local = reconciler.build(file_entry("patch.wad"))
        assert local.short_path == "newstuff/patch.wad"
        assert local.absolute_path == str(temp_dir / "newstuff" / "patch.wad")

    def test_windows_separator(self):
        """Test Windows mirrors use backslashes."""
        reconciler = LocalReconciler("C:\\idgames", is_mswin32=True)
        local = reconciler.build(file_entry("a.zip", parent_path="levels/doom2"))
        assert local.short_path == "levels\\doom2\\a.zip"
        assert local.absolute_path == "C:\\idgames\\levels\\doom2\\a.zip"

    def test_missing_file(self, temp_dir):
        """Test a missing file needs sync."""
        local = LocalReconciler(str(temp_dir)).reconcile(file_entry("patch.wad"))
        assert local.status is LocalStatus.MISSING
        assert local.needs_sync
        assert local.short_status == "!"
        assert "Missing on local system" in local.notes

    def test_missing_parent_directory(self, temp_dir):
        """Test a file below a missing directory is missing too."""
        (temp_dir / "newstuff").write_text("not a directory")
        local = LocalReconciler(str(temp_dir)).reconcile(file_entry("patch.wad"))
        assert local.status is LocalStatus.MISSING
        assert local.needs_sync

    def test_file_same_size(self, temp_dir):
        """Test a file with the listed size is in sync."""
        (temp_dir / "newstuff").mkdir()
        (temp_dir / "newstuff" / "patch.wad").write_bytes(b"x" * 1024)

        local = LocalReconciler(str(temp_dir)).reconcile(file_entry("patch.wad"))
        assert local.status is LocalStatus.FILE
        assert not local.needs_sync
        assert local.size == 1024
        assert local.permissions.startswith("-")

    def test_file_size_mismatch(self, temp_dir):
        """Test a file with a different size needs sync."""
        (temp_dir / "newstuff").mkdir()
        (temp_dir / "newstuff" / "patch.wad").write_bytes(b"x" * 10)

        local = LocalReconciler(str(temp_dir)).reconcile(file_entry("patch.wad"))
        assert local.status is LocalStatus.SIZE_MISMATCH
        assert local.needs_sync
        assert "archive size: 1024 local size: 10" in local.notes

    def test_directory_size_never_compared(self, temp_dir):
        """Test directories are never classified as size mismatches."""
        (temp_dir / "levels").mkdir()

        local = LocalReconciler(str(temp_dir)).reconcile(
            ArchiveEntry(
                name="levels",
                parent_path="",
                permissions="drwxr-xr-x",
                size=123,
                total_blocks=0,
            )
        )
        assert local.status is LocalStatus.DIRECTORY
        assert not local.needs_sync

    def test_missing_directory(self, temp_dir):
        """Test a missing directory needs sync."""
        local = LocalReconciler(str(temp_dir)).reconcile(dir_entry("levels"))
        assert local.status is LocalStatus.MISSING
        assert local.needs_sync

    def test_reprobe_after_change(self, temp_dir):
        """Test probing again refreshes the status."""
        reconciler = LocalReconciler(str(temp_dir))
        local = reconciler.reconcile(file_entry("a.zip", parent_path="", size=3))
        assert local.status is LocalStatus.MISSING

        (temp_dir / "a.zip").write_bytes(b"abc")
        reconciler.probe(local)
        assert local.status is LocalStatus.FILE
        assert not local.needs_sync
        assert local.notes == ""

    def test_local_path(self, temp_dir):
        """Test archive paths map into the mirror root."""
        reconciler = LocalReconciler(str(temp_dir))
        assert reconciler.local_path("newstuff/a.zip") == str(
            temp_dir / "newstuff" / "a.zip"
        )


class TestScanLocalFiles:
    """Tests for scan_local_files."""

    def test_recursive_scan(self, temp_dir):
        """Test files in nested directories are found."""
        (temp_dir / "a").mkdir()
        (temp_dir / "a" / "b").mkdir()
        (temp_dir / "top.txt").write_text("x")
        (temp_dir / "a" / "b" / "deep.txt").write_text("x")

        files = sorted(p.name for p in scan_local_files(temp_dir))
        assert files == ["deep.txt", "top.txt"]

    def test_symlinks_skipped(self, temp_dir):
        """Test symlinks are not returned or followed."""
        (temp_dir / "real.txt").write_text("x")
        try:
            os.symlink(temp_dir / "real.txt", temp_dir / "link.txt")
        except (OSError, NotImplementedError):
            pytest.skip("Symlinks not supported")

        files = [p.name for p in scan_local_files(temp_dir)]
        assert files == ["real.txt"]


class TestFindOrphans:
    """Tests for find_orphans."""

    @pytest.fixture
    def mirror(self, temp_dir):
        """Create a small local mirror."""
        (temp_dir / "newstuff").mkdir()
        (temp_dir / "levels").mkdir()
        (temp_dir / "incoming").mkdir()
        for path in [
            "newstuff/keep.zip",
            "newstuff/old.zip",
            "levels/stale.zip",
            "incoming/upload.zip",
            "ls-laR.gz",
        ]:
            (temp_dir / path).write_text("x")
        return temp_dir

    def inventory(self, root, *paths):
        return {normalize_path(str(root / p)) for p in paths}

    def test_newstuff_only(self, mirror):
        """Test the default mode only proposes newstuff files."""
        orphans = find_orphans(str(mirror), self.inventory(mirror, "newstuff/keep.zip"))
        assert orphans == [str(mirror / "newstuff" / "old.zip")]

    def test_prune_all(self, mirror):
        """Test whole-mirror mode proposes files anywhere."""
        orphans = find_orphans(
            str(mirror),
            self.inventory(mirror, "newstuff/keep.zip"),
            prune_all=True,
            protected=[str(mirror / "ls-laR.gz")],
            skip_dirs=["incoming"],
        )
        assert orphans == sorted(
            [
                str(mirror / "levels" / "stale.zip"),
                str(mirror / "newstuff" / "old.zip"),
            ]
        )

    def test_missing_newstuff(self, temp_dir):
        """Test a mirror without newstuff has nothing to prune."""
        assert find_orphans(str(temp_dir), set()) == []

    def test_everything_in_inventory(self, mirror):
        """Test nothing is proposed when every file is in the archive."""
        inventory = self.inventory(mirror, "newstuff/keep.zip", "newstuff/old.zip")
        assert find_orphans(str(mirror), inventory) == []
