"""Local filesystem probing for sync operations."""

import logging
import os
import stat
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from ..models import NEWSTUFF_DIR, ArchiveEntry, LocalEntry, LocalStatus

logger = logging.getLogger(__name__)


def normalize_path(path: str) -> str:
    """Normalize a local path for inventory lookups."""
    return os.path.normpath(path)


def format_mtime(timestamp: float) -> str:
    """Format a Unix timestamp like the archive listing does (``Jan 5 2011``)."""
    dt = datetime.fromtimestamp(timestamp)
    return f"{dt:%b} {dt.day} {dt:%Y}"


def _owner_group(st: os.stat_result, is_mswin32: bool) -> tuple[str, str]:
    """Resolve owner and group names for a stat result."""
    if is_mswin32:
        import getpass

        try:
            owner = getpass.getuser()
        except (KeyError, OSError):
            owner = "unknown"
        return owner, owner

    import grp
    import pwd

    try:
        owner = pwd.getpwuid(st.st_uid).pw_name
    except KeyError:
        owner = "unknown"
    try:
        group = grp.getgrgid(st.st_gid).gr_name
    except KeyError:
        group = "unknown"
    return owner, group


class LocalReconciler:
    """Resolves archive entries against the local mirror.

    Examples:
        >>> reconciler = LocalReconciler("/srv/idgames")
        >>> local = reconciler.reconcile(archive_entry)
        >>> local.status, local.needs_sync
        (<LocalStatus.MISSING: 'missing'>, True)
    """

    def __init__(self, root_path: str, is_mswin32: bool = False):
        """Initialize the reconciler.

        Args:
            root_path: Local mirror root
            is_mswin32: Use Windows path separators and owner lookup
        """
        self.is_mswin32 = is_mswin32
        self.separator = "\\" if is_mswin32 else "/"
        if not root_path.endswith(self.separator):
            root_path = root_path + self.separator
        self.root_path = root_path

    def short_path(self, url_path: str) -> str:
        """Convert an archive-relative path to a root-relative local path."""
        return self.separator.join(url_path.strip("/").split("/"))

    def local_path(self, url_path: str) -> str:
        """Convert an archive-relative path to an absolute local path."""
        return self.root_path + self.short_path(url_path)

    def build(self, archive: ArchiveEntry) -> LocalEntry:
        """Create the unprobed local counterpart of an archive entry."""
        short_path = self.short_path(archive.url_path)

        local = LocalEntry(
            archive=archive,
            short_path=short_path,
            absolute_path=self.root_path + short_path,
            is_mswin32=self.is_mswin32,
        )
        logger.debug(f"Absolute path is: {local.absolute_path}")
        return local

    def reconcile(self, archive: ArchiveEntry) -> LocalEntry:
        """Create the local counterpart of an archive entry and probe it.

        Args:
            archive: Parsed listing entry

        Returns:
            Probed LocalEntry
        """
        local = self.build(archive)
        self.probe(local)
        return local

    def probe(self, local: LocalEntry) -> None:
        """Stat the entry on disk and classify its sync status.

        Owner, group, permissions and mtime are filled in for reporting only.
        """
        logger.debug(f"stat'ing file/dir: {local.absolute_path}")
        archive = local.archive
        local.notes = ""

        try:
            st = os.stat(local.absolute_path)
        except (FileNotFoundError, NotADirectoryError):
            logger.debug(f"{archive.name} is not on the local system")
            local.status = LocalStatus.MISSING
            local.long_status = "Missing locally"
            local.append_notes("Missing on local system")
            local.needs_sync = True
            return
        except OSError as e:
            logger.warning(f"Could not stat {local.absolute_path}: {e}")
            local.status = LocalStatus.UNKNOWN
            local.long_status = "Unknown"
            local.append_notes(f"Probe failed: {e}")
            local.needs_sync = False
            return

        local.permissions = stat.filemode(st.st_mode)
        local.hardlink_count = st.st_nlink
        local.owner, local.group = _owner_group(st, self.is_mswin32)
        local.size = st.st_size
        local.modified = format_mtime(st.st_mtime)
        local.extra["mtime"] = st.st_mtime

        if stat.S_ISREG(st.st_mode):
            logger.debug(f"{archive.name} is a file")
            local.status = LocalStatus.FILE
            local.long_status = "File"
            local.needs_sync = False
            if st.st_size != archive.size:
                local.status = LocalStatus.SIZE_MISMATCH
                local.long_status = "Size mismatch"
                local.append_notes(
                    f"Size mismatch; archive size: {archive.size} "
                    f"local size: {st.st_size}"
                )
                local.needs_sync = True
        elif stat.S_ISDIR(st.st_mode):
            # Directory sizes vary between filesystems, never compared
            logger.debug(f"{archive.name} is a directory")
            local.status = LocalStatus.DIRECTORY
            local.long_status = "Directory"
            local.needs_sync = False
        else:
            logger.warning(f"{local.absolute_path} is an unknown file type")
            local.status = LocalStatus.UNKNOWN
            local.long_status = "Unknown"
            local.append_notes("Not a regular file or directory")
            local.needs_sync = False

        logger.debug(f"Short type/status: {local.short_type}/{local.short_status}")


def scan_local_files(directory: Path) -> list[Path]:
    """Recursively list regular files below a directory.

    Unreadable directories are skipped; symlinked directories are not
    followed.

    Args:
        directory: Directory to scan

    Returns:
        List of file paths
    """
    files: list[Path] = []

    try:
        for item in directory.iterdir():
            if item.is_symlink():
                continue
            if item.is_file():
                files.append(item)
            elif item.is_dir():
                files.extend(scan_local_files(item))
    except PermissionError as e:
        logger.warning(f"Permission denied: {e}")

    return files


def find_orphans(
    root_path: str,
    inventory: set[str],
    prune_all: bool = False,
    protected: Iterable[str] = (),
    skip_dirs: Iterable[str] = (),
) -> list[str]:
    """Find local files that are absent from the archive inventory.

    Args:
        root_path: Local mirror root
        inventory: Normalized absolute paths of every archive entry
        prune_all: Walk the whole mirror instead of only newstuff
        protected: Paths that must never be proposed for deletion
        skip_dirs: Root-relative directories (forward slashes) whose
            contents are never proposed for deletion

    Returns:
        Sorted list of absolute paths to delete
    """
    root = Path(root_path)
    scan_root = root if prune_all else root / NEWSTUFF_DIR
    if not scan_root.is_dir():
        logger.debug(f"Nothing to prune, {scan_root} is not a directory")
        return []

    protected_paths = {normalize_path(p) for p in protected}
    skip_prefixes = [
        normalize_path(str(root.joinpath(*d.strip("/").split("/")))) + os.sep
        for d in skip_dirs
    ]

    orphans: list[str] = []
    for file_path in scan_local_files(scan_root):
        key = normalize_path(str(file_path))
        if key in inventory or key in protected_paths:
            continue
        if any(key.startswith(prefix) for prefix in skip_prefixes):
            continue
        orphans.append(str(file_path))

    return sorted(orphans)
