"""Data models for archive entries and their local counterparts."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

# Hidden artifacts written by FTP/HTTP servers and desktop tools
DOTFILE_NAMES = frozenset({".message", ".DS_Store", ".mirror_log", ".listing"})

# Archive-wide metadata files, always fetched from the master mirror
METAFILE_RE = re.compile(r"ls-laR\.gz|LAST\.\d+\w+|fullsort\.gz|REJECTS|README.*")

# Top-level directories that hold no WAD content
NOT_WAD_DIRS_RE = re.compile(
    r"^(?:docs|graphics|history|idstuff|levels/reviews|lmps|misc|music"
    r"|prefabs|roguestuff|skins|sounds|source|themes/terrywads|utils)"
)

NEWSTUFF_DIR = "newstuff"

# Placeholder for attributes that have not been read from disk
UNSET = "!!!"


def is_dotfile(name: str) -> bool:
    """Check whether a name is a hidden server/desktop artifact.

    Examples:
        >>> is_dotfile(".message")
        True
        >>> is_dotfile("doom2.wad")
        False
    """
    return name in DOTFILE_NAMES


def is_metafile(name: str) -> bool:
    """Check whether a name is an archive-wide metadata file.

    Examples:
        >>> is_metafile("LAST.7days")
        True
        >>> is_metafile("README.txt")
        True
        >>> is_metafile("scythe.zip")
        False
    """
    return METAFILE_RE.fullmatch(name) is not None


def is_wad_eligible(url_path: str) -> bool:
    """Check whether an archive path lies in a directory that holds WADs.

    Args:
        url_path: Archive-relative path using forward slashes

    Examples:
        >>> is_wad_eligible("levels/doom2/s-u/scythe.zip")
        True
        >>> is_wad_eligible("levels/reviews/index.txt")
        False
    """
    return NOT_WAD_DIRS_RE.match(url_path.lstrip("/")) is None


def is_newstuff_path(parent_path: str) -> bool:
    """Check whether a parent path is inside the newstuff subtree."""
    return parent_path.lstrip("/").startswith(NEWSTUFF_DIR)


def split_modified(modified: str) -> tuple[str, str, str]:
    """Split a listing timestamp into (month, day, year-or-time).

    Unset timestamps are returned as placeholder columns.

    Examples:
        >>> split_modified("Jan 5 2011")
        ('Jan', '5', '2011')
    """
    parts = modified.split()
    if modified == UNSET or len(parts) != 3:
        return ("!!!", "!!", "!!!!!")
    return (parts[0], parts[1], parts[2])


class EntryKind(str, Enum):
    """Kind of an archive entry, taken from the first permission character."""

    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"

    @classmethod
    def from_permissions(cls, permissions: str) -> "EntryKind":
        """Map a long-listing permission string to an entry kind.

        Raises:
            ValueError: If the permission string is not a file, directory or
                symlink
        """
        kind = _PERMISSION_KINDS.get(permissions[:1])
        if kind is None:
            raise ValueError(f"Unsupported permission string: {permissions!r}")
        return kind


_PERMISSION_KINDS = {
    "-": EntryKind.FILE,
    "d": EntryKind.DIRECTORY,
    "l": EntryKind.SYMLINK,
}


class LocalStatus(str, Enum):
    """Sync status of an entry on the local filesystem."""

    MISSING = "missing"
    FILE = "file"
    DIRECTORY = "directory"
    UNKNOWN = "unknown"
    SIZE_MISMATCH = "size-mismatch"

    @property
    def code(self) -> str:
        """Single character used in compact reports."""
        return _STATUS_CODES[self]

    @property
    def needs_sync(self) -> bool:
        """Whether this status calls for a download or directory creation."""
        return self in (LocalStatus.MISSING, LocalStatus.SIZE_MISMATCH)


_STATUS_CODES = {
    LocalStatus.MISSING: "!",
    LocalStatus.FILE: "F",
    LocalStatus.DIRECTORY: "D",
    LocalStatus.UNKNOWN: "?",
    LocalStatus.SIZE_MISMATCH: "S",
}


@dataclass(frozen=True)
class ArchiveEntry:
    """One file or directory line of the upstream listing."""

    name: str
    """File or directory name, may contain spaces"""

    parent_path: str
    """Archive-root-relative parent directory, no leading slash"""

    permissions: str
    """Long-listing permission string, e.g. ``-rw-r--r--``"""

    hardlink_count: int = 0
    owner: str = UNSET
    group: str = UNSET

    size: int = 0
    """Size in bytes as listed by the archive"""

    modified: str = UNSET
    """Low-precision listing timestamp: month, day, year-or-time"""

    total_blocks: Optional[int] = None
    """Blocks used, directories only"""

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Archive entry name must not be empty")
        if self.parent_path.startswith("/"):
            raise ValueError(
                f"Archive parent path must be relative: {self.parent_path!r}"
            )
        if self.hardlink_count < 0 or self.size < 0:
            raise ValueError("Archive entry counts must be non-negative")
        # Validates the permission string
        EntryKind.from_permissions(self.permissions)

    @property
    def kind(self) -> EntryKind:
        """Entry kind derived from the permission string."""
        return EntryKind.from_permissions(self.permissions)

    @property
    def is_file(self) -> bool:
        return self.kind is EntryKind.FILE

    @property
    def is_directory(self) -> bool:
        return self.kind is EntryKind.DIRECTORY

    @property
    def is_symlink(self) -> bool:
        return self.kind is EntryKind.SYMLINK

    @property
    def url_path(self) -> str:
        """Archive-relative path with forward slashes."""
        if self.parent_path:
            return f"{self.parent_path}/{self.name}"
        return self.name

    @property
    def is_dotfile(self) -> bool:
        return is_dotfile(self.name)

    @property
    def is_metafile(self) -> bool:
        return is_metafile(self.name)


@dataclass
class LocalEntry:
    """An archive entry resolved against the local mirror.

    Filesystem attributes start out unset and are filled in by the local
    probe; ``status`` and ``needs_sync`` are only meaningful after it ran.
    """

    archive: ArchiveEntry
    """Listing entry this local entry was built from"""

    short_path: str
    """Root-relative path using the platform separator"""

    absolute_path: str
    """Mirror root joined with ``short_path``"""

    is_mswin32: bool = False

    permissions: str = "----------"
    hardlink_count: int = 0
    owner: str = UNSET
    group: str = UNSET
    size: int = 0
    modified: str = UNSET

    status: Optional[LocalStatus] = None
    long_status: str = ""
    needs_sync: bool = False
    notes: str = ""

    extra: dict = field(default_factory=dict)
    """Free-form attributes collected by the probe (e.g. raw mtime)"""

    @property
    def name(self) -> str:
        return self.archive.name

    @property
    def parent_path(self) -> str:
        return self.archive.parent_path

    @property
    def url_path(self) -> str:
        return self.archive.url_path

    @property
    def kind(self) -> EntryKind:
        return self.archive.kind

    @property
    def is_newstuff(self) -> bool:
        return is_newstuff_path(self.parent_path)

    @property
    def is_dotfile(self) -> bool:
        return is_dotfile(self.name)

    @property
    def is_metafile(self) -> bool:
        return is_metafile(self.name)

    @property
    def is_wad_eligible(self) -> bool:
        return is_wad_eligible(self.url_path)

    @property
    def short_status(self) -> str:
        """Single character status for compact reports, empty before probing."""
        return self.status.code if self.status else ""

    @property
    def short_type(self) -> str:
        """Single character describing what exists on disk."""
        if self.status is LocalStatus.SIZE_MISMATCH:
            return LocalStatus.FILE.code
        return self.short_status

    def append_notes(self, text: str) -> None:
        """Append diagnostic text to the notes."""
        if self.notes:
            self.notes = f"{self.notes}; {text}"
        else:
            self.notes = text
