"""Parser for the archive's recursive long-format directory listing.

The listing is the output of ``ls -laR`` run at the archive root: blocks of
``./path:`` headers, ``total N`` lines and one long-format line per entry::

    ./newstuff:
    total 12
    drwxr-xr-x   2 ftp  ftp      4096 Jan  5  2011 .
    -rw-r--r--   1 ftp  ftp      1024 Jan  5 10:23 patch.wad

The parser turns that text into a stream of typed events without touching
the filesystem.
"""

import gzip
import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .exceptions import IdgListingError
from .models import ArchiveEntry, EntryKind

logger = logging.getLogger(__name__)

# Field positions in a long-format listing line
PERMS = 0
HARDLINKS = 1
OWNER = 2
GROUP = 3
SIZE = 4
MONTH = 5
DATE = 6
YEAR_TIME = 7
NAME = 8
TOTAL_FIELDS = 9

PERMS_RE = re.compile(r"^[-dlbcps][-rwxsStT]{9}[.+@]?$")
HEADER_RE = re.compile(r"^(?:\.(?P<dotted>(?:/.*)?)|(?P<absolute>/.*)):$")
TOTAL_RE = re.compile(r"^total (\d+)$")

INCOMING_DIR = "incoming"


@dataclass(frozen=True)
class EnterDirectory:
    """A directory header; following entries belong to ``path``."""

    path: str


@dataclass(frozen=True)
class FileEntry:
    entry: ArchiveEntry


@dataclass(frozen=True)
class DirEntry:
    entry: ArchiveEntry


@dataclass(frozen=True)
class BlockTotal:
    """Blocks used by the directory that is currently being listed."""

    path: str
    blocks: int


@dataclass(frozen=True)
class SymlinkNotice:
    """A symlink was listed; symlinks are reported but never synchronized."""

    path: str
    target: Optional[str] = None


@dataclass(frozen=True)
class UnrecognizedLine:
    line_number: int
    text: str


ListingEvent = Union[
    EnterDirectory, FileEntry, DirEntry, BlockTotal, SymlinkNotice, UnrecognizedLine
]


def _join(parent: str, name: str) -> str:
    return f"{parent}/{name}" if parent else name


class ListingParser:
    """Turns listing text into a stream of listing events.

    Examples:
        >>> parser = ListingParser()
        >>> text = "./newstuff:\\n-rw-r--r-- 1 ftp ftp 1024 Jan 5 2011 patch.wad"
        >>> [type(e).__name__ for e in parser.parse(text)]
        ['EnterDirectory', 'FileEntry']
    """

    def __init__(self, include_incoming: bool = False):
        """Initialize the parser.

        Args:
            include_incoming: Emit entries found below /incoming instead of
                suppressing them
        """
        self.include_incoming = include_incoming
        self.current_dir = ""
        self.inside_incoming = False
        self.suppressed_count = 0

    def parse(self, text: str) -> Iterator[ListingEvent]:
        """Parse full listing text.

        Args:
            text: Decompressed listing

        Yields:
            Listing events in file order
        """
        return self.parse_lines(text.splitlines())

    def parse_lines(self, lines: Iterable[str]) -> Iterator[ListingEvent]:
        """Parse listing lines one at a time.

        Args:
            lines: Listing lines without line terminators

        Yields:
            Listing events in file order
        """
        self.current_dir = ""
        self.inside_incoming = False
        self.suppressed_count = 0

        for line_number, line in enumerate(lines, start=1):
            line = line.rstrip("\r")
            if not line.strip():
                continue
            event = self._parse_line(line_number, line)
            if event is not None:
                yield event

    def _parse_line(self, line_number: int, line: str) -> Optional[ListingEvent]:
        fields = line.split()

        if PERMS_RE.match(fields[PERMS]):
            return self._parse_entry_line(line_number, line, fields)

        header = HEADER_RE.match(line)
        if header:
            raw_path = header.group("dotted") or header.group("absolute")
            return self._enter_directory(raw_path)

        total = TOTAL_RE.match(line)
        if total:
            return BlockTotal(path=self.current_dir, blocks=int(total.group(1)))

        logger.warning(f"Unknown line found in input data; >{line}<")
        return UnrecognizedLine(line_number=line_number, text=line)

    def _enter_directory(self, raw_path: Optional[str]) -> EnterDirectory:
        path = (raw_path or "").strip("/")
        self.current_dir = path
        self.inside_incoming = path == INCOMING_DIR or path.startswith(
            INCOMING_DIR + "/"
        )
        if self.inside_incoming:
            logger.debug(f"Parsing /incoming subdirectory: {path}")
        else:
            logger.debug(f"Setting current directory to: {path or '<root>'}")
        return EnterDirectory(path=path)

    def _parse_entry_line(
        self, line_number: int, line: str, fields: list[str]
    ) -> Optional[ListingEvent]:
        if len(fields) < TOTAL_FIELDS:
            logger.warning(f"Truncated entry line found in input data; >{line}<")
            return UnrecognizedLine(line_number=line_number, text=line)

        # Extra fields belong to a name with embedded spaces
        if len(fields) > TOTAL_FIELDS:
            name = " ".join(fields[NAME:])
            logger.debug(f"Name field had spaces; joined name is: '{name}'")
        else:
            name = fields[NAME]

        try:
            kind = EntryKind.from_permissions(fields[PERMS])
        except ValueError:
            logger.warning(f"Unsupported entry type in input data; >{line}<")
            return UnrecognizedLine(line_number=line_number, text=line)

        if kind is EntryKind.SYMLINK:
            link_name, _, target = name.partition(" -> ")
            path = _join(self.current_dir, link_name)
            logger.info(f"Found a symlink: {path}")
            return SymlinkNotice(path=path, target=target or None)

        if name in (".", ".."):
            return None

        if self.inside_incoming and not self.include_incoming:
            logger.debug(f"{name} in /incoming, but incoming entries are excluded")
            self.suppressed_count += 1
            return None

        try:
            entry = ArchiveEntry(
                name=name,
                parent_path=self.current_dir,
                permissions=fields[PERMS],
                hardlink_count=int(fields[HARDLINKS]),
                owner=fields[OWNER],
                group=fields[GROUP],
                size=int(fields[SIZE]),
                modified=f"{fields[MONTH]} {fields[DATE]} {fields[YEAR_TIME]}",
                total_blocks=0 if kind is EntryKind.DIRECTORY else None,
            )
        except ValueError as e:
            logger.warning(f"Malformed entry line in input data ({e}); >{line}<")
            return UnrecognizedLine(line_number=line_number, text=line)

        if kind is EntryKind.DIRECTORY:
            return DirEntry(entry=entry)
        return FileEntry(entry=entry)


def read_listing(listing_path: Path) -> str:
    """Decompress a gzipped listing file into text.

    Names are decoded with ``surrogateescape`` so that bytes that are not
    valid UTF-8 map back to the same bytes on the local filesystem.

    Raises:
        IdgListingError: If the file cannot be read or is not valid gzip
    """
    try:
        with gzip.open(listing_path, "rb") as f:
            data = f.read()
    except (OSError, EOFError) as e:
        raise IdgListingError(f"Could not read listing {listing_path}: {e}") from e

    logger.info(f"{listing_path.name} uncompressed size: {len(data)}")
    return data.decode("utf-8", errors="surrogateescape")
