"""Per-entry sync reports."""

import logging
from typing import Optional

from .models import (
    ArchiveEntry,
    LocalEntry,
    LocalStatus,
    is_dotfile,
    split_modified,
)
from .output import OutputFormatter

logger = logging.getLogger(__name__)

REPORT_FORMATS = ("full", "more", "simple")
REPORT_TYPES = ("headers", "local", "archive", "size", "same")

DEFAULT_REPORT_FORMAT = "more"
DEFAULT_REPORT_TYPES = ("local", "size")


def format_simple(archive: ArchiveEntry, local: LocalEntry) -> str:
    """Render a record on one line: type, status, path, mtime and size."""
    month, day, year_time = split_modified(archive.modified)
    return (
        f"{local.short_type or ' '}{local.short_status or ' '} "
        f"{archive.url_path:<50} {month:<3} {day:>2} {year_time:<5} "
        f"{archive.size:>10}"
    )


def format_more(archive: ArchiveEntry, local: LocalEntry) -> str:
    """Render a record as a path line plus archive and local attribute lines."""
    a_month, a_day, a_year = split_modified(archive.modified)
    l_month, l_day, l_year = split_modified(local.modified)
    notes = "Notes:" if local.long_status else ""
    return "\n".join(
        [
            f"/{archive.url_path}",
            f"  archive: {archive.permissions:>10} {archive.owner:>8} "
            f"{archive.group:>8} {a_month:>3} {a_day:>2} {a_year:<5} "
            f"{archive.size:>9} {notes}".rstrip(),
            f"  local:   {local.permissions:>10} {local.owner:>8} "
            f"{local.group:>8} {l_month:>3} {l_day:>2} {l_year:<5} "
            f"{local.size:>9} {local.long_status}".rstrip(),
        ]
    )


def format_full(archive: ArchiveEntry, local: LocalEntry) -> str:
    """Render a record as side-by-side archive and local attribute blocks."""
    a_month, a_day, a_year = split_modified(archive.modified)
    l_month, l_day, l_year = split_modified(local.modified)
    a_mtime = f"{a_month:>4} {a_day:>2} {a_year:>5}"
    l_mtime = f"{l_month:>4} {l_day:>2} {l_year:>5}"
    rows = [
        ("permissions", archive.permissions, local.permissions),
        ("owner", archive.owner, local.owner),
        ("group", archive.group, local.group),
        ("mtime", a_mtime, l_mtime),
        ("size", str(archive.size), str(local.size)),
    ]
    lines = [f"/{archive.url_path}", f"  {'Archive:':<30}Local:"]
    for label, a_value, l_value in rows:
        label = f"{label}:"
        lines.append(f"  {label:<12} {a_value:>13}    {label:<12} {l_value:>13}")
    lines.append(f"  Notes: {local.notes}".rstrip())
    return "\n".join(lines)


def format_local_only(url_path: str, size: int, report_format: str) -> str:
    """Render a record for a local file that the archive does not list."""
    if report_format == "simple":
        return f"F- {url_path:<50} {'':<3} {'':>2} {'':<5} {size:>10}"
    return "\n".join(
        [
            f"/{url_path}",
            "  archive: not in archive",
            f"  local:   {size:>9} bytes",
        ]
    )


FORMATTERS = {
    "simple": format_simple,
    "more": format_more,
    "full": format_full,
}


class Reporter:
    """Writes report records for reconciled entries.

    Which records are written depends on the selected report types and the
    entry's local status; the look of a record depends on the report format.
    """

    def __init__(
        self,
        report_format: str = DEFAULT_REPORT_FORMAT,
        report_types: Optional[list[str]] = None,
        show_dotfiles: bool = False,
        output: Optional[OutputFormatter] = None,
    ):
        """Initialize the reporter.

        Args:
            report_format: One of ``full``, ``more`` or ``simple``
            report_types: Any of ``headers``, ``local``, ``archive``,
                ``size`` and ``same`` (default: local and size)
            show_dotfiles: Report hidden server artifacts too
            output: Output formatter records are written to

        Raises:
            ValueError: If the format or a type is not recognized
        """
        if report_format not in REPORT_FORMATS:
            raise ValueError(f"Unknown report format: {report_format}")
        types = list(report_types) if report_types else list(DEFAULT_REPORT_TYPES)
        for report_type in types:
            if report_type not in REPORT_TYPES:
                raise ValueError(f"Unknown report type: {report_type}")

        self.report_format = report_format
        self.report_types = frozenset(types)
        self.show_dotfiles = show_dotfiles
        self.output = output or OutputFormatter()

    def should_report(self, local: LocalEntry) -> bool:
        """Check whether a record for this entry passes the report filters."""
        status = local.status
        selected = False

        if status is LocalStatus.MISSING and "local" in self.report_types:
            logger.debug(f"{local.name}: missing locally")
            selected = True
        elif status is LocalStatus.SIZE_MISMATCH:
            if "size" in self.report_types and not local.is_metafile:
                logger.debug(f"{local.name}: different sizes between archive/local")
                selected = True
        elif status in (LocalStatus.FILE, LocalStatus.DIRECTORY):
            if "same" in self.report_types:
                logger.debug(f"{local.name}: same size between archive/local")
                selected = True
        elif status is LocalStatus.UNKNOWN:
            logger.debug(f"{local.name}: is unknown")
            selected = True

        if selected and local.is_dotfile and not self.show_dotfiles:
            logger.debug("Found dotfile, but dotfiles are not enabled, not displaying")
            return False
        return selected

    def format_record(self, archive: ArchiveEntry, local: LocalEntry) -> str:
        return FORMATTERS[self.report_format](archive, local)

    def write_record(self, archive: ArchiveEntry, local: LocalEntry) -> bool:
        """Write a record for an archive entry and its local counterpart.

        Returns:
            True if a record was written
        """
        if not self.should_report(local):
            return False
        self.output.print(self.format_record(archive, local))
        return True

    @property
    def show_local_only(self) -> bool:
        return "archive" in self.report_types

    def write_local_only(self, url_path: str, size: int) -> bool:
        """Write a record for a local file missing from the archive.

        Returns:
            True if a record was written
        """
        if not self.show_local_only:
            return False
        if is_dotfile(url_path.rsplit("/", 1)[-1]) and not self.show_dotfiles:
            return False
        self.output.print(format_local_only(url_path, size, self.report_format))
        return True

    @property
    def show_headers(self) -> bool:
        return "headers" in self.report_types

    def write_header(self, path: str) -> None:
        """Write a directory header when header reports are enabled."""
        if self.show_headers:
            self.output.print(f"Directory: /{path}")

    def write_block_total(self, path: str, blocks: int) -> None:
        """Write a directory block total when header reports are enabled."""
        if self.show_headers:
            self.output.print(f"/{path}: total blocks {blocks}")
