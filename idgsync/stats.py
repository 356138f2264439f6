"""Runtime statistics for a sync run."""

import time
from typing import Optional

from .models import LocalEntry
from .utils import format_size


class RuntimeStats:
    """Counters collected while a sync run progresses."""

    def __init__(self, dry_run: bool = False, prune_all: bool = False):
        self.dry_run = dry_run
        self.prune_all = prune_all
        self.archive_file_count = 0
        self.newstuff_file_count = 0
        self.deleted_file_count = 0
        self.skipped_non_wad_count = 0
        self.failed_count = 0
        self.created_dir_count = 0
        self.synced_files: list[LocalEntry] = []
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

    def start_timer(self) -> None:
        self.start_time = time.perf_counter()

    def stop_timer(self) -> None:
        self.end_time = time.perf_counter()

    @property
    def elapsed(self) -> float:
        """Elapsed seconds between start and stop (or now if still running)."""
        if self.start_time is None:
            return 0.0
        end = self.end_time if self.end_time is not None else time.perf_counter()
        return end - self.start_time

    def add_archive_file(self, local: LocalEntry) -> None:
        """Count a file entry that exists in the archive."""
        self.archive_file_count += 1
        if local.is_newstuff:
            self.newstuff_file_count += 1

    def add_synced(self, local: LocalEntry) -> None:
        """Record a file that was (or would be, in dry-run) synchronized."""
        self.synced_files.append(local)

    def add_deleted(self) -> None:
        self.deleted_file_count += 1

    def add_skipped_non_wad(self) -> None:
        self.skipped_non_wad_count += 1

    @property
    def synced_count(self) -> int:
        return len(self.synced_files)

    @property
    def synced_bytes(self) -> int:
        return sum(local.archive.size for local in self.synced_files)

    def summary_items(self) -> list[tuple[str, str]]:
        """Return the summary as (label, value) pairs.

        Returns:
            List of label/value tuples in display order
        """
        if self.dry_run:
            synced_label = "Total files to be synced from archive"
        else:
            synced_label = "Total files synced from archive"

        deleted_from = "mirror" if self.prune_all else "/newstuff directory"
        items = [
            ("Total files in archive", str(self.archive_file_count)),
            (synced_label, str(self.synced_count)),
            ("Total size of synced files", format_size(self.synced_bytes)),
            (
                "Total files currently in /newstuff directory",
                str(self.newstuff_file_count),
            ),
            (
                f"Total old files deleted from {deleted_from}",
                str(self.deleted_file_count),
            ),
        ]
        if self.skipped_non_wad_count:
            items.append(
                ("Total non-WAD files skipped", str(self.skipped_non_wad_count))
            )
        if self.created_dir_count:
            items.append(("Total directories created", str(self.created_dir_count)))
        if self.failed_count:
            items.append(("Total failed downloads", str(self.failed_count)))
        items.append(
            ("Total script execution time", f"{self.elapsed:0.2f} seconds")
        )
        return items

    def render(self) -> str:
        """Render the summary as a plain text block."""
        lines = []
        if self.dry_run:
            lines.append("- Dry run; no files were changed -")
        for label, value in self.summary_items():
            lines.append(f"- {label}: {value}")
        return "\n".join(lines)
