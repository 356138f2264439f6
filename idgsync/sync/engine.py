"""Core sync engine for mirroring the idGames archive."""

import logging
import os
from pathlib import Path
from typing import Optional

from ..api import MirrorClient
from ..exceptions import IdgDownloadError, IdgNetworkError
from ..listing import (
    BlockTotal,
    DirEntry,
    EnterDirectory,
    FileEntry,
    ListingParser,
    SymlinkNotice,
)
from ..models import ArchiveEntry, LocalEntry
from ..output import OutputFormatter
from ..reporter import Reporter
from ..stats import RuntimeStats
from ..utils import LISTING_FILENAME
from .comparator import SyncAction, SyncDecision, SyncPolicy
from .operations import SyncOperations
from .options import SyncOptions
from .scanner import LocalReconciler, find_orphans, normalize_path

logger = logging.getLogger(__name__)


class SyncEngine:
    """Orchestrates a single pass over the archive listing.

    Every listing entry is reconciled against the local mirror, reported,
    and fetched if the sync policy allows it. After the pass, local files
    absent from the archive are pruned.
    """

    def __init__(
        self,
        client: MirrorClient,
        options: SyncOptions,
        output: Optional[OutputFormatter] = None,
        reporter: Optional[Reporter] = None,
    ):
        """Initialize sync engine.

        Args:
            client: Mirror client used for downloads
            options: Options for this run
            output: Output formatter for displaying progress/status
            reporter: Reporter for per-entry records (built from the
                options if not provided)
        """
        self.client = client
        self.options = options
        self.output = output or OutputFormatter()
        self.reporter = reporter or Reporter(
            report_format=options.report_format,
            report_types=options.report_types,
            show_dotfiles=options.include_dotfiles,
            output=self.output,
        )
        self.operations = SyncOperations(client)
        self.reconciler = LocalReconciler(options.path, is_mswin32=options.is_mswin32)
        self.policy = SyncPolicy(
            include_dotfiles=options.include_dotfiles,
            sync_all=options.sync_all,
        )

    def sync(self, listing_text: str) -> RuntimeStats:
        """Synchronize the local mirror with a decompressed listing.

        Args:
            listing_text: Full text of the archive listing

        Returns:
            RuntimeStats for the run

        Examples:
            >>> engine = SyncEngine(client, SyncOptions(path="/srv/idgames"))
            >>> stats = engine.sync(read_listing(listing_path))
            >>> print(stats.render())
        """
        stats = RuntimeStats(
            dry_run=self.options.dry_run, prune_all=self.options.prune_all
        )
        stats.start_timer()

        if not self.output.quiet and self.options.dry_run:
            self.output.info("Dry run: No changes will be made")

        inventory: set[str] = set()
        truncated = self._process_listing(listing_text, stats, inventory)

        if truncated:
            self.output.warning(
                f"Stopped after {self.options.max_entries} file(s); "
                "skipping pruning of local files"
            )
        else:
            if self.reporter.show_local_only:
                self._report_local_only(inventory)
            self._prune(inventory, stats)

        stats.stop_timer()
        return stats

    def _process_listing(
        self, listing_text: str, stats: RuntimeStats, inventory: set[str]
    ) -> bool:
        """Reconcile every listing entry and act on it.

        Returns:
            True if the pass was cut short by ``max_entries``
        """
        parser = ListingParser(include_incoming=self.options.include_incoming)
        max_entries = self.options.max_entries
        file_count = 0

        for event in parser.parse(listing_text):
            if isinstance(event, EnterDirectory):
                self.reporter.write_header(event.path)
            elif isinstance(event, BlockTotal):
                self.reporter.write_block_total(event.path, event.blocks)
            elif isinstance(event, SymlinkNotice):
                inventory.add(normalize_path(self.reconciler.local_path(event.path)))
            elif isinstance(event, (FileEntry, DirEntry)):
                if self._is_root_listing(event.entry):
                    inventory.add(
                        normalize_path(self.reconciler.local_path(LISTING_FILENAME))
                    )
                    continue
                local = self.reconciler.reconcile(event.entry)
                inventory.add(normalize_path(local.absolute_path))
                if isinstance(event, FileEntry):
                    stats.add_archive_file(local)
                    file_count += 1

                self.reporter.write_record(event.entry, local)
                self._execute_decision(self.policy.decide(local), stats)

                if max_entries is not None and file_count >= max_entries:
                    logger.debug(f"Reached {max_entries} file(s), stopping")
                    return True

        if parser.suppressed_count:
            logger.debug(f"Skipped {parser.suppressed_count} /incoming entries")
        return False

    def _is_root_listing(self, archive: ArchiveEntry) -> bool:
        """Check for the cached listing, which is refreshed by digest instead."""
        return archive.parent_path == "" and archive.name == LISTING_FILENAME

    def _skip_dirs(self) -> list[str]:
        return [] if self.options.include_incoming else ["incoming"]

    def _report_local_only(self, inventory: set[str]) -> None:
        """Report local files that the archive does not list."""
        root = self.options.path
        orphans = find_orphans(
            root,
            inventory,
            prune_all=True,
            protected=[os.path.join(root, LISTING_FILENAME)],
            skip_dirs=self._skip_dirs(),
        )
        for path in orphans:
            url_path = Path(path).relative_to(root).as_posix()
            self.reporter.write_local_only(url_path, os.path.getsize(path))

    def _execute_decision(self, decision: SyncDecision, stats: RuntimeStats) -> None:
        local = decision.local_entry
        logger.debug(f"{local.url_path}: {decision.action.value} ({decision.reason})")

        if decision.action is SyncAction.SKIP:
            if decision.skipped_by_wad_policy and local.archive.is_file:
                stats.add_skipped_non_wad()
            return

        if decision.action is SyncAction.CREATE_DIRECTORY:
            self._create_directory(local, stats)
            return

        if self.options.dry_run:
            stats.add_synced(local)
            return

        self._download(local, stats)

    def _create_directory(self, local: LocalEntry, stats: RuntimeStats) -> None:
        if self.options.dry_run:
            self.output.info(f"Would create directory: {local.short_path}")
            return
        try:
            if self.operations.create_directory(local):
                stats.created_dir_count += 1
                self.output.info(f"Created directory: {local.short_path}")
        except OSError as e:
            stats.failed_count += 1
            self.output.error(f"Failed to create directory {local.short_path}: {e}")

    def _download(self, local: LocalEntry, stats: RuntimeStats) -> None:
        archive = local.archive
        self.output.progress_message(f"Fetching {archive.url_path}")
        try:
            self.operations.download_entry(local)
        except (IdgDownloadError, IdgNetworkError, OSError) as e:
            stats.failed_count += 1
            self.output.warning(f"Failed to sync {archive.url_path}: {e}")
            return

        self.reconciler.probe(local)
        if local.size != archive.size and not local.is_metafile:
            logger.warning(
                f"Size mismatch after download of {archive.url_path}: "
                f"archive size: {archive.size} local size: {local.size}"
            )
        stats.add_synced(local)

    def _prune(self, inventory: set[str], stats: RuntimeStats) -> None:
        """Delete local files that no longer exist in the archive."""
        root = self.options.path
        orphans = find_orphans(
            root,
            inventory,
            prune_all=self.options.prune_all,
            protected=[os.path.join(root, LISTING_FILENAME)],
            skip_dirs=self._skip_dirs(),
        )

        for path in orphans:
            if self.options.dry_run:
                self.output.info(f"Would delete: {path}")
                continue
            self.output.info(f"Deleting: {path}")
            try:
                self.operations.delete_local(path)
                stats.add_deleted()
            except OSError as e:
                logger.error(f"Can't unlink {path}: {e}")
