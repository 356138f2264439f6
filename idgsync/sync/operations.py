"""Filesystem mutations performed during a sync run."""

import hashlib
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from ..api import MirrorClient
from ..models import LocalEntry
from ..utils import LISTING_FILENAME

logger = logging.getLogger(__name__)

STAGING_SUFFIX = ".idgs-partial"


def file_digest(path: Path) -> str:
    """Return the MD5 hex digest of a file."""
    md5 = hashlib.md5()
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(65536), b""):
            md5.update(block)
    return md5.hexdigest()


def move_into_place(source: Path, destination: Path) -> None:
    """Move a finished download to its final location atomically.

    The file is first moved next to the destination (a plain rename when both
    are on the same filesystem) and then renamed over the destination, so a
    failure never leaves a partial file at ``destination``.

    Raises:
        OSError: If the file cannot be moved
    """
    destination.parent.mkdir(parents=True, exist_ok=True)
    staging = destination.with_name(destination.name + STAGING_SUFFIX)
    try:
        shutil.move(str(source), str(staging))
        os.replace(staging, destination)
    except OSError:
        staging.unlink(missing_ok=True)
        source.unlink(missing_ok=True)
        raise


@dataclass
class ListingUpdate:
    """Result of refreshing the cached listing artifact."""

    local_digest: Optional[str]
    """Digest of the cached copy, None if there was no cached copy"""

    local_size: int
    remote_digest: str
    remote_size: int

    replaced: bool
    """True if the cached copy was replaced by the fresh download"""


class SyncOperations:
    """Download, create and delete operations against the local mirror."""

    def __init__(self, client: MirrorClient):
        """Initialize sync operations.

        Args:
            client: Mirror client used for downloads
        """
        self.client = client

    def base_url_for(self, local: LocalEntry) -> Optional[str]:
        """Return the mirror an entry must be fetched from.

        Metafiles and newstuff are always fetched from the master mirror
        since secondary mirrors lag behind; everything else uses the
        client's default selection.
        """
        if local.is_metafile or local.is_newstuff:
            logger.debug("Syncing [meta|newstuff] file from master mirror")
            return self.client.master_mirror
        return None

    def download_entry(
        self,
        local: LocalEntry,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> Path:
        """Download an archive file and move it into place.

        Args:
            local: Local entry to synchronize
            progress_callback: Optional progress callback
                function(bytes_downloaded, total_bytes)

        Returns:
            Path where the file was saved

        Raises:
            IdgDownloadError: If the fetch failed on every mirror tried
            IdgNetworkError: If the master mirror could not be reached
            OSError: If the file could not be moved into place
        """
        temp_file = self.client.fetch(
            local.url_path,
            base_url=self.base_url_for(local),
            progress_callback=progress_callback,
        )
        destination = Path(local.absolute_path)
        logger.debug(f"Moving {temp_file} to {destination}")
        move_into_place(temp_file, destination)
        return destination

    def create_directory(self, local: LocalEntry) -> bool:
        """Create a missing local directory.

        Returns:
            True if the directory was created, False if it already existed

        Raises:
            OSError: If the directory could not be created
        """
        path = Path(local.absolute_path)
        if path.exists():
            logger.debug(f"Directory {path} already exists")
            return False
        path.mkdir(parents=True)
        return True

    def delete_local(self, path: str) -> None:
        """Delete a local file.

        Raises:
            OSError: If the file could not be removed
        """
        Path(path).unlink()

    def update_listing(
        self,
        root_path: Path,
        base_url: Optional[str] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> ListingUpdate:
        """Refresh the cached listing artifact at the mirror root.

        The fresh copy replaces the cached one only when their MD5 digests
        differ; a missing cached copy never matches.

        Args:
            root_path: Local mirror root
            base_url: Mirror to fetch from (master mirror if not provided)
            progress_callback: Optional progress callback

        Returns:
            ListingUpdate describing both copies

        Raises:
            IdgDownloadError: If the listing could not be downloaded
            IdgNetworkError: If no mirror could be reached
        """
        listing_path = root_path / LISTING_FILENAME
        downloaded = self.client.fetch(
            LISTING_FILENAME,
            base_url=base_url or self.client.master_mirror,
            progress_callback=progress_callback,
        )
        logger.debug(f"Received tempfile {downloaded} from fetch method")

        local_digest: Optional[str] = None
        local_size = 0
        if listing_path.is_file():
            local_digest = file_digest(listing_path)
            local_size = listing_path.stat().st_size

        remote_digest = file_digest(downloaded)
        remote_size = downloaded.stat().st_size

        replaced = local_digest != remote_digest
        if replaced:
            logger.debug(f"Replacing {listing_path} with {downloaded}")
            move_into_place(downloaded, listing_path)
        else:
            logger.debug(f"Unlinking {downloaded}")
            downloaded.unlink(missing_ok=True)

        return ListingUpdate(
            local_digest=local_digest,
            local_size=local_size,
            remote_digest=remote_digest,
            remote_size=remote_size,
            replaced=replaced,
        )
