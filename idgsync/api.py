"""HTTP client for downloading files from idGames mirrors."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Callable
from urllib.parse import urlsplit

import httpx

from .exceptions import (
    IdgDownloadError,
    IdgNetworkError,
    IdgUnsupportedURLError,
)
from .mirrors import MirrorPool
from .utils import DEFAULT_CHUNK_SIZE, DEFAULT_TIMEOUT, build_url, url_host

logger = logging.getLogger(__name__)

SUPPORTED_SCHEMES = ("http", "https")


class MirrorClient:
    """Client for fetching archive files from a pool of mirrors."""

    def __init__(
        self,
        pool: MirrorPool,
        tempdir: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the mirror client.

        Args:
            pool: Mirrors to download from
            tempdir: Directory for in-flight downloads (platform default if
                not provided)
            timeout: Request timeout in seconds (default: 60.0)
            transport: Optional httpx transport, mainly for testing
        """
        self.pool = pool
        self.tempdir = tempdir
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.Client | None = None

    @property
    def master_mirror(self) -> str:
        """URL of the master mirror."""
        return self.pool.master

    def random_mirror(self) -> str:
        """Return a random usable mirror URL."""
        return self.pool.random_mirror()

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def _create_temp_file(self, relative_path: str) -> Path:
        filename = relative_path.rstrip("/").split("/")[-1] or "download"
        try:
            fd, temp_name = tempfile.mkstemp(
                prefix=f"idgs.{filename}.", suffix=".tmp", dir=self.tempdir
            )
        except OSError as e:
            raise IdgDownloadError(f"Failed to create temp file: {e}") from e
        os.close(fd)
        logger.debug(f"Created temp file {temp_name}")
        return Path(temp_name)

    def download_file(
        self,
        url: str,
        output_path: Path,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> int:
        """Download a single URL into a local file.

        Args:
            url: Fully qualified URL
            output_path: Where to write the response body
            progress_callback: Optional callback function(bytes_downloaded,
                total_bytes)

        Returns:
            Number of bytes written

        Raises:
            IdgUnsupportedURLError: If the URL scheme is not HTTP(S)
            IdgDownloadError: If the server returns an error status or the
                file cannot be written
            IdgNetworkError: If the connection fails
        """
        if urlsplit(url).scheme not in SUPPORTED_SCHEMES:
            raise IdgUnsupportedURLError(url)

        client = self._get_client()
        try:
            with client.stream("GET", url) as response:
                response.raise_for_status()

                total_size = int(response.headers.get("Content-Length", 0))
                bytes_downloaded = 0

                with open(output_path, "wb") as f:
                    for chunk in response.iter_bytes(chunk_size=DEFAULT_CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
                            bytes_downloaded += len(chunk)
                            if progress_callback:
                                progress_callback(bytes_downloaded, total_size)

                return bytes_downloaded

        except httpx.HTTPStatusError as e:
            raise IdgDownloadError(
                f"Download failed with status {e.response.status_code}: {url}"
            ) from e
        except httpx.RequestError as e:
            raise IdgNetworkError(f"Network error during download: {e}") from e
        except OSError as e:
            raise IdgDownloadError(f"Failed to write file: {e}") from e

    def fetch(
        self,
        relative_path: str,
        base_url: str | None = None,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> Path:
        """Fetch an archive file into a temporary file.

        Failures on any mirror other than the master are retried once against
        the master mirror. The temporary file is removed on failure; on
        success the caller owns it.

        Args:
            relative_path: Archive-relative path with forward slashes
            base_url: Mirror to use; the explicit URL or a random mirror if
                not provided
            progress_callback: Optional callback function(bytes_downloaded,
                total_bytes)

        Returns:
            Path of the temporary file holding the download

        Raises:
            IdgDownloadError: If the file could not be fetched from the
                master mirror either
            IdgNetworkError: If the master mirror could not be reached
        """
        if base_url is None:
            base_url = self.pool.select_base_url()

        url = build_url(base_url, relative_path)
        temp_path = self._create_temp_file(relative_path)
        logger.debug(f"Fetching '{relative_path}' from '{url_host(base_url)}'")

        try:
            size = self.download_file(url, temp_path, progress_callback)
        except (IdgDownloadError, IdgNetworkError) as e:
            logger.debug(f"Deleting tempfile {temp_path}")
            temp_path.unlink(missing_ok=True)
            if self.pool.is_master(base_url):
                raise
            logger.warning(f"Error downloading '{relative_path}': {e}")
            logger.warning(
                f"Retrying download of {relative_path} "
                f"from {url_host(self.master_mirror)}"
            )
            return self.fetch(
                relative_path,
                base_url=self.master_mirror,
                progress_callback=progress_callback,
            )

        logger.debug(f"Downloaded {size} byte(s) to {temp_path}")
        return temp_path
