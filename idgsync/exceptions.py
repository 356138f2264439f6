"""Exceptions raised by idgsync."""


class IdgSyncError(Exception):
    """Base exception for all idgsync errors."""


class IdgConfigError(IdgSyncError):
    """Invalid or contradictory configuration."""


class IdgMirrorRootError(IdgSyncError):
    """The local mirror root or its listing artifact is unusable."""


class IdgListingError(IdgSyncError):
    """The archive listing could not be read or decompressed."""


class IdgNetworkError(IdgSyncError):
    """Connection level failure while talking to a mirror."""


class IdgDownloadError(IdgSyncError):
    """A file could not be downloaded or written to disk."""


class IdgUnsupportedURLError(IdgDownloadError):
    """Mirror URL uses a scheme the HTTP transport cannot serve."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Unsupported mirror URL scheme: {url}")
