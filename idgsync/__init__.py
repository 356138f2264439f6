"""idgsync - keep a local mirror of the idGames archive in sync."""

from .api import MirrorClient
from .exceptions import (
    IdgConfigError,
    IdgDownloadError,
    IdgListingError,
    IdgMirrorRootError,
    IdgNetworkError,
    IdgSyncError,
    IdgUnsupportedURLError,
)
from .listing import ListingParser, read_listing
from .mirrors import MirrorPool
from .models import ArchiveEntry, LocalEntry, LocalStatus

__all__ = [
    "MirrorClient",
    "MirrorPool",
    "ListingParser",
    "read_listing",
    "ArchiveEntry",
    "LocalEntry",
    "LocalStatus",
    "IdgSyncError",
    "IdgConfigError",
    "IdgMirrorRootError",
    "IdgListingError",
    "IdgNetworkError",
    "IdgDownloadError",
    "IdgUnsupportedURLError",
]
