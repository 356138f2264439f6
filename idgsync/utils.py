"""Utility functions for idgsync."""

from typing import Optional
from urllib.parse import quote, urlsplit

# =============================================================================
# Constants
# =============================================================================

# Name of the compressed recursive listing kept at the mirror root
LISTING_FILENAME: str = "ls-laR.gz"

# Transport defaults
DEFAULT_TIMEOUT: float = 60.0
DEFAULT_CHUNK_SIZE: int = 8192

# Characters left unescaped when building mirror URLs
URL_SAFE_CHARS: str = "-._~/"


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


# =============================================================================
# URL utilities
# =============================================================================


def build_url(base_url: str, relative_path: str) -> str:
    """Join a mirror base URL and an archive-relative path.

    The path is percent-encoded, leaving slashes and unreserved characters
    alone.

    Examples:
        >>> build_url("http://example.com/idgames/", "newstuff/a b.zip")
        'http://example.com/idgames/newstuff/a%20b.zip'
    """
    path = quote(relative_path.lstrip("/"), safe=URL_SAFE_CHARS)
    return f"{base_url.rstrip('/')}/{path}"


def url_host(url: str) -> Optional[str]:
    """Return the host part of a URL, or None if it has none.

    Examples:
        >>> url_host("https://www.gamers.org/pub/idgames")
        'www.gamers.org'
    """
    host = urlsplit(url).hostname
    return host or None
