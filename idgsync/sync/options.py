"""Per-run options for a mirror sync."""

import sys
from dataclasses import dataclass, field
from typing import Optional

from ..exceptions import IdgConfigError
from ..mirrors import MirrorPool
from ..reporter import (
    DEFAULT_REPORT_FORMAT,
    DEFAULT_REPORT_TYPES,
    REPORT_FORMATS,
    REPORT_TYPES,
)


@dataclass
class SyncOptions:
    """Options controlling a single sync run.

    Examples:
        >>> options = SyncOptions(path="/srv/idgames", dry_run=True)
        >>> options.validate()
    """

    path: str
    """Local mirror root"""

    dry_run: bool = False
    exclude_urls: list[str] = field(default_factory=list)
    report_format: str = DEFAULT_REPORT_FORMAT
    report_types: list[str] = field(default_factory=lambda: list(DEFAULT_REPORT_TYPES))

    url: Optional[str] = None
    """Explicit mirror URL overriding random mirror selection"""

    prune_all: bool = False
    """Prune the whole mirror instead of only newstuff"""

    sync_all: bool = False
    """Sync everything instead of only WAD directories"""

    include_incoming: bool = False
    include_dotfiles: bool = False
    tempdir: Optional[str] = None
    is_mswin32: bool = field(default_factory=lambda: sys.platform == "win32")

    create_mirror: bool = False
    """Allow creating a new mirror in an empty/missing directory"""

    skip_listing_update: bool = False
    update_listing_only: bool = False

    max_entries: Optional[int] = None
    """Stop after this many file entries (debugging); None for a full pass"""

    def validate(self) -> None:
        """Check the options for invalid or contradictory values.

        Raises:
            IdgConfigError: If the options cannot be used together
        """
        if self.report_format not in REPORT_FORMATS:
            raise IdgConfigError(
                f"Unknown report format '{self.report_format}'; "
                f"valid formats: {', '.join(REPORT_FORMATS)}"
            )

        unknown = [t for t in self.report_types if t not in REPORT_TYPES]
        if unknown:
            raise IdgConfigError(
                f"Unknown report type(s) {', '.join(unknown)}; "
                f"valid types: {', '.join(REPORT_TYPES)}"
            )

        if self.skip_listing_update and self.update_listing_only:
            raise IdgConfigError(
                "--skip-listing-update and --update-listing cannot be used together"
            )

        if self.max_entries is not None and self.max_entries < 1:
            raise IdgConfigError("--debug-files must be a positive number")

        # Raises when every mirror is excluded
        self.build_pool()

    def build_pool(self) -> MirrorPool:
        """Create the mirror pool for this run."""
        return MirrorPool.build(exclude_urls=self.exclude_urls, base_url=self.url)
