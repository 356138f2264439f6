"""Sync eligibility decisions for reconciled entries."""

from dataclasses import dataclass
from enum import Enum

from ..models import EntryKind, LocalEntry


class SyncAction(str, Enum):
    """Actions that can be taken for an archive entry."""

    DOWNLOAD = "download"
    """Download archive file to the local mirror"""

    CREATE_DIRECTORY = "create_directory"
    """Create a missing local directory"""

    SKIP = "skip"
    """Skip entry (no action needed or not allowed)"""


@dataclass
class SyncDecision:
    """Represents a decision about how to sync an entry."""

    action: SyncAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    local_entry: LocalEntry
    """Reconciled local entry"""

    @property
    def is_actionable(self) -> bool:
        return self.action is not SyncAction.SKIP

    @property
    def skipped_by_wad_policy(self) -> bool:
        """Whether the entry was only skipped because it is not WAD content."""
        return self.action is SyncAction.SKIP and self.reason == NON_WAD_REASON


NON_WAD_REASON = "Non-WAD entry; sync everything is not enabled"


class SyncPolicy:
    """Decides which reconciled entries are queued for synchronization."""

    def __init__(self, include_dotfiles: bool = False, sync_all: bool = False):
        """Initialize sync policy.

        Args:
            include_dotfiles: Synchronize hidden server artifacts too
            sync_all: Synchronize everything, not just WAD directories
        """
        self.include_dotfiles = include_dotfiles
        self.sync_all = sync_all

    def decide(self, local: LocalEntry) -> SyncDecision:
        """Determine the action for a single reconciled entry.

        Args:
            local: Probed local entry

        Returns:
            SyncDecision for this entry
        """
        if not local.needs_sync:
            return SyncDecision(
                action=SyncAction.SKIP,
                reason=f"Up to date ({local.long_status or 'present'})",
                local_entry=local,
            )

        if local.is_dotfile and not self.include_dotfiles:
            return SyncDecision(
                action=SyncAction.SKIP,
                reason="Dotfile; dotfiles are not enabled",
                local_entry=local,
            )

        if not (
            local.is_wad_eligible
            or local.is_metafile
            or local.is_newstuff
            or self.sync_all
        ):
            return SyncDecision(
                action=SyncAction.SKIP,
                reason=NON_WAD_REASON,
                local_entry=local,
            )

        if local.kind is EntryKind.DIRECTORY:
            return SyncDecision(
                action=SyncAction.CREATE_DIRECTORY,
                reason="Directory missing locally",
                local_entry=local,
            )

        return SyncDecision(
            action=SyncAction.DOWNLOAD,
            reason=local.long_status or "Needs sync",
            local_entry=local,
        )
