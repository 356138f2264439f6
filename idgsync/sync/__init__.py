"""Sync engine for idgsync - listing reconciliation, fetching and pruning."""

from .comparator import SyncAction, SyncDecision, SyncPolicy
from .engine import SyncEngine
from .operations import ListingUpdate, SyncOperations
from .options import SyncOptions
from .scanner import LocalReconciler, find_orphans, scan_local_files

__all__ = [
    "SyncEngine",
    "SyncOptions",
    "SyncOperations",
    "ListingUpdate",
    "SyncPolicy",
    "SyncAction",
    "SyncDecision",
    "LocalReconciler",
    "find_orphans",
    "scan_local_files",
]
