"""Incremental synchronization: change detection and window tracking."""

from core.sync.changes import ChangeOperation, ChangeRecord, ChangeSet, ChangeSetEngine
from core.sync.window import ChangeTracker, SyncWindow, WindowWorkingSet

__all__ = [
    "ChangeOperation",
    "ChangeRecord",
    "ChangeSet",
    "ChangeSetEngine",
    "ChangeTracker",
    "SyncWindow",
    "WindowWorkingSet",
]
