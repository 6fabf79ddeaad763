"""Activity definitions module."""

from activities.sync import (
    CatalogSyncActivities,
    ChangeSetsInput,
    SyncBatchOutput,
    SyncWindowInput,
)

__all__ = [
    "CatalogSyncActivities",
    "ChangeSetsInput",
    "SyncBatchOutput",
    "SyncWindowInput",
]
