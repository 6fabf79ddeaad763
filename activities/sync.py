"""Incremental synchronization activities.

Temporal activities that list what changed in the native catalog during a
sync window and compute change sets against previously persisted stubs.

Activities are methods of CatalogSyncActivities so one worker shares a single
repository (client + registry) and a single ChangeTracker between them. Calls
for the same window reuse the tracker's working set; a different window
rebuilds it.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from temporalio import activity

from core.mapping.repository import CatalogRepository, MappingBatch
from core.models.canonical import Fidelity
from core.models.native import StubSnapshot
from core.observability.logging import log_activity_complete, log_activity_start, with_correlation
from core.sync.changes import ChangeSetEngine
from core.sync.window import ChangeTracker, SyncWindow


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class SyncWindowInput:
    """Input for the listing activities.

    Attributes:
        start: Inclusive window start (ISO 8601)
        end: Exclusive window end (ISO 8601)
        fidelity: "summary" or "detail"
    """
    start: str
    end: str
    fidelity: str = Fidelity.DETAIL.value


@dataclass
class ChangeSetsInput:
    """Input for compute_change_sets.

    Attributes:
        start: Inclusive window start (ISO 8601)
        end: Exclusive window end (ISO 8601)
        stubs: Persisted stub payloads ({"_id", "_type", "modified_on", "properties"})
    """
    start: str
    end: str
    stubs: List[dict] = field(default_factory=list)


@dataclass
class SyncBatchOutput:
    """Output of every sync activity.

    Attributes:
        window: "start/end" label of the window served
        items: Canonical entity, relationship or change set payloads
        warnings: Batch-level warnings (failed assets, failed listings)
        skipped: Skipped asset descriptors
    """
    window: str
    items: List[dict] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    skipped: List[dict] = field(default_factory=list)


def _output(window: SyncWindow, batch: MappingBatch) -> SyncBatchOutput:
    return SyncBatchOutput(
        window=window.label,
        items=[item.to_payload() for item in batch.items],
        warnings=list(batch.warnings),
        skipped=[s.to_dict() for s in batch.skipped],
    )


# =============================================================================
# Activities
# =============================================================================

class CatalogSyncActivities:
    """Sync activities bound to one catalog repository."""

    def __init__(self, repository: CatalogRepository, engine: Optional[ChangeSetEngine] = None):
        self.tracker = ChangeTracker(repository, engine)

    @activity.defn
    async def list_changed_entities(self, input: SyncWindowInput) -> SyncBatchOutput:
        """Map every asset modified in the window to canonical entities."""
        started = time.monotonic()
        window = SyncWindow.parse(input.start, input.end)
        log_activity_start("list_changed_entities", sync_window=window.label)

        with with_correlation(sync_window=window.label, activity_name="list_changed_entities"):
            batch = await self.tracker.changed_entities(window, Fidelity(input.fidelity))

        log_activity_complete(
            "list_changed_entities",
            duration_ms=(time.monotonic() - started) * 1000,
            entity_count=len(batch.items),
            warning_count=len(batch.warnings),
        )
        return _output(window, batch)

    @activity.defn
    async def list_changed_relationships(self, input: SyncWindowInput) -> SyncBatchOutput:
        """Relationships touching any asset modified in the window."""
        started = time.monotonic()
        window = SyncWindow.parse(input.start, input.end)
        log_activity_start("list_changed_relationships", sync_window=window.label)

        with with_correlation(sync_window=window.label, activity_name="list_changed_relationships"):
            batch = await self.tracker.changed_relationships(window)

        log_activity_complete(
            "list_changed_relationships",
            duration_ms=(time.monotonic() - started) * 1000,
            relationship_count=len(batch.items),
        )
        return _output(window, batch)

    @activity.defn
    async def compute_change_sets(self, input: ChangeSetsInput) -> SyncBatchOutput:
        """Diff each asset modified in the window against its stub."""
        started = time.monotonic()
        window = SyncWindow.parse(input.start, input.end)
        stubs: Dict[str, StubSnapshot] = {}
        for payload in input.stubs:
            stub = StubSnapshot.from_payload(payload)
            stubs[stub.rid] = stub
        log_activity_start("compute_change_sets", sync_window=window.label, stub_count=len(stubs))

        with with_correlation(sync_window=window.label, activity_name="compute_change_sets"):
            batch = await self.tracker.change_sets(window, stubs)

        log_activity_complete(
            "compute_change_sets",
            duration_ms=(time.monotonic() - started) * 1000,
            change_set_count=len(batch.items),
        )
        return _output(window, batch)

    def all(self) -> list:
        """Bound activity methods, for Worker registration."""
        return [self.list_changed_entities, self.list_changed_relationships, self.compute_change_sets]
