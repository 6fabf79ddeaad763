"""Incremental synchronization windows.

An external scheduler asks for what changed in a half-open window
[start, end). The ChangeTracker collects the native assets modified in the
window once (the working set) and serves entities, relationships and change
sets from it. Relationship carriers (link assets) modified in the window are
collected too, so a changed carrier surfaces its relationship even when
neither endpoint changed. Asking for a window with different bounds discards the working
set; nothing is reused across differing windows.
"""

import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import List, Mapping, Optional, Tuple

from core.errors import ExternalCallFailure
from core.mapping.repository import Carrier, CatalogRepository, MappingBatch
from core.models.canonical import CanonicalEntity, CanonicalRelationship, Fidelity
from core.models.native import NativeAsset, StubSnapshot, to_datetime
from core.observability.logging import get_logger, with_correlation
from core.observability.metrics import get_metrics, record_processing_time
from core.search.conditions import ConditionSet, NativeQuery, Operator, SearchCondition
from core.sync.changes import ChangeSet, ChangeSetEngine


logger = get_logger(__name__)

MODIFIED_ON = "modified_on"


def _utc(moment: datetime) -> datetime:
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class SyncWindow:
    """Half-open time window [start, end)."""
    start: datetime
    end: datetime

    def __post_init__(self):
        object.__setattr__(self, "start", _utc(self.start))
        object.__setattr__(self, "end", _utc(self.end))
        if self.start >= self.end:
            raise ValueError(f"Window start {self.start.isoformat()} must precede end {self.end.isoformat()}")

    @classmethod
    def parse(cls, start: str, end: str) -> "SyncWindow":
        return cls(to_datetime(start), to_datetime(end))

    def contains(self, moment: datetime) -> bool:
        return self.start <= _utc(moment) < self.end

    @property
    def label(self) -> str:
        return f"{self.start.isoformat()}/{self.end.isoformat()}"

    def conditions(self) -> ConditionSet:
        return ConditionSet.all_of([
            SearchCondition(MODIFIED_ON, Operator.GREATER_OR_EQUAL, self.start),
            SearchCondition(MODIFIED_ON, Operator.LESS_THAN, self.end),
        ])


@dataclass(frozen=True)
class WindowWorkingSet:
    """Assets and relationship carriers modified within one window."""
    window: SyncWindow
    assets: Tuple[NativeAsset, ...]
    carriers: Tuple[Carrier, ...] = ()
    warnings: Tuple[str, ...] = ()


class ChangeTracker:
    """Serves per-window change listings from a window-keyed working set."""

    def __init__(self, repository: CatalogRepository, engine: Optional[ChangeSetEngine] = None):
        self.repository = repository
        self.engine = engine or ChangeSetEngine()
        self._working_set: Optional[WindowWorkingSet] = None

    async def working_set(self, window: SyncWindow) -> WindowWorkingSet:
        """The working set for the window, rebuilt when the bounds differ."""
        current = self._working_set
        if current is not None and current.window == window:
            return current
        if current is not None:
            logger.info(f"Discarding working set for {current.window.label}")

        started = time.monotonic()
        working_set = await self._collect(window)
        record_processing_time("sync.working_set", (time.monotonic() - started) * 1000)

        # A partial set would be served stale for the whole window, so only complete ones are kept.
        self._working_set = working_set if not working_set.warnings else None
        return working_set

    async def _collect(self, window: SyncWindow) -> WindowWorkingSet:
        ctx = self.repository.new_context()
        assets: List[NativeAsset] = []
        carriers: List[Carrier] = []
        warnings: List[str] = []

        async def listing(native_type: str, query: NativeQuery) -> List[NativeAsset]:
            try:
                return await ctx.search_all(query)
            except ExternalCallFailure as e:
                message = f"Could not list changed {native_type} assets: {e}"
                warnings.append(message)
                logger.warning(message, extra_fields={"native_type": native_type})
                return []

        with with_correlation(sync_window=window.label):
            for native_type in self.repository.registry.native_types:
                query = NativeQuery(native_types=(native_type,), conditions=window.conditions())
                assets.extend(await listing(native_type, query))

            for mapper, representation in self.repository.registry.link_representations:
                query = replace(representation.base_query(mapper), conditions=window.conditions())
                for carrier in await listing(representation.link_type, query):
                    carriers.append((mapper, representation, carrier))

            logger.info(
                f"{len(assets)} assets and {len(carriers)} carriers changed",
                extra_fields={"asset_count": len(assets), "carrier_count": len(carriers)},
            )
        return WindowWorkingSet(window=window, assets=tuple(assets), carriers=tuple(carriers), warnings=tuple(warnings))

    async def changed_entities(
        self,
        window: SyncWindow,
        fidelity: Fidelity = Fidelity.DETAIL,
    ) -> MappingBatch[CanonicalEntity]:
        working_set = await self.working_set(window)
        with with_correlation(sync_window=window.label):
            batch = await self.repository.map_assets(working_set.assets, fidelity)
        batch.warnings[:0] = list(working_set.warnings)
        return batch

    async def changed_relationships(self, window: SyncWindow) -> MappingBatch[CanonicalRelationship]:
        working_set = await self.working_set(window)
        with with_correlation(sync_window=window.label):
            batch = await self.repository.relationships_for_assets(working_set.assets, working_set.carriers)
        batch.warnings[:0] = list(working_set.warnings)
        return batch

    async def change_sets(
        self,
        window: SyncWindow,
        stubs: Mapping[str, StubSnapshot],
    ) -> MappingBatch[ChangeSet]:
        """Diff every changed asset against its stub (missing stub = empty baseline)."""
        working_set = await self.working_set(window)
        ctx = self.repository.new_context()
        batch: MappingBatch[ChangeSet] = MappingBatch(warnings=list(working_set.warnings))
        with with_correlation(sync_window=window.label):
            for reference in working_set.assets:
                try:
                    asset = await ctx.get_asset(reference.rid)
                except ExternalCallFailure as e:
                    batch.skip(reference, e)
                    continue
                if asset is None:
                    continue
                change_set = self.engine.compare(asset, stubs.get(asset.rid))
                get_metrics().record_changes(change_set.counts())
                if not change_set.is_empty:
                    batch.items.append(change_set)
        return batch
