"""
Metrics Collection for the Catalog Bridge

Collects and exposes in-memory metrics for:
- Asset mapping (mapped, skipped by reason)
- Relationship resolution (emitted, dropped by reason)
- Native queries (issued, forced to zero rows)
- Change detection (change records per operation)
- Processing times (average, p95) per stage
"""

import statistics
from collections import defaultdict
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, List, Optional


# =============================================================================
# Metric Data Classes
# =============================================================================

@dataclass
class MappingMetrics:
    """Metrics for entity mapping."""
    mapped: int = 0
    skipped: int = 0

    by_type: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    skipped_by_reason: Dict[str, int] = field(default_factory=lambda: defaultdict(int))


@dataclass
class RelationshipMetrics:
    """Metrics for relationship resolution."""
    emitted: int = 0
    dropped: int = 0

    by_type: Dict[str, Dict[str, int]] = field(
        default_factory=lambda: defaultdict(lambda: {"emitted": 0, "dropped": 0})
    )
    dropped_by_reason: Dict[str, int] = field(default_factory=lambda: defaultdict(int))


@dataclass
class QueryMetrics:
    """Metrics for native query translation."""
    issued: int = 0
    forced_empty: int = 0


@dataclass
class ChangeMetrics:
    """Metrics for change detection."""
    assets_compared: int = 0
    by_operation: Dict[str, int] = field(default_factory=lambda: defaultdict(int))


@dataclass
class TimingMetrics:
    """Processing time metrics."""
    max_samples: int = 1000
    by_stage: Dict[str, List[float]] = field(default_factory=lambda: defaultdict(list))

    def add_sample(self, stage: str, duration_ms: float):
        samples = self.by_stage[stage]
        samples.append(duration_ms)
        if len(samples) > self.max_samples:
            self.by_stage[stage] = samples[-self.max_samples:]

    def get_average(self, stage: str) -> float:
        samples = self.by_stage.get(stage, [])
        return statistics.mean(samples) if samples else 0.0

    def get_p95(self, stage: str) -> float:
        samples = self.by_stage.get(stage, [])
        if not samples:
            return 0.0
        ordered = sorted(samples)
        idx = int(len(ordered) * 0.95)
        return ordered[min(idx, len(ordered) - 1)]


# =============================================================================
# Metrics Collector (Singleton)
# =============================================================================

class MetricsCollector:
    """
    Thread-safe metrics collector for the catalog bridge.

    Usage:
        metrics = MetricsCollector.instance()
        metrics.record_asset_mapped("Database")
        metrics.record_processing_time("sync.changed_entities", 120.0)
    """

    _instance: Optional["MetricsCollector"] = None
    _lock = Lock()

    def __init__(self):
        self._lock = Lock()
        self.reset()

    @classmethod
    def instance(cls) -> "MetricsCollector":
        """Get singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def reset(self):
        """Clear every counter."""
        with self._lock:
            self.mapping = MappingMetrics()
            self.relationships = RelationshipMetrics()
            self.queries = QueryMetrics()
            self.changes = ChangeMetrics()
            self.timings = TimingMetrics()

    # =========================================================================
    # Mapping
    # =========================================================================

    def record_asset_mapped(self, canonical_type: str):
        with self._lock:
            self.mapping.mapped += 1
            self.mapping.by_type[canonical_type] += 1

    def record_asset_skipped(self, reason: str):
        with self._lock:
            self.mapping.skipped += 1
            self.mapping.skipped_by_reason[reason] += 1

    def record_relationship_emitted(self, relationship_type: str):
        with self._lock:
            self.relationships.emitted += 1
            self.relationships.by_type[relationship_type]["emitted"] += 1

    def record_relationship_dropped(self, relationship_type: str, reason: str):
        with self._lock:
            self.relationships.dropped += 1
            self.relationships.by_type[relationship_type]["dropped"] += 1
            self.relationships.dropped_by_reason[reason] += 1

    # =========================================================================
    # Queries and Changes
    # =========================================================================

    def record_query(self, forced_empty: bool = False):
        with self._lock:
            self.queries.issued += 1
            if forced_empty:
                self.queries.forced_empty += 1

    def record_changes(self, counts: Dict[str, int]):
        """Record the change records produced for one compared asset."""
        with self._lock:
            self.changes.assets_compared += 1
            for operation, count in counts.items():
                self.changes.by_operation[operation] += count

    # =========================================================================
    # Timing
    # =========================================================================

    def record_processing_time(self, stage: str, duration_ms: float):
        with self._lock:
            self.timings.add_sample(stage, duration_ms)

    def get_timing_stats(self, stage: str) -> Dict[str, float]:
        with self._lock:
            return {
                "average_ms": self.timings.get_average(stage),
                "p95_ms": self.timings.get_p95(stage),
                "sample_count": len(self.timings.by_stage.get(stage, [])),
            }

    # =========================================================================
    # Summary
    # =========================================================================

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        with self._lock:
            return {
                "mapping": {
                    "mapped": self.mapping.mapped,
                    "skipped": self.mapping.skipped,
                    "by_type": dict(self.mapping.by_type),
                    "skipped_by_reason": dict(self.mapping.skipped_by_reason),
                },
                "relationships": {
                    "emitted": self.relationships.emitted,
                    "dropped": self.relationships.dropped,
                    "by_type": {k: dict(v) for k, v in self.relationships.by_type.items()},
                    "dropped_by_reason": dict(self.relationships.dropped_by_reason),
                },
                "queries": {
                    "issued": self.queries.issued,
                    "forced_empty": self.queries.forced_empty,
                },
                "changes": {
                    "assets_compared": self.changes.assets_compared,
                    "by_operation": dict(self.changes.by_operation),
                },
                "timings": {
                    stage: {
                        "average_ms": self.timings.get_average(stage),
                        "p95_ms": self.timings.get_p95(stage),
                    }
                    for stage in self.timings.by_stage.keys()
                },
            }


# =============================================================================
# Module-level convenience functions
# =============================================================================

def get_metrics() -> MetricsCollector:
    """Get the global metrics collector."""
    return MetricsCollector.instance()


def record_processing_time(stage: str, duration_ms: float):
    """Record a processing time sample."""
    get_metrics().record_processing_time(stage, duration_ms)
