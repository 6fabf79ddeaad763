"""
Observability Module for the Catalog Bridge

Provides:
- Structured logging with correlation IDs
- Metrics collection (mapping, relationships, queries, changes, timings)
"""

from core.observability.metrics import (
    MetricsCollector,
    get_metrics,
    record_processing_time,
)

from core.observability.logging import (
    CorrelationContext,
    configure_logging,
    get_logger,
    with_correlation,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "get_metrics",
    "record_processing_time",
    # Logging
    "CorrelationContext",
    "configure_logging",
    "get_logger",
    "with_correlation",
]
