"""
Observability Module for the Mirror Sync Pipeline

Provides:
- Structured logging with sync-run correlation
- Metrics collection (runs, stages, record counts, stage durations)
"""

from core.observability.metrics import (
    MetricsCollector,
    get_metrics,
    record_run_started,
    record_run_finished,
    record_stage_started,
    record_stage_completed,
    record_stage_failed,
)

from core.observability.logging import (
    get_logger,
    configure_logging,
    CorrelationContext,
    with_correlation,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "get_metrics",
    "record_run_started",
    "record_run_finished",
    "record_stage_started",
    "record_stage_completed",
    "record_stage_failed",
    # Logging
    "get_logger",
    "configure_logging",
    "CorrelationContext",
    "with_correlation",
]
