"""
Metrics Collection for the Mirror Sync Pipeline

Collects and exposes in-process metrics for:
- Sync runs (started, succeeded, failed) per trigger
- Stage execution (started, completed, failed) per entity
- Records and lines upserted per entity
- Data-correction warnings per entity
- Stage durations (average, p95)

The summary is served by the /sync/metrics route. Durable run history lives
in the sync_runs table of the mirror store, not here.
"""

import statistics
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Dict, List, Optional, Any


# =============================================================================
# Metric Data Classes
# =============================================================================

@dataclass
class RunMetrics:
    """Metrics for sync runs."""
    started: int = 0
    succeeded: int = 0
    failed: int = 0
    rejected: int = 0
    in_progress: int = 0
    last_finished_at: Optional[datetime] = None

    by_trigger: Dict[str, Dict[str, int]] = field(
        default_factory=lambda: defaultdict(lambda: {"started": 0, "succeeded": 0, "failed": 0})
    )


@dataclass
class StageMetrics:
    """Metrics for stage execution."""
    started: int = 0
    completed: int = 0
    failed: int = 0

    by_entity: Dict[str, Dict[str, int]] = field(
        default_factory=lambda: defaultdict(
            lambda: {"started": 0, "completed": 0, "failed": 0, "records": 0, "lines": 0, "warnings": 0}
        )
    )


@dataclass
class TimingMetrics:
    """Stage duration samples."""
    samples: List[float] = field(default_factory=list)
    max_samples: int = 1000

    by_stage: Dict[str, List[float]] = field(default_factory=lambda: defaultdict(list))

    def add_sample(self, duration_ms: float, stage: str = None):
        """Add a timing sample."""
        self.samples.append(duration_ms)
        if len(self.samples) > self.max_samples:
            self.samples = self.samples[-self.max_samples:]

        if stage:
            self.by_stage[stage].append(duration_ms)
            if len(self.by_stage[stage]) > self.max_samples:
                self.by_stage[stage] = self.by_stage[stage][-self.max_samples:]

    def get_average(self, stage: str = None) -> float:
        samples = self.by_stage.get(stage, []) if stage else self.samples
        return statistics.mean(samples) if samples else 0.0

    def get_p95(self, stage: str = None) -> float:
        samples = self.by_stage.get(stage, []) if stage else self.samples
        if not samples:
            return 0.0
        sorted_samples = sorted(samples)
        idx = int(len(sorted_samples) * 0.95)
        return sorted_samples[min(idx, len(sorted_samples) - 1)]


# =============================================================================
# Metrics Collector (Singleton)
# =============================================================================

class MetricsCollector:
    """
    Thread-safe metrics collector for sync runs.

    Usage:
        metrics = MetricsCollector.instance()
        metrics.record_run_started("manual")
        metrics.record_stage_completed("customers", records=120, duration_ms=850)
    """

    _instance: Optional["MetricsCollector"] = None
    _lock = Lock()

    def __init__(self):
        self.runs = RunMetrics()
        self.stages = StageMetrics()
        self.timings = TimingMetrics()
        self._lock = Lock()

    @classmethod
    def instance(cls) -> "MetricsCollector":
        """Get singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton (used by tests)."""
        with cls._lock:
            cls._instance = None

    # =========================================================================
    # Run Metrics
    # =========================================================================

    def record_run_started(self, trigger: str):
        with self._lock:
            self.runs.started += 1
            self.runs.in_progress += 1
            self.runs.by_trigger[trigger]["started"] += 1

    def record_run_finished(self, trigger: str, succeeded: bool):
        with self._lock:
            self.runs.in_progress = max(0, self.runs.in_progress - 1)
            self.runs.last_finished_at = datetime.now(timezone.utc)
            if succeeded:
                self.runs.succeeded += 1
                self.runs.by_trigger[trigger]["succeeded"] += 1
            else:
                self.runs.failed += 1
                self.runs.by_trigger[trigger]["failed"] += 1

    def record_run_rejected(self):
        """Record a run refused by the single-flight guard."""
        with self._lock:
            self.runs.rejected += 1

    # =========================================================================
    # Stage Metrics
    # =========================================================================

    def record_stage_started(self, entity: str):
        with self._lock:
            self.stages.started += 1
            self.stages.by_entity[entity]["started"] += 1

    def record_stage_completed(
        self,
        entity: str,
        records: int = 0,
        lines: int = 0,
        warnings: int = 0,
        duration_ms: float = None,
    ):
        with self._lock:
            self.stages.completed += 1
            bucket = self.stages.by_entity[entity]
            bucket["completed"] += 1
            bucket["records"] += records
            bucket["lines"] += lines
            bucket["warnings"] += warnings
            if duration_ms is not None:
                self.timings.add_sample(duration_ms, entity)

    def record_stage_failed(self, entity: str, records: int = 0, lines: int = 0):
        with self._lock:
            self.stages.failed += 1
            bucket = self.stages.by_entity[entity]
            bucket["failed"] += 1
            bucket["records"] += records
            bucket["lines"] += lines

    def get_timing_stats(self, stage: str = None) -> Dict[str, float]:
        """Get timing statistics for a stage."""
        with self._lock:
            return {
                "average_ms": self.timings.get_average(stage),
                "p95_ms": self.timings.get_p95(stage),
                "sample_count": len(self.timings.by_stage.get(stage, []) if stage else self.timings.samples),
            }

    # =========================================================================
    # Summary
    # =========================================================================

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        with self._lock:
            return {
                "runs": {
                    "started": self.runs.started,
                    "succeeded": self.runs.succeeded,
                    "failed": self.runs.failed,
                    "rejected": self.runs.rejected,
                    "in_progress": self.runs.in_progress,
                    "last_finished_at": (
                        self.runs.last_finished_at.isoformat() if self.runs.last_finished_at else None
                    ),
                    "by_trigger": {k: dict(v) for k, v in self.runs.by_trigger.items()},
                },
                "stages": {
                    "started": self.stages.started,
                    "completed": self.stages.completed,
                    "failed": self.stages.failed,
                    "by_entity": {k: dict(v) for k, v in self.stages.by_entity.items()},
                },
                "timings": {
                    "overall": {
                        "average_ms": self.timings.get_average(),
                        "p95_ms": self.timings.get_p95(),
                    },
                    "by_stage": {
                        stage: {
                            "average_ms": self.timings.get_average(stage),
                            "p95_ms": self.timings.get_p95(stage),
                        }
                        for stage in self.timings.by_stage.keys()
                    },
                },
            }


# =============================================================================
# Module-level convenience functions
# =============================================================================

def get_metrics() -> MetricsCollector:
    """Get the global metrics collector."""
    return MetricsCollector.instance()


def record_run_started(trigger: str):
    get_metrics().record_run_started(trigger)


def record_run_finished(trigger: str, succeeded: bool):
    get_metrics().record_run_finished(trigger, succeeded)


def record_stage_started(entity: str):
    get_metrics().record_stage_started(entity)


def record_stage_completed(entity: str, records: int = 0, lines: int = 0, warnings: int = 0, duration_ms: float = None):
    get_metrics().record_stage_completed(entity, records, lines, warnings, duration_ms)


def record_stage_failed(entity: str, records: int = 0, lines: int = 0):
    get_metrics().record_stage_failed(entity, records, lines)
