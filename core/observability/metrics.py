"""
Metrics Collection for the KiotViet monitor

Collects and exposes metrics for:
- Scheduler ticks (started, completed, failed, skipped) per task
- Notifications (sent, failed) per report kind
- Processing times (average, p95) per tick stage

Metrics are held in-memory for the lifetime of the process and exposed
through the status endpoint.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock
from typing import Dict, List, Optional, Any
import statistics


# =============================================================================
# Metric Data Classes
# =============================================================================

@dataclass
class TickMetrics:
    """Metrics for periodic tick execution."""
    started: int = 0
    completed: int = 0
    failed: int = 0
    skipped: int = 0

    # By task name (invoice_scan, reconciliation)
    by_task: Dict[str, Dict[str, int]] = field(default_factory=lambda: defaultdict(lambda: {"started": 0, "completed": 0, "failed": 0, "skipped": 0}))
    last_completed_at: Dict[str, datetime] = field(default_factory=dict)


@dataclass
class NotificationMetrics:
    """Metrics for dispatched reports."""
    sent: int = 0
    failed: int = 0

    # By report kind (revision, cancellation, order_invoice, ...)
    by_kind: Dict[str, Dict[str, int]] = field(default_factory=lambda: defaultdict(lambda: {"sent": 0, "failed": 0}))


@dataclass
class TimingMetrics:
    """Processing time metrics."""
    # Raw timing samples (keep last N for percentile calculations)
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
        """Get average processing time."""
        samples = self.by_stage.get(stage, []) if stage else self.samples
        return statistics.mean(samples) if samples else 0.0

    def get_p95(self, stage: str = None) -> float:
        """Get 95th percentile processing time."""
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
    Thread-safe metrics collector for the monitor.

    Usage:
        metrics = MetricsCollector.instance()
        metrics.record_tick_started("invoice_scan")
        metrics.record_notification_sent("revision")
    """

    _instance: Optional["MetricsCollector"] = None
    _lock = Lock()

    def __init__(self):
        self.ticks = TickMetrics()
        self.notifications = NotificationMetrics()
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

    def reset(self):
        """Clear all counters."""
        with self._lock:
            self.ticks = TickMetrics()
            self.notifications = NotificationMetrics()
            self.timings = TimingMetrics()

    # =========================================================================
    # Tick Metrics
    # =========================================================================

    def record_tick_started(self, task: str):
        with self._lock:
            self.ticks.started += 1
            self.ticks.by_task[task]["started"] += 1

    def record_tick_completed(self, task: str, duration_ms: float = None):
        with self._lock:
            self.ticks.completed += 1
            self.ticks.by_task[task]["completed"] += 1
            self.ticks.last_completed_at[task] = datetime.utcnow()

            if duration_ms:
                self.timings.add_sample(duration_ms, f"tick.{task}")

    def record_tick_failed(self, task: str, error: str = None):
        with self._lock:
            self.ticks.failed += 1
            self.ticks.by_task[task]["failed"] += 1

    def record_tick_skipped(self, task: str):
        """Record a tick dropped because the previous one was still running."""
        with self._lock:
            self.ticks.skipped += 1
            self.ticks.by_task[task]["skipped"] += 1

    # =========================================================================
    # Notification Metrics
    # =========================================================================

    def record_notification_sent(self, kind: str):
        with self._lock:
            self.notifications.sent += 1
            self.notifications.by_kind[kind]["sent"] += 1

    def record_notification_failed(self, kind: str, error: str = None):
        with self._lock:
            self.notifications.failed += 1
            self.notifications.by_kind[kind]["failed"] += 1

    # =========================================================================
    # Timing Metrics
    # =========================================================================

    def record_processing_time(self, stage: str, duration_ms: float):
        """Record a processing time sample."""
        with self._lock:
            self.timings.add_sample(duration_ms, stage)

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
                "ticks": {
                    "started": self.ticks.started,
                    "completed": self.ticks.completed,
                    "failed": self.ticks.failed,
                    "skipped": self.ticks.skipped,
                    "by_task": {k: dict(v) for k, v in self.ticks.by_task.items()},
                    "last_completed_at": {k: v.isoformat() for k, v in self.ticks.last_completed_at.items()},
                },
                "notifications": {
                    "sent": self.notifications.sent,
                    "failed": self.notifications.failed,
                    "by_kind": {k: dict(v) for k, v in self.notifications.by_kind.items()},
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


def record_tick_started(task: str):
    get_metrics().record_tick_started(task)


def record_tick_completed(task: str, duration_ms: float = None):
    get_metrics().record_tick_completed(task, duration_ms)


def record_tick_failed(task: str, error: str = None):
    get_metrics().record_tick_failed(task, error)


def record_tick_skipped(task: str):
    get_metrics().record_tick_skipped(task)


def record_notification_sent(kind: str):
    get_metrics().record_notification_sent(kind)


def record_notification_failed(kind: str, error: str = None):
    get_metrics().record_notification_failed(kind, error)


def record_processing_time(stage: str, duration_ms: float):
    """Record a processing time sample."""
    get_metrics().record_processing_time(stage, duration_ms)
