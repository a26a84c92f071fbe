"""
Observability Module for the KiotViet monitor

Provides:
- Structured logging with correlation IDs (tick, invoice, workflow)
- Metrics collection (ticks, notifications, processing times)
"""

from core.observability.metrics import (
    MetricsCollector,
    get_metrics,
    record_tick_started,
    record_tick_completed,
    record_tick_failed,
    record_tick_skipped,
    record_notification_sent,
    record_notification_failed,
    record_processing_time,
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
    "record_tick_started",
    "record_tick_completed",
    "record_tick_failed",
    "record_tick_skipped",
    "record_notification_sent",
    "record_notification_failed",
    "record_processing_time",
    # Logging
    "get_logger",
    "configure_logging",
    "CorrelationContext",
    "with_correlation",
]
