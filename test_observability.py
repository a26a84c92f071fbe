"""
Observability Validation Test

This test validates the observability stack:
1. Metrics collection works (tick/notification/timing metrics)
2. Structured logging with correlation IDs works
3. The JSON and human-readable formatters carry the tick and document codes

Pass criteria: from one log line you can tell which tick, task and invoice it
belongs to.
"""

import pytest
import json
import logging
from datetime import datetime


def test_observability_imports():
    """Verify all observability modules import correctly."""
    from core.observability import (
        MetricsCollector, get_metrics,
        record_tick_started, record_tick_completed, record_tick_failed,
        record_tick_skipped, record_notification_sent, record_notification_failed,
        record_processing_time,
        get_logger, configure_logging, CorrelationContext, with_correlation,
    )
    assert MetricsCollector is not None
    assert get_metrics is not None
    assert CorrelationContext is not None


class TestMetricsCollector:
    """Test the metrics collection system."""

    def test_singleton_instance(self):
        """MetricsCollector returns same instance."""
        from core.observability.metrics import MetricsCollector
        m1 = MetricsCollector.instance()
        m2 = MetricsCollector.instance()
        assert m1 is m2

    def test_tick_metrics_tracking(self):
        """Track tick started/completed/failed/skipped counts."""
        from core.observability.metrics import MetricsCollector
        mc = MetricsCollector.instance()

        baseline = mc.get_summary()["ticks"]

        mc.record_tick_started("test_task")
        mc.record_tick_started("test_task")
        mc.record_tick_completed("test_task", duration_ms=12.5)
        mc.record_tick_failed("test_task", "boom")
        mc.record_tick_skipped("test_task")

        summary = mc.get_summary()["ticks"]
        assert summary["started"] == baseline["started"] + 2
        assert summary["completed"] == baseline["completed"] + 1
        assert summary["failed"] == baseline["failed"] + 1
        assert summary["skipped"] == baseline["skipped"] + 1
        assert summary["by_task"]["test_task"]["skipped"] >= 1
        assert "test_task" in summary["last_completed_at"]

    def test_notification_metrics_by_kind(self):
        """Track notifications per report kind."""
        from core.observability.metrics import MetricsCollector
        mc = MetricsCollector.instance()

        mc.record_notification_sent("test_kind")
        mc.record_notification_failed("test_kind", "timeout")

        by_kind = mc.get_summary()["notifications"]["by_kind"]
        assert by_kind["test_kind"]["sent"] >= 1
        assert by_kind["test_kind"]["failed"] >= 1

    def test_timing_percentile_calculation(self):
        """Calculate p95 timing correctly."""
        from core.observability.metrics import MetricsCollector
        mc = MetricsCollector.instance()

        # Add 100 samples: 1-100ms to a unique stage
        test_stage = f"test_stage_{datetime.now().timestamp()}"
        for i in range(1, 101):
            mc.record_processing_time(test_stage, i)

        stats = mc.get_timing_stats(test_stage)

        assert 49 <= stats["average_ms"] <= 52
        assert 93 <= stats["p95_ms"] <= 97

    def test_summary_is_json_serializable(self):
        """The status endpoint returns the summary as JSON."""
        from core.observability.metrics import get_metrics
        get_metrics().record_tick_completed("json_task", duration_ms=5)
        json.dumps(get_metrics().get_summary())


class TestCorrelatedLogging:
    """Test structured logging with correlation IDs."""

    def test_correlation_context_creation(self):
        """Create correlation context with all fields."""
        from core.observability.logging import CorrelationContext

        ctx = CorrelationContext(
            tick_id="invoice_scan-20240501-101500",
            scanner="invoice_scan",
            invoice_code="HD001.01",
            workflow_id="wf-abc",
            activity_name="invoice_scan_tick",
        )

        assert ctx.tick_id == "invoice_scan-20240501-101500"
        assert ctx.invoice_code == "HD001.01"
        assert ctx.to_dict()["scanner"] == "invoice_scan"
        assert "order_code" not in ctx.to_dict()

    def test_context_var_isolation(self):
        """Nested correlation contexts merge and restore."""
        from core.observability.logging import get_correlation_context, with_correlation

        assert get_correlation_context().invoice_code is None

        with with_correlation(tick_id="tick-1"):
            with with_correlation(invoice_code="HD001.01"):
                inner = get_correlation_context()
                assert inner.tick_id == "tick-1"
                assert inner.invoice_code == "HD001.01"
            assert get_correlation_context().invoice_code is None

        assert get_correlation_context().tick_id is None

    def test_correlation_restored_after_error(self):
        """with_correlation is the only setter; it resets even when the body raises."""
        from core.observability import logging as obs_logging
        from core.observability.logging import get_correlation_context, with_correlation

        with pytest.raises(RuntimeError):
            with with_correlation(tick_id="tick-err", invoice_code="HD009.01"):
                raise RuntimeError("send failed")

        assert get_correlation_context().tick_id is None
        assert get_correlation_context().invoice_code is None
        assert not hasattr(obs_logging, "set_correlation_context")

    def test_structured_formatter_json_output(self):
        """StructuredFormatter outputs valid JSON."""
        from core.observability.logging import StructuredFormatter, with_correlation

        formatter = StructuredFormatter()

        with with_correlation(tick_id="tick-9", invoice_code="HD002.03"):
            record = logging.LogRecord(
                name="test",
                level=logging.INFO,
                pathname="test.py",
                lineno=10,
                msg="Test message",
                args=(),
                exc_info=None,
            )
            record.extra_fields = {"duration_ms": 12}

            data = json.loads(formatter.format(record))

            assert data["message"] == "Test message"
            assert data["tick_id"] == "tick-9"
            assert data["invoice_code"] == "HD002.03"
            assert data["duration_ms"] == 12

    def test_human_readable_formatter_prefix(self):
        """Human-readable lines carry tick and document codes."""
        from core.observability.logging import HumanReadableFormatter, with_correlation

        formatter = HumanReadableFormatter()
        with with_correlation(tick_id="tick-7", order_code="DH001", invoice_code="HD001"):
            record = logging.LogRecord("test", logging.WARNING, "t.py", 1, "hello", (), None)
            line = formatter.format(record)

        assert "[tick-7/ord:DH001/inv:HD001]" in line
        assert line.endswith("hello")

    def test_correlated_logger_exception_includes_traceback(self, caplog):
        """logger.exception attaches the active exception."""
        from core.observability.logging import get_logger

        logger = get_logger("core.test_exception")
        with caplog.at_level(logging.ERROR, logger="core.test_exception"):
            try:
                raise RuntimeError("kaput")
            except RuntimeError:
                logger.exception("failed")

        record = caplog.records[-1]
        assert record.getMessage() == "failed"
        assert record.exc_info is not None
        assert record.exc_info[0] is RuntimeError


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
