"""Test the Temporal activities without a Temporal server.

Runs the monitor activities inside ``temporalio.testing.ActivityEnvironment``
and checks the workflow inputs and registration.
"""

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock

import pytest


NOW = datetime(2024, 5, 10, 10, 0, 0)


def _activities(tmp_path):
    from activities.monitor import MonitorActivities
    from core.config import Settings
    from core.context import MonitorContext

    kiotviet = AsyncMock()
    kiotviet.get_recent_invoices.return_value = []
    kiotviet.get_orders_for_day.return_value = []
    ctx = MonitorContext.create(
        Settings(data_dir=tmp_path, order_window_days=1),
        kiotviet,
        AsyncMock(),
        clock=lambda: NOW,
    )
    return MonitorActivities(ctx)


def test_scan_activity_returns_summary_dict(tmp_path):
    """The scan activity returns a JSON-ready TickSummary."""
    from temporalio.testing import ActivityEnvironment
    from activities.monitor import TickInput

    activities = _activities(tmp_path)
    async def run():
        return await ActivityEnvironment().run(activities.invoice_scan_tick, TickInput(iteration=3))

    result = asyncio.run(run())

    assert result["task"] == "invoice_scan"
    assert result["skipped"] is False
    assert isinstance(result["duration_ms"], float)


def test_reconciliation_activity_uses_shared_context(tmp_path):
    """The reconciliation activity records its summary on the context."""
    from temporalio.testing import ActivityEnvironment
    from activities.monitor import TickInput

    activities = _activities(tmp_path)
    async def run():
        return await ActivityEnvironment().run(activities.reconciliation_tick, TickInput())

    asyncio.run(run())

    assert activities.ctx.last_summaries["reconciliation"].fetched_orders == 0
    assert activities.ctx.kiotviet.get_orders_for_day.await_count == 1


def test_activity_registration():
    """The worker registers both tick activities."""
    from activities.monitor import MonitorActivities

    names = {fn.__name__ for fn in MonitorActivities(None).all()}
    assert names == {"invoice_scan_tick", "reconciliation_tick"}


def test_workflow_input_defaults():
    """Workflows tick every 15 seconds and continue-as-new periodically."""
    from workflows import InvoiceScanWorkflow, MonitorWorkflowInput, ReconciliationWorkflow

    params = MonitorWorkflowInput()
    assert params.interval_seconds == 15
    assert params.iterations_per_run > 0
    assert InvoiceScanWorkflow is not ReconciliationWorkflow


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
