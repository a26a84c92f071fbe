"""Temporal activities for the monitor.

The activities are bound methods of ``MonitorActivities`` so that every tick
runs against the worker's single ``MonitorContext`` (shared stores, guards
and HTTP sessions).
"""

from dataclasses import dataclass
from typing import Any, Dict

from temporalio import activity

from activities.reconcile import run_reconciliation_tick
from activities.scan import run_invoice_scan_tick
from core.context import MonitorContext
from core.observability.logging import with_correlation


@dataclass
class TickInput:
    """Input for a tick activity.

    Attributes:
        iteration: Loop counter of the calling workflow, for the logs
    """
    iteration: int = 0


class MonitorActivities:
    """Activity implementations bound to one context.

    Usage:
        activities = MonitorActivities(ctx)
        Worker(client, task_queue=..., activities=[
            activities.invoice_scan_tick,
            activities.reconciliation_tick,
        ])
    """

    def __init__(self, ctx: MonitorContext):
        self.ctx = ctx

    def _correlation(self) -> Dict[str, Any]:
        info = activity.info()
        return {
            "workflow_id": info.workflow_id,
            "workflow_run_id": info.workflow_run_id,
            "activity_name": info.activity_type,
            "task_queue": info.task_queue,
        }

    @activity.defn(name="invoice_scan_tick")
    async def invoice_scan_tick(self, input: TickInput) -> Dict[str, Any]:
        """Run one invoice scan tick; returns the TickSummary as a dict."""
        activity.logger.info(f"Invoice scan tick #{input.iteration}")
        with with_correlation(**self._correlation()):
            summary = await run_invoice_scan_tick(self.ctx)
        return summary.model_dump(mode="json")

    @activity.defn(name="reconciliation_tick")
    async def reconciliation_tick(self, input: TickInput) -> Dict[str, Any]:
        """Run one reconciliation tick; returns the TickSummary as a dict."""
        activity.logger.info(f"Reconciliation tick #{input.iteration}")
        with with_correlation(**self._correlation()):
            summary = await run_reconciliation_tick(self.ctx)
        return summary.model_dump(mode="json")

    def all(self) -> list:
        return [self.invoice_scan_tick, self.reconciliation_tick]
