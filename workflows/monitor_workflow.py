"""
Monitor Workflows

Two long-running loops, one per periodic task:

    InvoiceScanWorkflow     invoice_scan_tick  -> sleep(scan interval) -> ...
    ReconciliationWorkflow  reconciliation_tick -> sleep(reconcile interval) -> ...

Only one tick activity is in flight per workflow. A failed tick is logged and
the loop carries on at the next interval. History is bounded with
continue-as-new.
"""

from dataclasses import dataclass
from datetime import timedelta

from temporalio import workflow
from temporalio.common import RetryPolicy
from temporalio.exceptions import ActivityError

with workflow.unsafe.imports_passed_through():
    from activities.monitor import TickInput


TASK_QUEUE_MONITOR = "kiotviet-monitor"

SCAN_WORKFLOW_ID = "kiotviet-invoice-scan"
RECONCILE_WORKFLOW_ID = "kiotviet-reconciliation"


# =============================================================================
# Workflow Input
# =============================================================================

@dataclass
class MonitorWorkflowInput:
    """Input for a monitor loop.

    Attributes:
        interval_seconds: Sleep between the end of one tick and the next
        iterations_per_run: Ticks before continue-as-new
        iteration: Global tick counter carried across runs
        tick_timeout_seconds: start_to_close timeout of one tick
    """
    interval_seconds: int = 15
    iterations_per_run: int = 500
    iteration: int = 0
    tick_timeout_seconds: int = 300


# One attempt per tick: the next interval is the retry.
TICK_RETRY_POLICY = RetryPolicy(maximum_attempts=1)


async def _run_loop(activity_name: str, input: MonitorWorkflowInput) -> None:
    iteration = input.iteration
    for _ in range(input.iterations_per_run):
        iteration += 1
        try:
            summary = await workflow.execute_activity(
                activity_name,
                TickInput(iteration=iteration),
                start_to_close_timeout=timedelta(seconds=input.tick_timeout_seconds),
                retry_policy=TICK_RETRY_POLICY,
                result_type=dict,
            )
            if summary.get("skipped"):
                workflow.logger.warning(f"{activity_name} #{iteration} skipped (previous tick still running)")
            else:
                workflow.logger.info(
                    f"{activity_name} #{iteration}: "
                    f"{summary.get('notifications_sent', 0)} sent, "
                    f"{summary.get('notifications_failed', 0)} failed"
                )
        except ActivityError as e:
            workflow.logger.error(f"{activity_name} #{iteration} failed: {e.cause or e}")

        await workflow.sleep(timedelta(seconds=input.interval_seconds))

    workflow.continue_as_new(MonitorWorkflowInput(
        interval_seconds=input.interval_seconds,
        iterations_per_run=input.iterations_per_run,
        iteration=iteration,
        tick_timeout_seconds=input.tick_timeout_seconds,
    ))


# =============================================================================
# Workflows
# =============================================================================

@workflow.defn
class InvoiceScanWorkflow:
    """Real-time revision/cancellation scanner loop."""

    @workflow.run
    async def run(self, input: MonitorWorkflowInput) -> None:
        workflow.logger.info(
            f"Starting invoice scan loop at tick {input.iteration} "
            f"(every {input.interval_seconds}s)"
        )
        await _run_loop("invoice_scan_tick", input)


@workflow.defn
class ReconciliationWorkflow:
    """Periodic order/invoice and invoice version reconciliation loop."""

    @workflow.run
    async def run(self, input: MonitorWorkflowInput) -> None:
        workflow.logger.info(
            f"Starting reconciliation loop at tick {input.iteration} "
            f"(every {input.interval_seconds}s)"
        )
        await _run_loop("reconciliation_tick", input)
