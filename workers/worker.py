"""Worker for the KiotViet monitor.

Two modes:
- Temporal (default): polls the monitor task queue and executes
  InvoiceScanWorkflow / ReconciliationWorkflow and their tick activities.
- Local (--local): runs both loops in-process with the asyncio scheduler,
  no Temporal server needed.

Run with --once to execute a single scan and reconciliation tick and exit.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from temporalio.worker import Worker

# Add repo root to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from activities.monitor import MonitorActivities
from activities.reconcile import run_reconciliation_tick
from activities.scan import run_invoice_scan_tick
from core.config import Settings
from core.observability.logging import configure_logging, get_logger
from temporal_client import get_temporal_client
from workers.runtime import open_monitor_context
from workers.scheduler import run_local
from workflows.monitor_workflow import InvoiceScanWorkflow, ReconciliationWorkflow


logger = get_logger("workers.worker")


async def run_worker(settings: Settings, local: bool = False, once: bool = False):
    """Start the monitor.

    Args:
        settings: Runtime settings
        local: Run the asyncio scheduler instead of a Temporal worker
        once: Run one tick of each task and return

    Raises:
        Exception: If connection to KiotViet, Lark or Temporal fails
    """
    async with open_monitor_context(settings) as ctx:
        if once:
            for summary in (await run_invoice_scan_tick(ctx), await run_reconciliation_tick(ctx)):
                logger.info(f"{summary.task}: {summary.model_dump_json()}")
            return

        if local:
            logger.info("Running in LOCAL mode (asyncio scheduler)")
            await run_local(ctx)
            return

        client = await get_temporal_client(settings)
        logger.info(f"Connected to Temporal: {client.namespace}")

        activities = MonitorActivities(ctx)
        worker = Worker(
            client,
            task_queue=settings.temporal_task_queue,
            workflows=[InvoiceScanWorkflow, ReconciliationWorkflow],
            activities=activities.all(),
            # One tick at a time per worker; the guards skip any overlap.
            max_concurrent_activities=2,
        )
        logger.info(f"Worker polling task queue '{settings.temporal_task_queue}' (Ctrl+C to stop)")
        await worker.run()


def main():
    """Entry point for worker with CLI args."""
    parser = argparse.ArgumentParser(description="KiotViet Monitor Worker")
    parser.add_argument(
        "--local", "-l",
        action="store_true",
        help="Run the ticks with the in-process scheduler instead of Temporal",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run one scan tick and one reconciliation tick, then exit",
    )
    args = parser.parse_args()

    settings = Settings.from_env()
    configure_logging(level=settings.logging_level, json_format=settings.log_json)

    try:
        asyncio.run(run_worker(settings, local=args.local, once=args.once))
    except KeyboardInterrupt:
        logger.info("Worker interrupted by user")


if __name__ == "__main__":
    main()
