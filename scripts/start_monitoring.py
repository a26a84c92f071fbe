"""Start the monitor workflows on Temporal.

Starts InvoiceScanWorkflow and ReconciliationWorkflow with fixed workflow
ids, so running the script twice does not start duplicate loops.
"""

import argparse
import asyncio
import sys
from pathlib import Path
import logging

# Add repo root to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from temporalio.common import WorkflowIDConflictPolicy

from core.config import Settings
from temporal_client import get_temporal_client
from workflows.monitor_workflow import (
    InvoiceScanWorkflow,
    MonitorWorkflowInput,
    RECONCILE_WORKFLOW_ID,
    ReconciliationWorkflow,
    SCAN_WORKFLOW_ID,
)


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


async def start_monitoring(settings: Settings, scan: bool = True, reconcile: bool = True):
    """Start (or attach to) the monitor workflows.

    Returns:
        dict: workflow id -> run id
    """
    client = await get_temporal_client(settings)
    logger.info(f"Connected to Temporal: {client.namespace}")

    to_start = []
    if scan:
        to_start.append((InvoiceScanWorkflow.run, SCAN_WORKFLOW_ID, settings.scan_interval_seconds))
    if reconcile:
        to_start.append((ReconciliationWorkflow.run, RECONCILE_WORKFLOW_ID, settings.reconcile_interval_seconds))

    started = {}
    for run, workflow_id, interval in to_start:
        handle = await client.start_workflow(
            run,
            MonitorWorkflowInput(interval_seconds=interval),
            id=workflow_id,
            task_queue=settings.temporal_task_queue,
            id_conflict_policy=WorkflowIDConflictPolicy.USE_EXISTING,
        )
        logger.info(f"Workflow {workflow_id} running (run id {handle.result_run_id}, every {interval}s)")
        started[workflow_id] = handle.result_run_id

    return started


def main():
    parser = argparse.ArgumentParser(description="Start the KiotViet monitor workflows")
    parser.add_argument("--scan-only", action="store_true", help="Start only the invoice scan loop")
    parser.add_argument("--reconcile-only", action="store_true", help="Start only the reconciliation loop")
    args = parser.parse_args()

    if args.scan_only and args.reconcile_only:
        parser.error("--scan-only and --reconcile-only are mutually exclusive")

    settings = Settings.from_env()
    try:
        asyncio.run(start_monitoring(
            settings,
            scan=not args.reconcile_only,
            reconcile=not args.scan_only,
        ))
    except Exception as e:
        logger.error(f"Failed to start monitoring: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
