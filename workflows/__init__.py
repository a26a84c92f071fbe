"""Workflow definitions module."""

from workflows.monitor_workflow import (
    InvoiceScanWorkflow,
    ReconciliationWorkflow,
    MonitorWorkflowInput,
    TASK_QUEUE_MONITOR,
    SCAN_WORKFLOW_ID,
    RECONCILE_WORKFLOW_ID,
)

__all__ = [
    "InvoiceScanWorkflow",
    "ReconciliationWorkflow",
    "MonitorWorkflowInput",
    "TASK_QUEUE_MONITOR",
    "SCAN_WORKFLOW_ID",
    "RECONCILE_WORKFLOW_ID",
]
