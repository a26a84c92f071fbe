"""Tick orchestration and the Temporal activities that wrap it."""

from activities.common import dispatch, run_guarded
from activities.reconcile import refresh_order_archive, run_reconciliation_tick
from activities.scan import run_invoice_scan_tick
from activities.monitor import MonitorActivities, TickInput

__all__ = [
    # Ticks
    "run_invoice_scan_tick",
    "run_reconciliation_tick",
    "refresh_order_archive",
    "run_guarded",
    "dispatch",
    # Temporal activities
    "MonitorActivities",
    "TickInput",
]
