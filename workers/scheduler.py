"""Local asyncio scheduler.

Runs the two ticks in-process without Temporal. Each task loops
tick -> sleep(interval); a failing tick is logged and the loop carries on.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from activities.reconcile import run_reconciliation_tick
from activities.scan import run_invoice_scan_tick
from core.context import MonitorContext
from core.models.results import TickSummary
from core.observability.logging import get_logger


logger = get_logger(__name__)

TickFunction = Callable[[MonitorContext], Awaitable[TickSummary]]


async def run_periodic(
    ctx: MonitorContext,
    tick: TickFunction,
    interval_seconds: float,
    name: str,
    stop_event: Optional[asyncio.Event] = None,
    max_ticks: Optional[int] = None,
) -> int:
    """Call ``tick(ctx)`` every ``interval_seconds`` until stopped.

    Args:
        ctx: Context shared with the other loops
        tick: Tick function (guarded, so overlaps are skipped)
        interval_seconds: Sleep between the end of a tick and the next one
        name: Loop name for the logs
        stop_event: Set to stop the loop after the current tick
        max_ticks: Stop after this many ticks (tests, one-shot runs)

    Returns:
        Number of ticks run
    """
    stop_event = stop_event or asyncio.Event()
    ticks = 0

    while not stop_event.is_set():
        try:
            await tick(ctx)
        except Exception as e:
            logger.error(f"{name} tick failed: {type(e).__name__}: {e}")
        ticks += 1

        if max_ticks is not None and ticks >= max_ticks:
            break
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            pass

    logger.info(f"{name} loop stopped after {ticks} ticks")
    return ticks


async def run_local(ctx: MonitorContext, stop_event: Optional[asyncio.Event] = None) -> None:
    """Run the scan and reconciliation loops side by side."""
    stop_event = stop_event or asyncio.Event()
    settings = ctx.settings
    logger.info(
        f"Local scheduler: scan every {settings.scan_interval_seconds}s, "
        f"reconcile every {settings.reconcile_interval_seconds}s"
    )
    await asyncio.gather(
        run_periodic(ctx, run_invoice_scan_tick, settings.scan_interval_seconds, "invoice_scan", stop_event),
        run_periodic(ctx, run_reconciliation_tick, settings.reconcile_interval_seconds, "reconciliation", stop_event),
    )
