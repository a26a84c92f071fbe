"""Shared tick plumbing: guard, correlation, metrics and per-item dispatch."""

import time
from typing import Awaitable, Callable

from core.context import MonitorContext
from core.models.results import TickSummary
from core.observability.logging import (
    get_logger,
    log_tick_complete,
    log_tick_error,
    log_tick_start,
    with_correlation,
)
from core.observability.metrics import (
    record_notification_failed,
    record_notification_sent,
    record_tick_completed,
    record_tick_failed,
    record_tick_skipped,
    record_tick_started,
)


logger = get_logger(__name__)


async def run_guarded(
    ctx: MonitorContext,
    task: str,
    body: Callable[[MonitorContext], Awaitable[TickSummary]],
) -> TickSummary:
    """Run one tick of ``task`` unless the previous one is still running.

    A skipped tick returns ``TickSummary(skipped=True)``. Exceptions from
    ``body`` are logged, counted and re-raised.
    """
    guard = ctx.guard(task)
    if not guard.try_acquire():
        logger.warning(f"Previous {task} tick still running, skipping")
        record_tick_skipped(task)
        return TickSummary(task=task, skipped=True)

    tick_id = f"{task}-{ctx.now():%Y%m%d-%H%M%S}"
    start = time.monotonic()
    try:
        with with_correlation(tick_id=tick_id, scanner=task):
            log_tick_start(task)
            record_tick_started(task)
            try:
                summary = await body(ctx)
            except Exception as e:
                record_tick_failed(task, str(e))
                log_tick_error(task, f"{type(e).__name__}: {e}")
                raise

            summary.duration_ms = round((time.monotonic() - start) * 1000, 1)
            record_tick_completed(task, summary.duration_ms)
            log_tick_complete(task, summary.duration_ms, **summary.model_dump(exclude={"task", "duration_ms"}))
    finally:
        guard.release()

    ctx.last_summaries[task] = summary
    return summary


async def dispatch(kind: str, send: Callable[[], Awaitable[None]], description: str) -> bool:
    """Send one report; a failure is logged and counted, never raised.

    Returns:
        True if the report went out
    """
    try:
        await send()
    except Exception as e:
        logger.error(f"Failed to send {kind} report for {description}: {type(e).__name__}: {e}")
        record_notification_failed(kind, str(e))
        return False

    logger.info(f"Sent {kind} report for {description}")
    record_notification_sent(kind)
    return True
