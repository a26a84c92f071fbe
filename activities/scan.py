"""Real-time invoice scan tick.

One tick: load the sent-log and status snapshot, fetch recently modified
invoices, compute revision/cancellation events, send them, then persist the
snapshot, the sent-log and the fetched invoices once at the end.
"""

from datetime import timedelta

from activities.common import dispatch, run_guarded
from core.context import SCAN_TASK, MonitorContext
from core.models.results import TickSummary
from core.observability.logging import get_logger, with_correlation


logger = get_logger(__name__)


async def run_invoice_scan_tick(ctx: MonitorContext) -> TickSummary:
    """Run one guarded scan tick against ``ctx``."""
    return await run_guarded(ctx, SCAN_TASK, _scan)


async def _scan(ctx: MonitorContext) -> TickSummary:
    now = ctx.now()
    sent_log = ctx.tracking.load_sent_log(now)
    snapshot = ctx.tracking.load_status_snapshot()

    since = ctx.today() - timedelta(days=ctx.settings.invoice_lookback_days)
    invoices = await ctx.kiotviet.get_recent_invoices(since)

    result = ctx.scanner.scan(invoices, snapshot, sent_log)
    logger.info(
        f"Scanned {len(invoices)} invoices: "
        f"{len(result.revision_events)} revisions, {len(result.cancellation_events)} cancellations"
    )

    sent = failed = 0

    for event in result.revision_events:
        invoice = event.invoice
        with with_correlation(invoice_code=invoice.code):
            ok = await dispatch(
                "revision",
                lambda: ctx.notifier.send_invoice_revision_report(event),
                f"invoice {invoice.code}",
            )
        if ok:
            # Only successful sends are recorded; a failed one is retried next tick.
            sent_log.record(invoice.id, invoice.code, ctx.now())
            sent += 1
        else:
            failed += 1

    for event in result.cancellation_events:
        invoice = event.invoice
        with with_correlation(invoice_code=invoice.code):
            ok = await dispatch(
                "cancellation",
                lambda: ctx.notifier.send_invoice_cancellation_report(event),
                f"invoice {invoice.code}",
            )
        if ok:
            sent += 1
        else:
            failed += 1

    ctx.tracking.save_status_snapshot(result.snapshot)
    ctx.tracking.save_sent_log(sent_log)
    ctx.tracking.save_latest_invoices(invoices, now)

    return TickSummary(
        task=SCAN_TASK,
        fetched_invoices=len(invoices),
        revision_events=len(result.revision_events),
        cancellation_events=len(result.cancellation_events),
        notifications_sent=sent,
        notifications_failed=failed,
    )
