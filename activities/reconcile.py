"""Periodic reconciliation tick.

One tick:
1. Refresh the order archive for the window (today always, past days once)
2. Load archived orders and keep the valid statuses
3. Fetch recently modified invoices
4. Reconcile orders with their original invoices and revisions with originals
5. Send every pair whose differences were not reported yet (failures are
   per item and retried next tick)
6. Optionally report new/updated orders, then save ``lastOrders.json``
"""

from datetime import timedelta

from activities.common import dispatch, run_guarded
from core.context import RECONCILE_TASK, MonitorContext
from core.models.results import TickSummary
from core.observability.logging import get_logger, with_correlation
from reconciliation.changes import detect_order_changes
from reconciliation.engine import (
    filter_valid_orders,
    invoice_version_key,
    order_invoice_key,
    reconcile_invoice_versions,
    reconcile_orders_with_invoices,
)


logger = get_logger(__name__)


async def run_reconciliation_tick(ctx: MonitorContext) -> TickSummary:
    """Run one guarded reconciliation tick against ``ctx``."""
    return await run_guarded(ctx, RECONCILE_TASK, _reconcile)


async def refresh_order_archive(ctx: MonitorContext) -> int:
    """Fetch the window days that need it; returns the number of days fetched."""
    today = ctx.today()
    refreshed = 0
    for day in ctx.archive.window_days(today):
        if not ctx.archive.needs_refresh(day, today):
            continue
        if refreshed:
            await ctx.kiotviet.pause_between_days()
        fetched = await ctx.kiotviet.get_orders_for_day(day)
        valid = filter_valid_orders(fetched, ctx.valid_order_statuses)
        ctx.archive.store_day(day, valid, original_count=len(fetched))
        refreshed += 1
    return refreshed


async def _send_pairs(ctx, report_log, kind, pairs, key_fn, send_fn, describe, correlation):
    """Send pairs not yet in ``report_log``; record each one that went out."""
    outcomes = []
    skipped = 0
    for pair in pairs:
        key = key_fn(pair)
        if report_log.contains(key):
            skipped += 1
            continue
        with with_correlation(**correlation(pair)):
            ok = await dispatch(kind, lambda: send_fn(pair), describe(pair))
        if ok:
            report_log.record(key, kind, ctx.now())
        outcomes.append(ok)
    if skipped:
        logger.debug(f"{skipped} {kind} pairs already reported with the same differences")
    return outcomes


async def _reconcile(ctx: MonitorContext) -> TickSummary:
    today = ctx.today()
    report_log = ctx.tracking.load_report_log(ctx.now())

    refreshed = await refresh_order_archive(ctx)
    logger.info(f"Order archive refreshed ({refreshed} days fetched)")

    orders = filter_valid_orders(ctx.archive.load_all(today), ctx.valid_order_statuses)

    since = today - timedelta(days=ctx.settings.invoice_lookback_days)
    invoices = await ctx.kiotviet.get_recent_invoices(since)
    logger.info(f"Reconciling {len(orders)} orders against {len(invoices)} invoices")

    order_pairs = reconcile_orders_with_invoices(orders, invoices)
    version_pairs = reconcile_invoice_versions(invoices)

    outcomes = []
    try:
        outcomes += await _send_pairs(
            ctx, report_log, "order_invoice", order_pairs,
            order_invoice_key,
            ctx.notifier.send_order_invoice_comparison_report,
            lambda p: f"order {p.order.code} / invoice {p.invoice.code}",
            lambda p: {"order_code": p.order.code, "invoice_code": p.invoice.code},
        )
        outcomes += await _send_pairs(
            ctx, report_log, "invoice_version", version_pairs,
            invoice_version_key,
            ctx.notifier.send_invoice_version_comparison_report,
            lambda p: f"invoice {p.original_invoice.code} / revision {p.revised_invoice.code}",
            lambda p: {"invoice_code": p.revised_invoice.code},
        )
    finally:
        ctx.tracking.save_report_log(report_log)

    changes = []
    if ctx.settings.notify_order_changes:
        changes = detect_order_changes(orders, ctx.archive.load_latest())
        for order, change_type in changes:
            with with_correlation(order_code=order.code):
                outcomes.append(await dispatch(
                    "order_change",
                    lambda: ctx.notifier.send_order_change_report(order, change_type),
                    f"{change_type} order {order.code}",
                ))

    ctx.archive.save_latest(orders)

    sent = sum(1 for ok in outcomes if ok)
    failed = len(outcomes) - sent

    return TickSummary(
        task=RECONCILE_TASK,
        fetched_orders=len(orders),
        fetched_invoices=len(invoices),
        order_invoice_pairs=len(order_pairs),
        invoice_version_pairs=len(version_pairs),
        order_changes=len(changes),
        notifications_sent=sent,
        notifications_failed=failed,
    )
