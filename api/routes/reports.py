"""Report endpoints: run ticks on demand and inspect monitor state."""

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from activities.reconcile import run_reconciliation_tick
from activities.scan import run_invoice_scan_tick
from connectors.kiotviet import KiotVietApiError
from core.context import MonitorContext
from core.observability.logging import get_logger
from core.observability.metrics import get_metrics


logger = get_logger(__name__)

router = APIRouter()


def get_context(request: Request) -> MonitorContext:
    ctx = getattr(request.app.state, "ctx", None)
    if ctx is None:
        raise HTTPException(status_code=503, detail="Monitor context not initialised")
    return ctx


async def _run(tick, ctx: MonitorContext):
    try:
        summary = await tick(ctx)
    except KiotVietApiError as e:
        logger.error(f"On-demand tick failed: {e}")
        raise HTTPException(status_code=502, detail=f"KiotViet request failed: {e}")

    body = summary.model_dump(mode="json")
    if summary.skipped:
        return JSONResponse(status_code=409, content=body)
    return body


@router.post("/run")
async def run_report(ctx: MonitorContext = Depends(get_context)):
    """Run one reconciliation tick now (skipped with 409 if one is running)."""
    return await _run(run_reconciliation_tick, ctx)


@router.post("/scan")
async def run_scan(ctx: MonitorContext = Depends(get_context)):
    """Run one invoice scan tick now (skipped with 409 if one is running)."""
    return await _run(run_invoice_scan_tick, ctx)


@router.get("/status")
async def report_status(ctx: MonitorContext = Depends(get_context)) -> Dict[str, Any]:
    """Data files, sent-log size, last tick summaries and metrics."""
    return {
        "tracking": ctx.tracking.status(ctx.now()),
        "order_archive": ctx.archive.status(ctx.today()),
        "ticks_running": {name: guard.busy for name, guard in ctx.guards.items()},
        "last_ticks": {
            task: summary.model_dump(mode="json")
            for task, summary in ctx.last_summaries.items()
        },
        "metrics": get_metrics().get_summary(),
    }
