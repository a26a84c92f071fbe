"""FastAPI server for the KiotViet monitor.

Main entry point for the API server. The app either receives a ready
``MonitorContext`` (tests, embedding) or builds one from the environment on
startup, optionally running the local scheduler alongside.
"""

import argparse
import asyncio
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import health, reports
from core.config import Settings
from core.context import MonitorContext
from core.observability.logging import get_logger


logger = get_logger(__name__)


def create_app(
    ctx: Optional[MonitorContext] = None,
    settings: Optional[Settings] = None,
    run_scheduler: bool = False,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        ctx: Pre-built context; when None one is opened from settings at startup
        settings: Settings for the context built at startup
        run_scheduler: Also run the scan/reconcile loops in the server process
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("KiotViet monitor API starting up...")
        async with AsyncExitStack() as stack:
            if app.state.ctx is None:
                from workers.runtime import open_monitor_context
                app.state.ctx = await stack.enter_async_context(open_monitor_context(settings))

            scheduler_task = None
            stop_event = asyncio.Event()
            if run_scheduler:
                from workers.scheduler import run_local
                scheduler_task = asyncio.create_task(run_local(app.state.ctx, stop_event))

            yield

            if scheduler_task is not None:
                stop_event.set()
                await scheduler_task
        logger.info("KiotViet monitor API shutting down...")

    app = FastAPI(
        title="KiotViet Monitor API",
        description="Order/invoice reconciliation and invoice revision monitoring for KiotViet",
        version=health.API_VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.ctx = ctx

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(reports.router, prefix="/reports", tags=["Reports"])

    return app


def main():
    parser = argparse.ArgumentParser(description="KiotViet Monitor API server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument(
        "--with-scheduler",
        action="store_true",
        help="Run the scan and reconciliation loops in the server process",
    )
    args = parser.parse_args()

    import uvicorn
    uvicorn.run(create_app(run_scheduler=args.with_scheduler), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
