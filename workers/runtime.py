"""Wiring of the production context from settings."""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from connectors.kiotviet import build_kiotviet_client
from connectors.lark import build_lark_notifier
from core.config import Settings
from core.context import MonitorContext
from core.observability.logging import configure_logging, get_logger


logger = get_logger(__name__)


@asynccontextmanager
async def open_monitor_context(settings: Optional[Settings] = None) -> AsyncIterator[MonitorContext]:
    """Connect KiotViet and Lark, yield the context, close both on exit.

    Raises:
        ValueError: If KiotViet or Lark credentials are missing
        KiotVietAuthError: If the initial token request fails
    """
    settings = settings or Settings.from_env()
    configure_logging(level=settings.logging_level, json_format=settings.log_json)

    kiotviet = build_kiotviet_client(settings)
    notifier = build_lark_notifier(settings)

    await kiotviet.connect()
    try:
        ctx = MonitorContext.create(settings, kiotviet, notifier)
        logger.info(f"Monitor context ready (data dir: {settings.data_dir})")
        yield ctx
    finally:
        await notifier.close()
        await kiotviet.disconnect()
