"""Lark bot notifier.

Sends interactive cards to one group chat through the Lark open API:
a tenant access token from ``/auth/v3/tenant_access_token/internal``, then
``/message/v4/send`` with ``chat_id``.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import aiohttp

from connectors.base import Notifier
from connectors.lark import cards
from core.models.canonical import Order
from core.models.results import (
    CancellationEvent,
    ReconciliationPair,
    RevisionEvent,
    VersionReconciliationPair,
)
from core.observability.logging import get_logger


logger = get_logger(__name__)


class LarkApiError(Exception):
    """Lark returned an HTTP error or a non-zero ``code``."""
    def __init__(self, message: str, status_code: int = 0, code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


@dataclass
class LarkConfig:
    """Configuration for the Lark bot."""
    app_id: str
    app_secret: str
    chat_id: str
    base_url: str = "https://open.larksuite.com/open-apis"
    timeout_seconds: int = 30


class LarkNotifier(Notifier):
    """Notifier that posts cards to a Lark chat.

    Usage:
        notifier = LarkNotifier(LarkConfig(app_id, app_secret, chat_id))
        await notifier.send_invoice_revision_report(event)
        await notifier.close()
    """

    def __init__(self, config: LarkConfig, session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self._session = session
        self._owns_session = session is None
        self._token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        if self._session and self._owns_session:
            await self._session.close()
        self._session = None

    async def _post(self, path: str, payload: Dict[str, Any], token: Optional[str] = None) -> Dict[str, Any]:
        session = await self._get_session()
        headers = {"Content-Type": "application/json; charset=utf-8"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            async with session.post(f"{self.config.base_url}{path}", json=payload, headers=headers) as response:
                if response.status >= 400:
                    error_text = await response.text()
                    raise LarkApiError(
                        f"Lark HTTP {response.status} on {path}: {error_text}",
                        status_code=response.status,
                    )
                body = await response.json(content_type=None) or {}
        except aiohttp.ClientError as e:
            raise LarkApiError(f"Lark request to {path} failed: {e}") from e

        code = body.get("code", 0)
        if code != 0:
            raise LarkApiError(
                f"Lark error {code} on {path}: {body.get('msg', '')}",
                status_code=200,
                code=code,
            )
        return body

    async def get_tenant_token(self) -> str:
        """Cached tenant access token, refreshed five minutes before expiry."""
        if self._token and self._token_expires_at and datetime.utcnow() < self._token_expires_at:
            return self._token

        body = await self._post(
            "/auth/v3/tenant_access_token/internal",
            {"app_id": self.config.app_id, "app_secret": self.config.app_secret},
        )
        token = body.get("tenant_access_token")
        if not token:
            raise LarkApiError("Lark token response has no tenant_access_token")

        expires_in = int(body.get("expire", 7200))
        self._token = token
        self._token_expires_at = datetime.utcnow() + timedelta(seconds=expires_in) - timedelta(minutes=5)
        return token

    async def send_card(self, card: Dict[str, Any]) -> Dict[str, Any]:
        token = await self.get_tenant_token()
        body = await self._post(
            "/message/v4/send",
            {"chat_id": self.config.chat_id, "msg_type": "interactive", "card": card},
            token=token,
        )
        logger.debug(f"Lark card sent: {card['header']['title']['content']}")
        return body

    # =========================================================================
    # Notifier
    # =========================================================================

    async def send_order_invoice_comparison_report(self, pair: ReconciliationPair) -> None:
        await self.send_card(cards.order_invoice_comparison_card(pair))

    async def send_invoice_version_comparison_report(self, pair: VersionReconciliationPair) -> None:
        await self.send_card(cards.invoice_version_comparison_card(pair))

    async def send_invoice_revision_report(self, event: RevisionEvent) -> None:
        await self.send_card(cards.invoice_revision_card(event))

    async def send_invoice_cancellation_report(self, event: CancellationEvent) -> None:
        await self.send_card(cards.invoice_cancellation_card(event))

    async def send_order_change_report(self, order: Order, change_type: str) -> None:
        await self.send_card(cards.order_change_card(order, change_type))
