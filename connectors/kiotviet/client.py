"""KiotViet HTTP Client.

Low-level HTTP client for the KiotViet public API.
Handles authentication headers, pagination, retries, and error handling.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import aiohttp

from connectors.kiotviet.auth import KiotVietAuthProvider
from connectors.kiotviet.errors import (
    KiotVietApiError,
    KiotVietAuthError,
    KiotVietRateLimitError,
)
from core.models.canonical import Invoice, Order, parse_invoices, parse_orders
from core.observability.logging import get_logger


logger = get_logger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_retries: int = 3
    base_delay: float = 1.0  # seconds
    max_delay: float = 60.0  # seconds
    exponential_base: float = 2.0
    retry_on_status: Tuple[int, ...] = (429, 500, 502, 503, 504)

    def get_delay(self, attempt: int, retry_after: Optional[str] = None) -> float:
        """Delay before the next attempt; ``Retry-After`` wins when present."""
        if retry_after:
            try:
                return min(float(retry_after), self.max_delay)
            except ValueError:
                pass
        delay = self.base_delay * (self.exponential_base ** attempt)
        return min(delay, self.max_delay)


@dataclass
class PacingPolicy:
    """Delays between consecutive requests of one listing."""
    page_delay: float = 1.0  # seconds between pages
    day_delay: float = 0.5  # seconds between per-day order fetches


@dataclass
class KiotVietApiConfig:
    """Configuration for the KiotViet API client."""
    base_url: str = "https://public.kiotapi.com"
    shop_name: str = ""
    page_size: int = 100
    timeout_seconds: int = 30
    retry_config: RetryConfig = field(default_factory=RetryConfig)
    pacing: PacingPolicy = field(default_factory=PacingPolicy)


class KiotVietClient:
    """HTTP client for the KiotViet public API.

    Provides:
    - Authenticated API calls (``Retailer`` + bearer token)
    - ``pageSize``/``currentItem`` pagination
    - Error handling and retries

    Usage:
        async with KiotVietClient(auth_provider, api_config) as client:
            invoices = await client.get_recent_invoices(date.today())
    """

    def __init__(
        self,
        auth_provider: KiotVietAuthProvider,
        api_config: KiotVietApiConfig,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.auth_provider = auth_provider
        self.api_config = api_config
        self._sleep = sleep
        self._session: Optional[aiohttp.ClientSession] = None

    async def connect(self) -> None:
        """Open the HTTP session and authenticate."""
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.api_config.timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
        await self.auth_provider.ensure_valid_token(self._session)

    async def disconnect(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "KiotVietClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    def _get_headers(self) -> Dict[str, str]:
        auth_header = self.auth_provider.get_authorization_header()
        if not auth_header:
            raise KiotVietAuthError("Not authenticated")
        return {
            "Retailer": self.api_config.shop_name,
            "Authorization": auth_header,
            "Accept": "application/json",
        }

    def _build_url(self, endpoint: str) -> str:
        return f"{self.api_config.base_url.rstrip('/')}/{endpoint.lstrip('/')}"

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Make an authenticated API request with automatic retries.

        Raises:
            KiotVietAuthError: Authentication failed
            KiotVietRateLimitError: Rate limit exceeded after all retries
            KiotVietApiError: Other API errors
        """
        if not self._session:
            raise KiotVietApiError("Not connected. Call connect() first.")

        url = self._build_url(endpoint)
        retry_config = self.api_config.retry_config
        query = {k: _query_value(v) for k, v in (params or {}).items() if v is not None}
        last_error: Optional[Exception] = None

        for attempt in range(retry_config.max_retries + 1):
            await self.auth_provider.ensure_valid_token(self._session)
            try:
                async with self._session.request(
                    method,
                    url,
                    headers=self._get_headers(),
                    params=query,
                ) as response:
                    if response.status < 400:
                        if response.status == 204:
                            return {}
                        return await response.json(content_type=None) or {}

                    response_text = await response.text()

                    if response.status in (401, 403):
                        # Refresh the token once
                        if attempt == 0:
                            logger.warning("Got 401/403, refreshing KiotViet token...")
                            self.auth_provider.invalidate()
                            continue
                        raise KiotVietAuthError(
                            f"Authentication failed: {response_text}",
                            response.status,
                            response_text,
                        )

                    if response.status in retry_config.retry_on_status:
                        retry_after = response.headers.get("Retry-After")
                        if attempt < retry_config.max_retries:
                            delay = retry_config.get_delay(attempt, retry_after)
                            logger.warning(
                                f"Request failed with {response.status}, "
                                f"retrying in {delay:.1f}s (attempt {attempt + 1}/{retry_config.max_retries})"
                            )
                            await self._sleep(delay)
                            continue
                        if response.status == 429:
                            raise KiotVietRateLimitError(
                                "Rate limit exceeded",
                                retry_config.get_delay(attempt, retry_after),
                            )

                    raise KiotVietApiError(
                        f"API error {response.status}: {response_text}",
                        response.status,
                        response_text,
                    )

            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_error = e
                if attempt < retry_config.max_retries:
                    delay = retry_config.get_delay(attempt)
                    logger.warning(
                        f"Request failed with {type(e).__name__}: {e}, "
                        f"retrying in {delay:.1f}s"
                    )
                    await self._sleep(delay)
                    continue
                raise KiotVietApiError(
                    f"Request failed after {retry_config.max_retries} retries: {e}"
                ) from e

        raise KiotVietApiError(f"Request failed: {last_error}")

    async def list_all(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """List all records of an endpoint, page by page.

        Stops at the first page shorter than ``page_size``.
        """
        page_size = self.api_config.page_size
        all_results: List[Dict[str, Any]] = []
        current_item = 0

        while True:
            page_params = dict(params or {})
            page_params.update({"pageSize": page_size, "currentItem": current_item})

            response = await self._request("GET", endpoint, params=page_params)
            records = response.get("data") or []
            all_results.extend(records)
            logger.debug(f"{endpoint}: retrieved {len(records)} records, total {len(all_results)}")

            if len(records) < page_size:
                break
            current_item += page_size
            await self._sleep(self.api_config.pacing.page_delay)

        return all_results

    # =========================================================================
    # Documents
    # =========================================================================

    async def get_recent_invoices(self, since: date) -> List[Invoice]:
        """Invoices modified on or after ``since``, newest first."""
        raw = await self.list_all("invoices", {
            "lastModifiedFrom": since.isoformat(),
            "orderBy": "modifiedDate",
            "orderDirection": "DESC",
            "includePayment": True,
            "includeInvoiceDelivery": True,
        })
        logger.info(f"Fetched {len(raw)} invoices modified since {since.isoformat()}")
        return parse_invoices(raw)

    async def get_orders_for_day(self, day: date) -> List[Order]:
        """Orders created on ``day``."""
        raw = await self.list_all("orders", {
            "fromCreatedDate": datetime.combine(day, time.min).isoformat(),
            "toCreatedDate": datetime.combine(day, time(23, 59, 59)).isoformat(),
            "orderBy": "createdDate",
            "orderDirection": "DESC",
            "includeOrderDelivery": True,
        })
        logger.info(f"Fetched {len(raw)} orders created on {day.isoformat()}")
        return parse_orders(raw)

    async def pause_between_days(self) -> None:
        await self._sleep(self.api_config.pacing.day_delay)


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
