"""
KiotViet Client Tests

Validates, with the HTTP session faked:
1. Pagination by pageSize/currentItem until a short page
2. Retry and back-off on 429/5xx, honouring Retry-After
3. One token refresh on 401, then failure
4. Token expiry buffer and record parsing
5. Malformed records are skipped, not fatal to the fetch
"""

import asyncio
from datetime import date, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest


class FakeResponse:
    def __init__(self, status, body=None, headers=None):
        self.status = status
        self._body = body if body is not None else {}
        self.headers = headers or {}

    async def json(self, content_type=None):
        return self._body

    async def text(self):
        return str(self._body)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


def _client(responses, page_size=100, max_retries=3):
    from connectors.kiotviet import KiotVietApiConfig, KiotVietClient, RetryConfig

    auth = MagicMock()
    auth.ensure_valid_token = AsyncMock()
    auth.get_authorization_header.return_value = "Bearer token"

    sleep = AsyncMock()
    client = KiotVietClient(
        auth,
        KiotVietApiConfig(shop_name="shop", page_size=page_size, retry_config=RetryConfig(max_retries=max_retries)),
        sleep=sleep,
    )
    client._session = MagicMock()
    client._session.request.side_effect = list(responses)
    return client, auth, sleep


class TestPagination:
    """Test list_all paging."""

    def test_pages_until_short_page(self):
        """Full pages advance currentItem; a short page stops."""
        client, _, sleep = _client([
            FakeResponse(200, {"data": [{"id": 1}, {"id": 2}]}),
            FakeResponse(200, {"data": [{"id": 3}, {"id": 4}]}),
            FakeResponse(200, {"data": [{"id": 5}]}),
        ], page_size=2)

        records = asyncio.run(client.list_all("invoices", {"orderBy": "modifiedDate"}))

        assert [r["id"] for r in records] == [1, 2, 3, 4, 5]
        offsets = [call.kwargs["params"]["currentItem"] for call in client._session.request.call_args_list]
        assert offsets == ["0", "2", "4"]
        assert sleep.await_count == 2

    def test_empty_listing(self):
        """No data key means no records."""
        client, _, _ = _client([FakeResponse(200, {"total": 0})])
        assert asyncio.run(client.list_all("orders")) == []

    def test_recent_invoices_are_parsed(self):
        """Invoices come back as validated models with the query set."""
        client, _, _ = _client([FakeResponse(200, {"data": [
            {"id": 7, "code": "HD007.01", "status": 1, "total": "150000",
             "invoiceDetails": [{"productId": 3, "quantity": 2}]},
        ]})])

        invoices = asyncio.run(client.get_recent_invoices(date(2024, 5, 10)))

        assert invoices[0].code == "HD007.01"
        assert invoices[0].invoice_details[0].product_id == 3
        params = client._session.request.call_args.kwargs["params"]
        assert params["lastModifiedFrom"] == "2024-05-10"
        assert params["includePayment"] == "true"
        assert client._session.request.call_args.kwargs["headers"]["Retailer"] == "shop"

    def test_orders_for_day_range(self):
        """Orders are requested for one created day."""
        client, _, _ = _client([FakeResponse(200, {"data": []})])
        asyncio.run(client.get_orders_for_day(date(2024, 5, 9)))
        params = client._session.request.call_args.kwargs["params"]
        assert params["fromCreatedDate"] == "2024-05-09T00:00:00"
        assert params["toCreatedDate"] == "2024-05-09T23:59:59"


class TestRetries:
    """Test retry behaviour of _request."""

    def test_retry_after_is_honoured(self):
        """A 503 with Retry-After waits that long, then succeeds."""
        client, _, sleep = _client([
            FakeResponse(503, headers={"Retry-After": "2"}),
            FakeResponse(200, {"data": []}),
        ])

        assert asyncio.run(client._request("GET", "invoices")) == {"data": []}
        sleep.assert_awaited_once_with(2.0)

    def test_rate_limit_exhausted(self):
        """Persistent 429 raises KiotVietRateLimitError."""
        from connectors.kiotviet import KiotVietRateLimitError
        client, _, sleep = _client([FakeResponse(429)] * 3, max_retries=2)

        with pytest.raises(KiotVietRateLimitError):
            asyncio.run(client._request("GET", "invoices"))
        assert sleep.await_count == 2

    def test_client_error_not_retried(self):
        """A 400 fails immediately."""
        from connectors.kiotviet import KiotVietApiError
        client, _, sleep = _client([FakeResponse(400, {"message": "bad"})])

        with pytest.raises(KiotVietApiError) as exc_info:
            asyncio.run(client._request("GET", "invoices"))
        assert exc_info.value.status_code == 400
        sleep.assert_not_awaited()

    def test_unauthorized_refreshes_once(self):
        """401 invalidates the token and retries; a second 401 is fatal."""
        from connectors.kiotviet import KiotVietAuthError
        client, auth, _ = _client([FakeResponse(401), FakeResponse(200, {"data": [1]})])
        assert asyncio.run(client._request("GET", "orders")) == {"data": [1]}
        auth.invalidate.assert_called_once()

        client, _, _ = _client([FakeResponse(401), FakeResponse(401)])
        with pytest.raises(KiotVietAuthError):
            asyncio.run(client._request("GET", "orders"))

    def test_get_delay(self):
        """Exponential back-off capped at max_delay."""
        from connectors.kiotviet import RetryConfig
        config = RetryConfig(base_delay=1.0, max_delay=10.0)
        assert config.get_delay(0) == 1.0
        assert config.get_delay(2) == 4.0
        assert config.get_delay(10) == 10.0
        assert config.get_delay(0, "not-a-number") == 1.0


class TestAuth:
    """Test token handling."""

    def test_token_expiry_buffer(self):
        """A token is treated as expired five minutes early."""
        from connectors.kiotviet import KiotVietToken
        fresh = KiotVietToken(access_token="a", expires_in=3600)
        stale = KiotVietToken(
            access_token="b",
            expires_in=3600,
            obtained_at=datetime.utcnow() - timedelta(seconds=3600 - 120),
        )
        assert fresh.is_expired is False
        assert stale.is_expired is True
        assert fresh.authorization_header == "Bearer a"

    def test_build_client_requires_credentials(self):
        """Missing credentials are reported by name."""
        from connectors.kiotviet import build_kiotviet_client
        from core.config import Settings
        with pytest.raises(ValueError, match="KIOT_SHOP_NAME"):
            build_kiotviet_client(Settings(kiot_client_id="id", kiot_secret_key="secret"))


class TestRecordParsing:
    """Test validation of raw KiotViet records."""

    def test_unparseable_number_is_a_validation_error(self):
        """A non-numeric quantity fails validation instead of escaping as InvalidOperation."""
        from pydantic import ValidationError
        from core.models.canonical import Invoice

        with pytest.raises(ValidationError):
            Invoice.model_validate({"id": 1, "code": "HD001", "invoiceDetails": [{"productId": 1, "quantity": "n/a"}]})

    def test_thousands_separator(self):
        """Numbers with comma separators parse as decimals."""
        from decimal import Decimal
        from core.models.canonical import Invoice

        invoice = Invoice.model_validate({"id": 1, "total": "1,250,000"})
        assert invoice.total == Decimal("1250000")

    def test_invalid_record_is_skipped(self):
        """One bad record is dropped; the rest of the page is kept."""
        from core.models.canonical import parse_invoices, parse_orders

        invoices = parse_invoices([
            {"id": 1, "code": "HD001", "invoiceDetails": [{"productId": 1, "quantity": "n/a"}]},
            {"id": 2, "code": "HD002", "invoiceDetails": [{"productId": 1, "quantity": "2"}]},
        ])
        orders = parse_orders([{"code": "DH001"}, {"id": 5, "code": "DH005"}])

        assert [i.code for i in invoices] == ["HD002"]
        assert [o.id for o in orders] == [5]

    def test_client_skips_invalid_invoice(self):
        """A malformed invoice in a page does not fail the fetch."""
        client, _, _ = _client([FakeResponse(200, {"data": [
            {"id": 7, "code": "HD007", "total": "n/a"},
            {"id": 8, "code": "HD008", "total": "100"},
        ]})])

        invoices = asyncio.run(client.get_recent_invoices(date(2024, 5, 10)))

        assert [i.id for i in invoices] == [8]


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
