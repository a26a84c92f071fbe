"""Core canonical data models - KiotViet records as seen by the reconciler.

These models validate the raw KiotViet JSON at the fetch boundary
(camelCase aliases, unknown fields ignored) so that the differ and
reconcilers only ever handle well-formed records.

Status codes are kept as opaque integers here; their meaning is
entity-scoped and configured per call site (see core.config).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, List

from pydantic import BaseModel, Field, ConfigDict, ValidationError
from pydantic.functional_validators import BeforeValidator
from typing_extensions import Annotated

from core.observability.logging import get_logger


logger = get_logger(__name__)


# =============================================================================
# Value Parsers (handle the loose number/date formats KiotViet returns)
# =============================================================================

def _parse_decimal(value):
    """Parse decimal from ints, floats or numeric strings (commas allowed)."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        s = value.strip()
        if s == "":
            return None
        try:
            return Decimal(s.replace(",", ""))
        except InvalidOperation:
            raise ValueError(f"not a number: {value!r}")
    return value


def _parse_int(value):
    """Parse integer from various formats."""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        s = value.strip().replace(",", "")
        if s == "":
            return None
        return int(float(s))
    return value


def _parse_datetime(value):
    """Parse KiotViet timestamps ("2024-05-01T10:22:31.447" with optional Z)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        s = value.strip()
        if s == "":
            return None
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        return datetime.fromisoformat(s)
    return value


# Annotated types for automatic parsing
DecimalValue = Annotated[Decimal, BeforeValidator(_parse_decimal)]
IntValue = Annotated[int, BeforeValidator(_parse_int)]
DateTimeValue = Annotated[datetime, BeforeValidator(_parse_datetime)]


# =============================================================================
# Base Model
# =============================================================================

class CanonicalBase(BaseModel):
    """Base model for all KiotViet records."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# =============================================================================
# Line Items
# =============================================================================

class LineItem(CanonicalBase):
    """A product line on an order or invoice.

    ``product_id`` is the diffing key; items without it are left out of
    every comparison.
    """
    product_id: Optional[IntValue] = Field(None, alias="productId")
    product_code: Optional[str] = Field(None, alias="productCode")
    product_name: Optional[str] = Field(None, alias="productName")
    quantity: Optional[DecimalValue] = None
    price: Optional[DecimalValue] = None
    discount: Optional[DecimalValue] = None
    note: Optional[str] = None


# =============================================================================
# Documents
# =============================================================================

class DocumentBase(CanonicalBase):
    """Fields shared by orders and invoices."""
    id: IntValue
    code: Optional[str] = None
    status: Optional[IntValue] = None
    status_value: Optional[str] = Field(None, alias="statusValue")
    total: Optional[DecimalValue] = None
    branch_id: Optional[IntValue] = Field(None, alias="branchId")
    branch_name: Optional[str] = Field(None, alias="branchName")
    customer_code: Optional[str] = Field(None, alias="customerCode")
    customer_name: Optional[str] = Field(None, alias="customerName")
    sold_by_name: Optional[str] = Field(None, alias="soldByName")
    description: Optional[str] = None
    created_date: Optional[DateTimeValue] = Field(None, alias="createdDate")
    modified_date: Optional[DateTimeValue] = Field(None, alias="modifiedDate")


class Order(DocumentBase):
    """Customer order (KiotViet /orders)."""
    order_details: Optional[List[LineItem]] = Field(None, alias="orderDetails")


class Invoice(DocumentBase):
    """Invoice (KiotViet /invoices), plain or revision code form."""
    order_code: Optional[str] = Field(None, alias="orderCode")
    invoice_details: Optional[List[LineItem]] = Field(None, alias="invoiceDetails")


def _parse_records(model, raw_records: List[dict], kind: str) -> list:
    records = []
    for raw in raw_records:
        try:
            records.append(model.model_validate(raw))
        except ValidationError as e:
            code = raw.get("code") if isinstance(raw, dict) else None
            logger.warning(f"Skipping invalid {kind} {code or '(no code)'}: {e.error_count()} errors")
    return records


def parse_orders(raw_orders: List[dict]) -> List[Order]:
    """Validate raw KiotViet order dicts; invalid records are logged and skipped."""
    return _parse_records(Order, raw_orders, "order")


def parse_invoices(raw_invoices: List[dict]) -> List[Invoice]:
    """Validate raw KiotViet invoice dicts; invalid records are logged and skipped."""
    return _parse_records(Invoice, raw_invoices, "invoice")
