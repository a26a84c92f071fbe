"""Reconciliation result models.

Diff results, reconciliation pairs and scanner events are computed per tick,
handed to the notifier and then discarded.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from core.models.canonical import Invoice, LineItem, Order
from core.models.refs import InvoiceStatusEntry


class VersionInfo(BaseModel):
    """Parsed form of a document code (``<base>.<NN>`` for revisions)."""
    is_revised: bool = False
    base_code: Optional[str] = None
    version: int = 0


class QuantityChange(BaseModel):
    """A product present on both sides whose quantity differs."""
    product: LineItem
    old_quantity: Optional[Decimal] = None
    new_quantity: Optional[Decimal] = None
    difference: Optional[Decimal] = None

    @property
    def product_id(self) -> Optional[int]:
        return self.product.product_id


class DiffResult(BaseModel):
    """Structured output of comparing two line-item collections.

    ``total_changed``/``old_total``/``new_total`` are only populated by the
    invoice-revision variant of the differ.
    """
    added: List[LineItem] = Field(default_factory=list)
    removed: List[LineItem] = Field(default_factory=list)
    quantity_changes: List[QuantityChange] = Field(default_factory=list)
    has_changes: bool = False

    total_changed: bool = False
    old_total: Optional[Decimal] = None
    new_total: Optional[Decimal] = None


class ReconciliationPair(BaseModel):
    """An order and its original invoice that disagree."""
    order: Order
    invoice: Invoice
    differences: DiffResult


class VersionReconciliationPair(BaseModel):
    """An original invoice and one of its revisions that disagree."""
    original_invoice: Invoice
    revised_invoice: Invoice
    differences: DiffResult
    version_info: VersionInfo


# =============================================================================
# Scanner events
# =============================================================================

class RevisionEvent(BaseModel):
    """A revised invoice not yet notified.

    ``predecessor`` is the immediately preceding version (or the original)
    when it is present in the current fetch; ``differences`` is None without
    one.
    """
    invoice: Invoice
    version_info: VersionInfo
    predecessor: Optional[Invoice] = None
    differences: Optional[DiffResult] = None


class CancellationEvent(BaseModel):
    """An invoice that moved into the canceled status since the last tick."""
    invoice: Invoice
    previous_status: Optional[int] = None


class ScanResult(BaseModel):
    """Events found by one scan plus the snapshot to persist afterwards."""
    revision_events: List[RevisionEvent] = Field(default_factory=list)
    cancellation_events: List[CancellationEvent] = Field(default_factory=list)
    snapshot: Dict[str, InvoiceStatusEntry] = Field(default_factory=dict)

    @property
    def event_count(self) -> int:
        return len(self.revision_events) + len(self.cancellation_events)


class TickSummary(BaseModel):
    """What one tick did; returned by activities and the HTTP trigger."""
    task: str
    skipped: bool = False
    fetched_orders: int = 0
    fetched_invoices: int = 0
    order_invoice_pairs: int = 0
    invoice_version_pairs: int = 0
    revision_events: int = 0
    cancellation_events: int = 0
    order_changes: int = 0
    notifications_sent: int = 0
    notifications_failed: int = 0
    duration_ms: float = 0.0
