"""Reconciliation engine for KiotViet orders and invoices.

Exposes high-level functions:
- reconcile_orders_with_invoices(orders, invoices) -> List[ReconciliationPair]
- reconcile_invoice_versions(invoices) -> List[VersionReconciliationPair]
- order_invoice_key(pair) / invoice_version_key(pair) -> report-log keys

All are pure: no I/O, no exceptions for data-quality issues. Missing
matches and missing line items simply produce no pair.
"""

import hashlib
from typing import Iterable, List, Optional, Sequence, TypeVar

from core.models.canonical import Invoice, Order
from core.models.results import ReconciliationPair, VersionReconciliationPair
from core.observability.logging import get_logger
from reconciliation.differ import diff_invoice_revision, diff_order_invoice
from reconciliation.versioning import DEFAULT_SCHEME, VersionScheme


logger = get_logger(__name__)

T = TypeVar("T")


# =============================================================================
# Configuration
# =============================================================================

# Order statuses compared against invoices: draft, confirmed, canceled.
DEFAULT_VALID_ORDER_STATUSES = frozenset({1, 2, 3})


# =============================================================================
# Utility Functions
# =============================================================================

def filter_valid_orders(
    orders: Iterable[Order],
    valid_statuses: Iterable[int] = DEFAULT_VALID_ORDER_STATUSES,
) -> List[Order]:
    """Keep orders whose status is in ``valid_statuses``."""
    allowed = set(valid_statuses)
    return [o for o in orders if o.status in allowed]


def dedupe_by_id(records: Iterable[T]) -> List[T]:
    """Drop records without an id and repeated ids (first occurrence wins)."""
    seen = set()
    unique = []
    for record in records:
        record_id = getattr(record, "id", None)
        if record is None or not record_id or record_id in seen:
            continue
        seen.add(record_id)
        unique.append(record)
    return unique


def split_invoices(
    invoices: Sequence[Invoice],
    scheme: VersionScheme = DEFAULT_SCHEME,
):
    """Split invoices into (originals, revisions) by code suffix."""
    originals = []
    revisions = []
    for inv in invoices:
        if scheme.is_revision(inv.code or ""):
            revisions.append(inv)
        else:
            originals.append(inv)
    return originals, revisions


def _find_original_for_order(order: Order, originals: Sequence[Invoice]) -> Optional[Invoice]:
    # First match wins if several originals point at the same order code.
    for inv in originals:
        if inv.order_code == order.code:
            return inv
    return None


# =============================================================================
# Order / invoice reconciliation
# =============================================================================

def reconcile_orders_with_invoices(
    orders: Sequence[Order],
    invoices: Sequence[Invoice],
    scheme: VersionScheme = DEFAULT_SCHEME,
) -> List[ReconciliationPair]:
    """Match each order to its original invoice and keep the pairs that differ.

    Revised invoices (``.NN`` codes) never take part; only the original
    invoice is compared with the order. Orders without an invoice yet are
    skipped silently.

    Args:
        orders: Orders to check (already filtered to valid statuses)
        invoices: Invoices from the current fetch

    Returns:
        ReconciliationPair for every order whose lines differ from its invoice
    """
    originals, _ = split_invoices(invoices, scheme)
    logger.debug(f"{len(originals)} original invoices available for order matching")

    pairs = []
    for order in orders:
        invoice = _find_original_for_order(order, originals)
        if invoice is None:
            continue

        differences = diff_order_invoice(order, invoice)
        if differences.has_changes:
            pairs.append(ReconciliationPair(
                order=order,
                invoice=invoice,
                differences=differences,
            ))

    logger.info(f"Order/invoice reconciliation: {len(pairs)} pairs with differences")
    return pairs


# =============================================================================
# Invoice version reconciliation
# =============================================================================

def reconcile_invoice_versions(
    invoices: Sequence[Invoice],
    scheme: VersionScheme = DEFAULT_SCHEME,
) -> List[VersionReconciliationPair]:
    """Compare every revised invoice with its absolute original.

    Unlike the real-time scanner this always diffs against the unversioned
    original (exact ``base_code`` match), not the immediately preceding
    version.
    """
    _, revisions = split_invoices(invoices, scheme)
    logger.debug(f"{len(revisions)} revised invoices found")

    pairs = []
    for revised in revisions:
        version_info = scheme.parse(revised.code)
        if not version_info.is_revised:
            continue

        original = next(
            (inv for inv in invoices if inv.code == version_info.base_code),
            None,
        )
        if original is None:
            continue

        differences = diff_invoice_revision(original, revised)
        if differences.has_changes:
            pairs.append(VersionReconciliationPair(
                original_invoice=original,
                revised_invoice=revised,
                differences=differences,
                version_info=version_info,
            ))

    logger.info(f"Invoice version reconciliation: {len(pairs)} pairs with differences")
    return pairs


# =============================================================================
# Report keys
# =============================================================================

def _diff_fingerprint(differences) -> str:
    return hashlib.sha256(differences.model_dump_json().encode("utf-8")).hexdigest()[:16]


def order_invoice_key(pair: ReconciliationPair) -> str:
    """Report-log key for an order/invoice pair; changes when the diff does."""
    return f"order_invoice:{pair.order.id}:{pair.invoice.id}:{_diff_fingerprint(pair.differences)}"


def invoice_version_key(pair: VersionReconciliationPair) -> str:
    """Report-log key for an original/revised invoice pair."""
    return (
        f"invoice_version:{pair.original_invoice.id}:{pair.revised_invoice.id}:"
        f"{_diff_fingerprint(pair.differences)}"
    )
