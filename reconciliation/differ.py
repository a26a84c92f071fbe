"""Line-item differ.

Compares two line-item collections keyed by product id. Quantities and
totals are integers or fixed-point decimals in KiotViet, so comparison is
exact: any inequality counts as a change.
"""

from typing import Dict, List, Optional

from core.models.canonical import Invoice, LineItem, Order
from core.models.results import DiffResult, QuantityChange


def _index_by_product(items: List[LineItem]) -> Dict[int, LineItem]:
    """Map product id -> item; items without a product id are skipped.

    Duplicate product ids within one document: last write wins.
    """
    index: Dict[int, LineItem] = {}
    for item in items:
        if item is None or not item.product_id:
            continue
        index[item.product_id] = item
    return index


def diff_line_items(
    old_items: Optional[List[LineItem]],
    new_items: Optional[List[LineItem]],
) -> DiffResult:
    """Diff ``old_items`` against ``new_items``.

    Args:
        old_items: Baseline side (order lines, or the earlier invoice)
        new_items: Compared side (invoice lines, or the revised invoice)

    Returns:
        DiffResult with added (new only), removed (old only) and
        quantity-changed items. A missing collection on either side gives an
        empty, unchanged result.
    """
    if old_items is None or new_items is None:
        return DiffResult()

    old_index = _index_by_product(old_items)
    new_index = _index_by_product(new_items)

    added = [item for pid, item in new_index.items() if pid not in old_index]
    removed = [item for pid, item in old_index.items() if pid not in new_index]

    quantity_changes = []
    for pid, new_item in new_index.items():
        old_item = old_index.get(pid)
        if old_item is None:
            continue
        if new_item.quantity != old_item.quantity:
            quantity_changes.append(QuantityChange(
                product=new_item,
                old_quantity=old_item.quantity,
                new_quantity=new_item.quantity,
                difference=_difference(old_item.quantity, new_item.quantity),
            ))

    return DiffResult(
        added=added,
        removed=removed,
        quantity_changes=quantity_changes,
        has_changes=bool(added or removed or quantity_changes),
    )


def _difference(old, new):
    if old is None or new is None:
        return None
    return new - old


def diff_order_invoice(order: Order, invoice: Invoice) -> DiffResult:
    """Diff an order's lines (old side) against its invoice's lines (new side)."""
    return diff_line_items(order.order_details, invoice.invoice_details)


def diff_invoice_revision(old_invoice: Invoice, new_invoice: Invoice) -> DiffResult:
    """Diff two versions of an invoice, including the scalar total.

    The total check applies only when both invoices carry a total, and it
    runs even if either side has no line items.
    """
    result = diff_line_items(old_invoice.invoice_details, new_invoice.invoice_details)

    if (
        old_invoice.total is not None
        and new_invoice.total is not None
        and old_invoice.total != new_invoice.total
    ):
        result.total_changed = True
        result.old_total = old_invoice.total
        result.new_total = new_invoice.total
        result.has_changes = True

    return result
