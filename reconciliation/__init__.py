"""
Reconciliation Package

Order/invoice reconciliation and invoice versioning for KiotViet data.

Features:
- Revision code parsing (``HD001.02`` -> base ``HD001``, version 2)
- Version chain resolution with fallback to the original
- Line-item diffing (added / removed / quantity changes, invoice totals)
- Order vs invoice and original vs revised invoice reconcilers
- Real-time scanner for revision and cancellation events

Usage:
    from reconciliation import reconcile_orders_with_invoices, InvoiceScanner

    pairs = reconcile_orders_with_invoices(orders, invoices)
    result = InvoiceScanner(canceled_status=2).scan(invoices, snapshot, sent_log)
"""

from .versioning import (
    VersionScheme,
    DEFAULT_SCHEME,
    parse_version,
    is_revision_code,
    format_version_code,
    find_predecessor,
)

from .differ import (
    diff_line_items,
    diff_order_invoice,
    diff_invoice_revision,
)

from .engine import (
    DEFAULT_VALID_ORDER_STATUSES,
    filter_valid_orders,
    dedupe_by_id,
    split_invoices,
    reconcile_orders_with_invoices,
    reconcile_invoice_versions,
    order_invoice_key,
    invoice_version_key,
)

from .scanner import (
    DEFAULT_INVOICE_CANCELED_STATUS,
    InvoiceScanner,
)

from .changes import (
    CHANGE_NEW,
    CHANGE_UPDATED,
    detect_order_changes,
)

__all__ = [
    # Versioning
    "VersionScheme",
    "DEFAULT_SCHEME",
    "parse_version",
    "is_revision_code",
    "format_version_code",
    "find_predecessor",

    # Differ
    "diff_line_items",
    "diff_order_invoice",
    "diff_invoice_revision",

    # Reconcilers
    "DEFAULT_VALID_ORDER_STATUSES",
    "filter_valid_orders",
    "dedupe_by_id",
    "split_invoices",
    "reconcile_orders_with_invoices",
    "reconcile_invoice_versions",
    "order_invoice_key",
    "invoice_version_key",

    # Scanner
    "DEFAULT_INVOICE_CANCELED_STATUS",
    "InvoiceScanner",

    # Order changes
    "CHANGE_NEW",
    "CHANGE_UPDATED",
    "detect_order_changes",
]
