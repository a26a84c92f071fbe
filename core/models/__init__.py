"""Core data models - KiotViet records, tracking state and reconciliation results."""

from core.models.canonical import (
    # Base
    CanonicalBase,
    DecimalValue,
    IntValue,
    DateTimeValue,

    # Records
    LineItem,
    DocumentBase,
    Order,
    Invoice,
    parse_orders,
    parse_invoices,
)

from core.models.refs import (
    DataReference,
    SentLogEntry,
    SentLog,
    ReportLogEntry,
    ReportLog,
    InvoiceStatusEntry,
    StatusSnapshot,
)

from core.models.results import (
    VersionInfo,
    QuantityChange,
    DiffResult,
    ReconciliationPair,
    VersionReconciliationPair,
    RevisionEvent,
    CancellationEvent,
    ScanResult,
    TickSummary,
)

__all__ = [
    # Base
    "CanonicalBase",
    "DecimalValue",
    "IntValue",
    "DateTimeValue",

    # Records
    "LineItem",
    "DocumentBase",
    "Order",
    "Invoice",
    "parse_orders",
    "parse_invoices",

    # Tracking
    "DataReference",
    "SentLogEntry",
    "SentLog",
    "ReportLogEntry",
    "ReportLog",
    "InvoiceStatusEntry",
    "StatusSnapshot",

    # Results
    "VersionInfo",
    "QuantityChange",
    "DiffResult",
    "ReconciliationPair",
    "VersionReconciliationPair",
    "RevisionEvent",
    "CancellationEvent",
    "ScanResult",
    "TickSummary",
]
