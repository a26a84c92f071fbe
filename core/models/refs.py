"""Data reference and change-tracking models for persisted state."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class DataReference(BaseModel):
    """Reference to a stored artifact with metadata for retrieval and verification.

    Attributes:
        storage_uri: Absolute file path to the artifact
        content_hash: SHA256 hash of the content for integrity verification
        content_type: MIME type (e.g., "application/json")
        size_bytes: Size of the artifact in bytes
        stored_at: Timestamp when the artifact was stored
    """
    storage_uri: str = Field(..., description="Absolute file path to the artifact")
    content_hash: str = Field(..., description="SHA256 hash of content")
    content_type: str = Field(default="application/json", description="MIME type")
    size_bytes: int = Field(..., description="Size in bytes")
    stored_at: datetime = Field(default_factory=datetime.utcnow, description="Storage timestamp")


# =============================================================================
# Sent-notification log
# =============================================================================

class SentLogEntry(BaseModel):
    """One dispatched notification, keyed by invoice id."""
    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(..., description="KiotViet invoice id")
    code: Optional[str] = Field(None, description="Invoice code at send time")
    sent_at: Optional[datetime] = Field(None, alias="sentAt", description="When the notification went out")


class SentLog(BaseModel):
    """Durable record of notifications already sent (at-most-once delivery).

    Serialized as ``{"invoiceIds": [{"id", "code", "sentAt"}]}``.
    """
    model_config = ConfigDict(populate_by_name=True)

    invoice_ids: List[SentLogEntry] = Field(default_factory=list, alias="invoiceIds")

    def contains(self, invoice_id: int) -> bool:
        return any(entry.id == invoice_id for entry in self.invoice_ids)

    def sent_ids(self) -> set:
        return {entry.id for entry in self.invoice_ids}

    def record(self, invoice_id: int, code: Optional[str], sent_at: Optional[datetime] = None) -> SentLogEntry:
        entry = SentLogEntry(id=invoice_id, code=code, sent_at=sent_at or datetime.now())
        self.invoice_ids.append(entry)
        return entry

    def pruned(self, now: datetime, retention: timedelta) -> "SentLog":
        """Copy without entries older than ``retention``; undated entries stay."""
        cutoff = now - retention
        kept = [
            e for e in self.invoice_ids
            if e.sent_at is None or _naive(e.sent_at) >= _naive(cutoff)
        ]
        return SentLog(invoice_ids=kept)


# =============================================================================
# Reconciliation report log
# =============================================================================

class ReportLogEntry(BaseModel):
    """One reconciliation report already sent, keyed by pair and diff fingerprint."""
    model_config = ConfigDict(populate_by_name=True)

    key: str
    kind: Optional[str] = None
    sent_at: Optional[datetime] = Field(None, alias="sentAt")


class ReportLog(BaseModel):
    """Reports dispatched by the periodic reconciliation.

    Serialized as ``{"reports": [{"key", "kind", "sentAt"}]}``. A pair whose
    differences change gets a new key and is reported again.
    """
    model_config = ConfigDict(populate_by_name=True)

    entries: List[ReportLogEntry] = Field(default_factory=list, alias="reports")

    def contains(self, key: str) -> bool:
        return any(entry.key == key for entry in self.entries)

    def keys(self) -> set:
        return {entry.key for entry in self.entries}

    def record(self, key: str, kind: Optional[str] = None, sent_at: Optional[datetime] = None) -> ReportLogEntry:
        entry = ReportLogEntry(key=key, kind=kind, sent_at=sent_at or datetime.now())
        self.entries.append(entry)
        return entry

    def pruned(self, now: datetime, retention: timedelta) -> "ReportLog":
        cutoff = now - retention
        kept = [
            e for e in self.entries
            if e.sent_at is None or _naive(e.sent_at) >= _naive(cutoff)
        ]
        return ReportLog(entries=kept)


# =============================================================================
# Invoice status snapshot
# =============================================================================

class InvoiceStatusEntry(BaseModel):
    """Last observed status of an invoice, keyed by code in the snapshot."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = None
    status: Optional[int] = None
    modified_date: Optional[datetime] = Field(None, alias="modifiedDate")


StatusSnapshot = Dict[str, InvoiceStatusEntry]


def _naive(value: datetime) -> datetime:
    """Aware timestamps are converted to naive local time, the monitor clock."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value
