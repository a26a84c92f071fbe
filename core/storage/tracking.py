"""Change-tracking store for the real-time invoice scanner.

Files under ``base_dir``:
    sentInvoices.json   {"invoiceIds": [{"id", "code", "sentAt"}]}
    sentReports.json    {"reports": [{"key", "kind", "sentAt"}]}
    invoiceStatus.json  {"<code>": {"id", "status", "modifiedDate"}}
    lastInvoices.json   {"timestamp", "invoices": [...]}

A missing, empty or unreadable file loads as empty state so the scanner can
always make progress; the problem is logged.
"""

import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

from pydantic import ValidationError

from core.models.canonical import Invoice
from core.models.refs import DataReference, InvoiceStatusEntry, ReportLog, SentLog
from core.observability.logging import get_logger
from core.storage.artifacts import ArtifactStore


logger = get_logger(__name__)

SENT_LOG_FILE = "sentInvoices.json"
REPORT_LOG_FILE = "sentReports.json"
STATUS_SNAPSHOT_FILE = "invoiceStatus.json"
LATEST_INVOICES_FILE = "lastInvoices.json"

DEFAULT_RETENTION_DAYS = 60


class ChangeTrackingStore:
    """Persists the sent-log, status snapshot and last fetched invoices.

    Usage:
        store = ChangeTrackingStore("./data")
        sent_log = store.load_sent_log(datetime.now())
        ...
        store.save_sent_log(sent_log)
    """

    def __init__(
        self,
        base_dir: Union[str, Path],
        retention_days: int = DEFAULT_RETENTION_DAYS,
    ):
        self.store = ArtifactStore(base_dir)
        self.retention = timedelta(days=retention_days)

    @property
    def base_dir(self) -> Path:
        return self.store.base_path

    def _read(self, relative_path: str) -> Optional[Any]:
        if not self.store.exists(relative_path):
            return None
        try:
            return self.store.read_json(relative_path)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read {relative_path}, starting empty: {e}")
            return None

    # =========================================================================
    # Sent-log
    # =========================================================================

    def load_sent_log(self, now: Optional[datetime] = None) -> SentLog:
        """Load the sent-log, dropping entries older than the retention window."""
        data = self._read(SENT_LOG_FILE)
        if not data:
            return SentLog()

        try:
            sent_log = SentLog.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Invalid {SENT_LOG_FILE}, starting with an empty sent-log: {e}")
            return SentLog()

        pruned = sent_log.pruned(now or datetime.now(), self.retention)
        dropped = len(sent_log.invoice_ids) - len(pruned.invoice_ids)
        if dropped:
            logger.info(f"Pruned {dropped} sent-log entries older than {self.retention.days} days")
        return pruned

    def save_sent_log(self, sent_log: SentLog) -> DataReference:
        return self.store.put_json(sent_log, SENT_LOG_FILE)

    # =========================================================================
    # Reconciliation report log
    # =========================================================================

    def load_report_log(self, now: Optional[datetime] = None) -> ReportLog:
        """Load the reconciliation report log, pruned like the sent-log."""
        data = self._read(REPORT_LOG_FILE)
        if not data:
            return ReportLog()

        try:
            report_log = ReportLog.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Invalid {REPORT_LOG_FILE}, starting with an empty report log: {e}")
            return ReportLog()

        pruned = report_log.pruned(now or datetime.now(), self.retention)
        dropped = len(report_log.entries) - len(pruned.entries)
        if dropped:
            logger.info(f"Pruned {dropped} report-log entries older than {self.retention.days} days")
        return pruned

    def save_report_log(self, report_log: ReportLog) -> DataReference:
        return self.store.put_json(report_log, REPORT_LOG_FILE)

    # =========================================================================
    # Status snapshot
    # =========================================================================

    def load_status_snapshot(self) -> Dict[str, InvoiceStatusEntry]:
        data = self._read(STATUS_SNAPSHOT_FILE)
        if not data or not isinstance(data, dict):
            return {}

        snapshot = {}
        for code, entry in data.items():
            try:
                snapshot[code] = InvoiceStatusEntry.model_validate(entry)
            except ValidationError:
                logger.warning(f"Skipping invalid status snapshot entry for {code}")
        return snapshot

    def save_status_snapshot(self, snapshot: Dict[str, InvoiceStatusEntry]) -> DataReference:
        return self.store.put_json(snapshot, STATUS_SNAPSHOT_FILE)

    # =========================================================================
    # Latest fetch
    # =========================================================================

    def save_latest_invoices(
        self,
        invoices: Sequence[Invoice],
        timestamp: Optional[datetime] = None,
    ) -> DataReference:
        payload = {
            "timestamp": (timestamp or datetime.now()).isoformat(),
            "invoices": list(invoices),
        }
        return self.store.put_json(payload, LATEST_INVOICES_FILE)

    def status(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """File presence and log sizes, for the status endpoint."""
        files = {}
        for name in (SENT_LOG_FILE, REPORT_LOG_FILE, STATUS_SNAPSHOT_FILE, LATEST_INVOICES_FILE):
            path = self.store.resolve_path(name)
            files[name] = {
                "exists": path.exists(),
                "modified_at": (
                    datetime.fromtimestamp(path.stat().st_mtime).isoformat()
                    if path.exists() else None
                ),
            }
        return {
            "files": files,
            "sent_log_entries": len(self.load_sent_log(now).invoice_ids),
            "report_log_entries": len(self.load_report_log(now).entries),
            "retention_days": self.retention.days,
        }
