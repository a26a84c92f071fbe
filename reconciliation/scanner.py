"""Real-time invoice scanner.

Per invoice code the scanner tracks ``Unseen -> Seen(status=S) -> Seen(S')``:

- a revised code (``.NN``) whose invoice id is not in the sent-log is a
  revision event; it is diffed against its immediate predecessor found by
  the version chain resolver.
- a move into the canceled status from any other previously recorded status
  is a cancellation event.

``scan`` is pure. The caller dispatches the events, records successful
revision notifications in the sent-log and persists ``ScanResult.snapshot``;
replaying the same observed state afterwards yields no events.
"""

from typing import Dict, Optional, Sequence

from core.models.canonical import Invoice
from core.models.refs import InvoiceStatusEntry, SentLog
from core.models.results import CancellationEvent, RevisionEvent, ScanResult
from core.observability.logging import get_logger
from reconciliation.differ import diff_invoice_revision
from reconciliation.engine import dedupe_by_id
from reconciliation.versioning import DEFAULT_SCHEME, VersionScheme, find_predecessor


logger = get_logger(__name__)

# Invoice status 2 is "canceled" for invoices (orders use their own codes).
DEFAULT_INVOICE_CANCELED_STATUS = 2


class InvoiceScanner:
    """Detects revision and cancellation events between ticks.

    Usage:
        scanner = InvoiceScanner(canceled_status=2)
        result = scanner.scan(invoices, snapshot, sent_log)
    """

    def __init__(
        self,
        canceled_status: int = DEFAULT_INVOICE_CANCELED_STATUS,
        scheme: VersionScheme = DEFAULT_SCHEME,
    ):
        self.canceled_status = canceled_status
        self.scheme = scheme

    def scan(
        self,
        invoices: Sequence[Invoice],
        snapshot: Optional[Dict[str, InvoiceStatusEntry]],
        sent_log: Optional[SentLog],
    ) -> ScanResult:
        """Compute events for the current fetch.

        Args:
            invoices: Invoices from the current fetch
            snapshot: Status snapshot (keyed by code) from the previous tick
            sent_log: Notifications already dispatched

        Returns:
            ScanResult with revision/cancellation events and the merged
            snapshot to persist once the tick is done
        """
        snapshot = snapshot or {}
        sent_ids = sent_log.sent_ids() if sent_log else set()
        current = dedupe_by_id(invoices)

        revision_events = self._revision_events(current, sent_ids)
        cancellation_events = self._cancellation_events(current, snapshot)

        return ScanResult(
            revision_events=revision_events,
            cancellation_events=cancellation_events,
            snapshot=self.merge_snapshot(snapshot, current),
        )

    def _revision_events(self, invoices: Sequence[Invoice], sent_ids: set) -> list:
        events = []
        for invoice in invoices:
            if not self.scheme.is_revision(invoice.code) or invoice.id in sent_ids:
                continue

            version_info = self.scheme.parse(invoice.code)
            predecessor = find_predecessor(invoice.code, invoices, self.scheme)
            differences = (
                diff_invoice_revision(predecessor, invoice)
                if predecessor is not None else None
            )
            if predecessor is None:
                logger.warning(f"No predecessor in current fetch for revised invoice {invoice.code}")

            events.append(RevisionEvent(
                invoice=invoice,
                version_info=version_info,
                predecessor=predecessor,
                differences=differences,
            ))
        return events

    def _cancellation_events(
        self,
        invoices: Sequence[Invoice],
        snapshot: Dict[str, InvoiceStatusEntry],
    ) -> list:
        events = []
        for invoice in invoices:
            if invoice.status != self.canceled_status or not invoice.code:
                continue
            previous = snapshot.get(invoice.code)
            # Unseen invoices are recorded, not reported.
            if previous is None or previous.status == self.canceled_status:
                continue
            events.append(CancellationEvent(invoice=invoice, previous_status=previous.status))
        return events

    @staticmethod
    def merge_snapshot(
        snapshot: Dict[str, InvoiceStatusEntry],
        invoices: Sequence[Invoice],
    ) -> Dict[str, InvoiceStatusEntry]:
        """Previous snapshot overlaid with the statuses observed now."""
        merged = dict(snapshot)
        for invoice in invoices:
            if not invoice.code:
                continue
            merged[invoice.code] = InvoiceStatusEntry(
                id=invoice.id,
                status=invoice.status,
                modified_date=invoice.modified_date,
            )
        return merged
