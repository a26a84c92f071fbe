"""Abstract notification interface.

Tick orchestration depends only on this interface. The Lark implementation
lives in ``connectors.lark``; tests substitute in-memory fakes.

Every method sends exactly one report and raises on failure. Callers catch
per item, so one failed report never blocks the rest of a tick.
"""

from abc import ABC, abstractmethod

from core.models.canonical import Order
from core.models.results import (
    CancellationEvent,
    ReconciliationPair,
    RevisionEvent,
    VersionReconciliationPair,
)


class Notifier(ABC):
    """Destination for reconciliation and scanner reports."""

    @abstractmethod
    async def send_order_invoice_comparison_report(self, pair: ReconciliationPair) -> None:
        """Order whose original invoice has different lines."""

    @abstractmethod
    async def send_invoice_version_comparison_report(self, pair: VersionReconciliationPair) -> None:
        """Revised invoice compared with its original."""

    @abstractmethod
    async def send_invoice_revision_report(self, event: RevisionEvent) -> None:
        """Newly seen revised invoice compared with its predecessor."""

    @abstractmethod
    async def send_invoice_cancellation_report(self, event: CancellationEvent) -> None:
        """Invoice that moved into the canceled status."""

    @abstractmethod
    async def send_order_change_report(self, order: Order, change_type: str) -> None:
        """New or updated order (``change_type`` is ``new`` or ``updated``)."""

    async def close(self) -> None:
        """Release network resources; no-op by default."""
