"""Runtime context shared by every tick.

``MonitorContext`` bundles the collaborators (KiotViet client, notifier), the
persistent stores and the per-task ``TickGuard``. The Temporal activities, the
local scheduler and the HTTP API all run ticks against one context, so the
guards serialize ticks across all three entry points.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, FrozenSet, Optional

from core.config import Settings
from core.storage.order_archive import OrderArchive
from core.storage.tracking import ChangeTrackingStore
from reconciliation.scanner import InvoiceScanner


SCAN_TASK = "invoice_scan"
RECONCILE_TASK = "reconciliation"


class TickGuard:
    """Busy flag for one periodic task.

    A tick that cannot acquire the guard is skipped, never queued. Ticks run
    as coroutines on one event loop and the flag stays set across awaits.

    Usage:
        if not guard.try_acquire():
            return  # previous tick still running
        try:
            ...
        finally:
            guard.release()
    """

    def __init__(self, name: str):
        self.name = name
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    def try_acquire(self) -> bool:
        if self._busy:
            return False
        self._busy = True
        return True

    def release(self) -> None:
        self._busy = False


@dataclass
class MonitorContext:
    """Everything a tick needs.

    Attributes:
        kiotviet: Object with ``get_recent_invoices(since)`` and ``get_orders_for_day(day)``
        notifier: ``connectors.base.Notifier`` implementation
        tracking: Sent-log / status snapshot store
        archive: Per-day order archive
        scanner: Pure revision/cancellation detector
        clock: Returns "now" as a naive local datetime
    """
    settings: Settings
    kiotviet: Any
    notifier: Any
    tracking: ChangeTrackingStore
    archive: OrderArchive
    scanner: InvoiceScanner
    clock: Callable[[], datetime] = datetime.now
    guards: Dict[str, TickGuard] = field(default_factory=lambda: {
        SCAN_TASK: TickGuard(SCAN_TASK),
        RECONCILE_TASK: TickGuard(RECONCILE_TASK),
    })
    last_summaries: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        settings: Settings,
        kiotviet: Any,
        notifier: Any,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> "MonitorContext":
        """Build stores and scanner from settings around the given collaborators."""
        return cls(
            settings=settings,
            kiotviet=kiotviet,
            notifier=notifier,
            tracking=ChangeTrackingStore(settings.data_dir, settings.sent_log_retention_days),
            archive=OrderArchive(settings.data_dir, settings.order_window_days),
            scanner=InvoiceScanner(canceled_status=settings.invoice_canceled_status),
            clock=clock or datetime.now,
        )

    def guard(self, task: str) -> TickGuard:
        if task not in self.guards:
            self.guards[task] = TickGuard(task)
        return self.guards[task]

    @property
    def valid_order_statuses(self) -> FrozenSet[int]:
        return self.settings.valid_order_statuses

    def now(self) -> datetime:
        return self.clock()

    def today(self) -> date:
        return self.clock().date()
