"""Rolling per-day order archive.

Orders are fetched one created-day at a time and kept as
``orders_YYYY-MM-DD.json`` under the data directory. ``orders_summary.json``
records which days were fully processed, so past days are fetched once and
only today is refreshed on every tick. ``lastOrders.json`` holds the order set
used by the previous reconciliation tick for new/updated detection.
"""

import json
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from core.models.canonical import Order, parse_orders
from core.models.refs import DataReference
from core.observability.logging import get_logger
from core.storage.artifacts import ArtifactStore


logger = get_logger(__name__)

SUMMARY_FILE = "orders_summary.json"
LATEST_ORDERS_FILE = "lastOrders.json"

DEFAULT_WINDOW_DAYS = 14


def day_file_name(day: date) -> str:
    return f"orders_{day.isoformat()}.json"


class OrderArchive:
    """Per-day order files for the reconciliation window.

    Usage:
        archive = OrderArchive("./data", window_days=14)
        for day in archive.window_days(today):
            if archive.needs_refresh(day, today):
                archive.store_day(day, await client.get_orders_for_day(day))
        orders = archive.load_all(today)
    """

    def __init__(
        self,
        data_dir: Union[str, Path],
        window_days: int = DEFAULT_WINDOW_DAYS,
    ):
        self.store = ArtifactStore(data_dir)
        self.window = window_days

    def _read(self, relative_path: str) -> Optional[Any]:
        if not self.store.exists(relative_path):
            return None
        try:
            return self.store.read_json(relative_path)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read {relative_path}: {e}")
            return None

    # =========================================================================
    # Summary
    # =========================================================================

    def load_summary(self) -> Dict[str, Any]:
        data = self._read(SUMMARY_FILE)
        if not isinstance(data, dict) or not isinstance(data.get("lastProcessedDays"), dict):
            return {"lastProcessedDays": {}, "lastUpdate": None}
        return data

    def _save_summary(self, summary: Dict[str, Any]) -> DataReference:
        summary["lastUpdate"] = datetime.now().isoformat()
        return self.store.put_json(summary, SUMMARY_FILE)

    # =========================================================================
    # Window
    # =========================================================================

    def window_days(self, today: date) -> List[date]:
        """The archive window, today first."""
        return [today - timedelta(days=i) for i in range(self.window)]

    def needs_refresh(self, day: date, today: date) -> bool:
        """Today is always refreshed; a past day only if unprocessed or its file is gone."""
        if day >= today:
            return True
        processed = self.load_summary()["lastProcessedDays"].get(day.isoformat())
        if not processed or not processed.get("processed"):
            return True
        return not self.store.exists(day_file_name(day))

    def store_day(
        self,
        day: date,
        orders: Sequence[Order],
        original_count: Optional[int] = None,
    ) -> DataReference:
        """Write the orders created on ``day`` and mark the day processed.

        Args:
            day: Created-date of the orders
            orders: Orders to keep (already filtered to valid statuses)
            original_count: Number fetched before filtering, for the summary
        """
        ref = self.store.put_json(list(orders), day_file_name(day))

        summary = self.load_summary()
        summary["lastProcessedDays"][day.isoformat()] = {
            "processed": True,
            "count": len(orders),
            "originalCount": original_count if original_count is not None else len(orders),
            "lastUpdate": datetime.now().isoformat(),
        }
        self._save_summary(summary)

        logger.info(f"Archived {len(orders)} orders for {day.isoformat()}")
        return ref

    # =========================================================================
    # Reads
    # =========================================================================

    def load_day(self, day: date) -> List[Order]:
        data = self._read(day_file_name(day))
        if not isinstance(data, list):
            return []
        return parse_orders(data)

    def load_all(self, today: date) -> List[Order]:
        """All archived orders in the window, deduplicated by id."""
        seen = set()
        orders = []
        for day in self.window_days(today):
            for order in self.load_day(day):
                if not order.id or order.id in seen:
                    continue
                seen.add(order.id)
                orders.append(order)
        return orders

    # =========================================================================
    # Previous tick
    # =========================================================================

    def save_latest(self, orders: Sequence[Order]) -> DataReference:
        payload = {
            "timestamp": datetime.now().isoformat(),
            "totalOrders": len(orders),
            "orders": list(orders),
        }
        return self.store.put_json(payload, LATEST_ORDERS_FILE)

    def load_latest(self) -> List[Order]:
        data = self._read(LATEST_ORDERS_FILE)
        if not isinstance(data, dict) or not isinstance(data.get("orders"), list):
            return []
        return parse_orders(data["orders"])

    def status(self, today: date) -> Dict[str, Any]:
        summary = self.load_summary()
        return {
            "window_days": self.window,
            "archived_days": sum(1 for d in self.window_days(today) if self.store.exists(day_file_name(d))),
            "last_update": summary.get("lastUpdate"),
            "latest_orders_file": self.store.exists(LATEST_ORDERS_FILE),
        }
