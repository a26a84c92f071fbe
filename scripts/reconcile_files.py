"""
Offline reconciliation of saved KiotViet exports.

Reads orders and invoices from JSON files (a bare list, or the
``{"orders": [...]}`` / ``{"invoices": [...]}`` wrappers written by the
monitor) and prints the order/invoice and invoice version pairs that differ.

Usage:
    python scripts/reconcile_files.py --orders data/lastOrders.json --invoices data/lastInvoices.json
"""

import argparse
import json
from pathlib import Path
from typing import Any, List

import sys
sys.path.append(str(Path(__file__).resolve().parents[1]))

from core.models.canonical import parse_invoices, parse_orders
from reconciliation.engine import (
    DEFAULT_VALID_ORDER_STATUSES,
    filter_valid_orders,
    reconcile_invoice_versions,
    reconcile_orders_with_invoices,
)


def load_records(path: Path, key: str) -> List[dict]:
    data: Any = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get(key) or data.get("data") or []
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of {key}")
    return data


def main():
    parser = argparse.ArgumentParser(description="Reconcile saved orders and invoices")
    parser.add_argument("--orders", type=Path, help="Orders JSON file")
    parser.add_argument("--invoices", type=Path, required=True, help="Invoices JSON file")
    parser.add_argument(
        "--statuses",
        default=",".join(str(s) for s in sorted(DEFAULT_VALID_ORDER_STATUSES)),
        help="Comma-separated order statuses to compare (default: 1,2,3)",
    )
    parser.add_argument("--out", type=Path, help="Write the report here instead of stdout")
    args = parser.parse_args()

    invoices = parse_invoices(load_records(args.invoices, "invoices"))

    order_pairs = []
    if args.orders:
        statuses = {int(s) for s in args.statuses.split(",") if s.strip()}
        orders = filter_valid_orders(parse_orders(load_records(args.orders, "orders")), statuses)
        order_pairs = reconcile_orders_with_invoices(orders, invoices)

    version_pairs = reconcile_invoice_versions(invoices)

    report = {
        "order_invoice_pairs": [p.model_dump(mode="json") for p in order_pairs],
        "invoice_version_pairs": [p.model_dump(mode="json") for p in version_pairs],
    }
    text = json.dumps(report, indent=2, ensure_ascii=False)

    if args.out:
        args.out.write_text(text, encoding="utf-8")
        print(f"{len(order_pairs)} order/invoice pairs, {len(version_pairs)} version pairs -> {args.out}")
    else:
        print(text)


if __name__ == "__main__":
    main()
