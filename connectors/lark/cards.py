"""Lark interactive card builders.

Pure functions that render reconciliation pairs and scanner events into the
``card`` object of a Lark ``interactive`` message. Labels are Vietnamese,
the language of the stores' chat groups.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from core.models.canonical import Invoice, LineItem, Order
from core.models.results import (
    CancellationEvent,
    DiffResult,
    ReconciliationPair,
    RevisionEvent,
    VersionReconciliationPair,
)


# Header colour per invoice status: 1 completed, 2 canceled, 3 in progress.
STATUS_TEMPLATES = {1: "green", 2: "red", 3: "yellow"}
DEFAULT_TEMPLATE = "blue"

NOT_AVAILABLE = "N/A"


# =============================================================================
# Formatting helpers
# =============================================================================

def format_money(value: Optional[Decimal]) -> str:
    """Vietnamese grouping: 1234567.5 -> ``1.234.567,5``."""
    if value is None:
        return "0"
    value = Decimal(value)
    if value == value.to_integral_value():
        value = value.quantize(Decimal(1))
    grouped = format(value, ",")
    return grouped.replace(",", "_").replace(".", ",").replace("_", ".")


def format_quantity(value: Optional[Decimal]) -> str:
    if value is None:
        return NOT_AVAILABLE
    return format(Decimal(value).normalize(), "f")


def format_signed(value: Optional[Decimal]) -> str:
    if value is None:
        return NOT_AVAILABLE
    text = format_quantity(value)
    return text if value < 0 else f"+{text}"


def _product_label(item: LineItem) -> str:
    name = item.product_name or NOT_AVAILABLE
    return f"{name} ({item.product_code})" if item.product_code else name


def status_template(status: Optional[int]) -> str:
    return STATUS_TEMPLATES.get(status, DEFAULT_TEMPLATE)


def _field(label: str, value: Any) -> str:
    return f"**{label}:** {value if value not in (None, '') else NOT_AVAILABLE}\n"


def render_differences(diff: DiffResult) -> str:
    """Markdown body listing added, removed and quantity-changed products."""
    lines: List[str] = []

    if diff.added:
        lines.append("**Sản phẩm thêm mới:**")
        for item in diff.added:
            lines.append(f"- {_product_label(item)}: SL {format_quantity(item.quantity)}")

    if diff.removed:
        lines.append("**Sản phẩm bị xóa:**")
        for item in diff.removed:
            lines.append(f"- {_product_label(item)}: SL {format_quantity(item.quantity)}")

    if diff.quantity_changes:
        lines.append("**Thay đổi số lượng:**")
        for change in diff.quantity_changes:
            lines.append(
                f"- {_product_label(change.product)}: "
                f"{format_quantity(change.old_quantity)} → {format_quantity(change.new_quantity)} "
                f"({format_signed(change.difference)})"
            )

    if diff.total_changed:
        lines.append(
            f"**Tổng tiền:** {format_money(diff.old_total)}đ → {format_money(diff.new_total)}đ"
        )

    if not lines:
        return "Không có thay đổi"
    return "\n".join(lines)


def build_card(title: str, content: str, template: str = DEFAULT_TEMPLATE) -> Dict[str, Any]:
    """Wrap a markdown body into a Lark interactive card."""
    return {
        "config": {"wide_screen_mode": True},
        "header": {
            "title": {"tag": "plain_text", "content": title},
            "template": template,
        },
        "elements": [
            {"tag": "div", "text": {"tag": "lark_md", "content": content}},
        ],
    }


def _invoice_header(invoice: Invoice) -> str:
    content = _field("Mã hóa đơn", invoice.code)
    content += _field("Chi nhánh", invoice.branch_name)
    content += _field("Người lập", invoice.sold_by_name)
    content += _field("Khách hàng", invoice.customer_name)
    if invoice.order_code:
        content += _field("Mã đơn hàng", invoice.order_code)
    content += f"**Tổng tiền:** {format_money(invoice.total)}đ\n"
    content += _field("Trạng thái", invoice.status_value)
    return content


# =============================================================================
# Cards
# =============================================================================

def order_invoice_comparison_card(pair: ReconciliationPair) -> Dict[str, Any]:
    order, invoice = pair.order, pair.invoice
    content = _field("Mã đơn hàng", order.code)
    content += _field("Mã hóa đơn", invoice.code)
    content += _field("Khách hàng", order.customer_name or invoice.customer_name)
    content += _field("Chi nhánh", order.branch_name or invoice.branch_name)
    content += _field("Người lên đơn", order.sold_by_name)
    content += "\n" + render_differences(pair.differences)
    return build_card(
        f"Hóa đơn khác đơn hàng: {order.code} → {invoice.code}",
        content,
        template="orange",
    )


def invoice_version_comparison_card(pair: VersionReconciliationPair) -> Dict[str, Any]:
    original, revised = pair.original_invoice, pair.revised_invoice
    content = _field("Hóa đơn gốc", original.code)
    content += _field("Hóa đơn điều chỉnh", revised.code)
    content += _field("Lần điều chỉnh", pair.version_info.version)
    content += _field("Khách hàng", revised.customer_name or original.customer_name)
    content += _field("Chi nhánh", revised.branch_name or original.branch_name)
    content += "\n" + render_differences(pair.differences)
    return build_card(
        f"Hóa đơn điều chỉnh: {original.code} → {revised.code}",
        content,
        template="orange",
    )


def invoice_revision_card(event: RevisionEvent) -> Dict[str, Any]:
    invoice = event.invoice
    content = _invoice_header(invoice)
    content += _field("Lần điều chỉnh", event.version_info.version)
    if event.predecessor is not None:
        content += _field("So với", event.predecessor.code)
    if event.differences is not None:
        content += "\n" + render_differences(event.differences)
    else:
        content += "\nKhông tìm thấy phiên bản trước để so sánh"
    return build_card(
        f"Hóa đơn điều chỉnh: {invoice.code}",
        content,
        template=status_template(invoice.status),
    )


def invoice_cancellation_card(event: CancellationEvent) -> Dict[str, Any]:
    invoice = event.invoice
    content = _invoice_header(invoice)
    if invoice.description and invoice.description.strip():
        content += _field("Ghi chú", invoice.description)
    return build_card(
        f"Hóa đơn đã hủy: {invoice.code}",
        content,
        template="red",
    )


def order_change_card(order: Order, change_type: str) -> Dict[str, Any]:
    label = "ĐƠN HÀNG MỚI" if change_type == "new" else "ĐƠN HÀNG CẬP NHẬT"
    content = f"**{label}**\n\n"
    content += _field("Mã đơn", order.code)
    content += _field("Ngày tạo đơn", order.created_date.isoformat(sep=" ") if order.created_date else None)
    content += _field("Khách hàng", order.customer_name)
    content += _field("Chi nhánh", order.branch_name)
    content += _field("Người lên đơn", order.sold_by_name)
    if order.order_details:
        products = ", ".join(
            f"{item.product_name} ({format_quantity(item.quantity)})" for item in order.order_details
        )
        content += _field("Sản phẩm", products)
    content += f"**Tổng tiền:** {format_money(order.total)}đ\n"
    if order.description:
        content += _field("Ghi chú", order.description)
    content += _field("Trạng thái", order.status_value)
    return build_card(
        f"{label} - {order.code}",
        content,
        template="green" if change_type == "new" else "orange",
    )
