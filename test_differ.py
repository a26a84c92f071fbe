"""
Line-Item Differ Tests

Validates:
1. Added/removed/quantity-changed classification by product id
2. Swapping sides swaps added and removed and negates deltas
3. Invoice revisions also compare the document total
"""

from decimal import Decimal

import pytest


def _item(product_id, quantity, name=None):
    from core.models.canonical import LineItem
    return LineItem(product_id=product_id, quantity=quantity, product_name=name or f"P{product_id}")


def _invoice(code, items, total=None, invoice_id=1):
    from core.models.canonical import Invoice
    return Invoice(id=invoice_id, code=code, invoice_details=items, total=total)


class TestDiffLineItems:
    """Test the generic differ."""

    def test_identical_sides(self):
        """Identical collections have no changes."""
        from reconciliation.differ import diff_line_items
        items = [_item(1, 2), _item(2, 5)]
        result = diff_line_items(items, list(items))
        assert result.has_changes is False
        assert result.added == [] and result.removed == [] and result.quantity_changes == []

    def test_classification(self):
        """Products only on one side are added/removed; shared ones compare quantity."""
        from reconciliation.differ import diff_line_items
        old = [_item(1, 2), _item(2, 5), _item(3, 1)]
        new = [_item(1, 2), _item(2, 3), _item(4, 7)]

        result = diff_line_items(old, new)

        assert result.has_changes is True
        assert [i.product_id for i in result.added] == [4]
        assert [i.product_id for i in result.removed] == [3]
        assert len(result.quantity_changes) == 1
        change = result.quantity_changes[0]
        assert change.product_id == 2
        assert change.old_quantity == Decimal("5")
        assert change.new_quantity == Decimal("3")
        assert change.difference == Decimal("-2")

    def test_symmetry(self):
        """diff(b, a) swaps added/removed and negates every delta."""
        from reconciliation.differ import diff_line_items
        a = [_item(1, 2), _item(2, 5)]
        b = [_item(2, 8), _item(3, 1)]

        forward = diff_line_items(a, b)
        backward = diff_line_items(b, a)

        assert [i.product_id for i in forward.added] == [i.product_id for i in backward.removed]
        assert [i.product_id for i in forward.removed] == [i.product_id for i in backward.added]
        assert forward.quantity_changes[0].difference == -backward.quantity_changes[0].difference

    def test_items_without_product_id_are_ignored(self):
        """Lines without a product id never show up."""
        from core.models.canonical import LineItem
        from reconciliation.differ import diff_line_items
        old = [_item(1, 1), LineItem(product_name="note line", quantity=1)]
        new = [_item(1, 1)]
        assert diff_line_items(old, new).has_changes is False

    def test_missing_collection(self):
        """A None side gives an empty, unchanged result."""
        from reconciliation.differ import diff_line_items
        assert diff_line_items(None, [_item(1, 1)]).has_changes is False
        assert diff_line_items([_item(1, 1)], None).has_changes is False

    def test_fractional_quantities_compare_exactly(self):
        """0.5 vs 0.50 is equal, 0.5 vs 0.51 is a change."""
        from reconciliation.differ import diff_line_items
        assert diff_line_items([_item(1, "0.5")], [_item(1, "0.50")]).has_changes is False
        assert diff_line_items([_item(1, "0.5")], [_item(1, "0.51")]).has_changes is True


class TestDiffDocuments:
    """Test the order/invoice and invoice/revision wrappers."""

    def test_order_vs_invoice_orientation(self):
        """Order lines are the old side, invoice lines the new side."""
        from core.models.canonical import Order
        from reconciliation.differ import diff_order_invoice
        order = Order(id=10, code="DH001", order_details=[_item(1, 5)])
        invoice = _invoice("HD001", [_item(1, 3)])

        result = diff_order_invoice(order, invoice)

        assert result.quantity_changes[0].old_quantity == Decimal("5")
        assert result.quantity_changes[0].new_quantity == Decimal("3")
        assert result.total_changed is False

    def test_total_only_change(self):
        """A changed total with identical lines is still a change."""
        from reconciliation.differ import diff_invoice_revision
        old = _invoice("HD001", [_item(1, 1)], total=100000)
        new = _invoice("HD001.01", [_item(1, 1)], total=120000, invoice_id=2)

        result = diff_invoice_revision(old, new)

        assert result.has_changes is True
        assert result.total_changed is True
        assert result.old_total == Decimal("100000")
        assert result.new_total == Decimal("120000")
        assert result.quantity_changes == []

    def test_total_check_without_line_items(self):
        """Totals are compared even when a side has no line items."""
        from reconciliation.differ import diff_invoice_revision
        old = _invoice("HD001", None, total=5)
        new = _invoice("HD001.01", None, total=6, invoice_id=2)
        assert diff_invoice_revision(old, new).total_changed is True

    def test_missing_total_skips_check(self):
        """No total on one side: no total change."""
        from reconciliation.differ import diff_invoice_revision
        old = _invoice("HD001", [_item(1, 1)], total=None)
        new = _invoice("HD001.01", [_item(1, 1)], total=6, invoice_id=2)
        result = diff_invoice_revision(old, new)
        assert result.total_changed is False
        assert result.has_changes is False


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
