"""New/updated order detection between two fetches."""

from typing import List, Sequence, Tuple

from core.models.canonical import Order


CHANGE_NEW = "new"
CHANGE_UPDATED = "updated"


def detect_order_changes(
    current: Sequence[Order],
    saved: Sequence[Order],
) -> List[Tuple[Order, str]]:
    """Classify current orders against the previously saved set.

    An order is ``new`` when its id was not saved before and ``updated`` when
    its ``modified_date`` moved. New orders come first.
    """
    saved_by_id = {o.id: o for o in saved if o is not None and o.id}

    new_orders = []
    updated_orders = []
    for order in current:
        if order is None or not order.id:
            continue
        previous = saved_by_id.get(order.id)
        if previous is None:
            new_orders.append((order, CHANGE_NEW))
        elif previous.modified_date != order.modified_date:
            updated_orders.append((order, CHANGE_UPDATED))

    return new_orders + updated_orders
