# Overview: Signed stock adjustments for invoice creation and cancellation restore.

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Sequence

from ..errors import ValidationError
from ..money import quantity_str, to_quantity


logger = logging.getLogger(__name__)


def apply_stock_delta(store, item_id: int, signed_quantity):
    """
    Add a signed quantity to an item's stock (read, add, write back).

    Invoice creation passes -quantity, an approved cancellation +quantity.
    No floor is applied: stock can go negative when over-selling is allowed.

    Raises:
        NotFoundError: item does not exist
    """
    delta = to_quantity(signed_quantity, "quantity delta")
    item = store.get("Item", item_id, for_update=True)
    new_quantity = to_quantity(item.quantity_in_stock or 0) + delta

    if new_quantity < 0:
        logger.warning(
            "Item %s (%s) stock is now negative: %s", item.id, item.name, quantity_str(new_quantity)
        )

    return store.update("Item", item_id, {"quantity_in_stock": new_quantity})


def ensure_stock_available(store, lines: Sequence) -> None:
    """
    Reject lines that would take any item below zero.

    Only consulted when over-selling is switched off. Quantities of repeated
    items are summed first.
    """
    requested: dict[int, Decimal] = {}
    for line in lines:
        requested[line.item_id] = requested.get(line.item_id, Decimal("0")) + line.quantity

    insufficient = []
    for item_id, quantity in requested.items():
        item = store.get("Item", item_id)
        on_hand = to_quantity(item.quantity_in_stock or 0)
        if on_hand < quantity:
            insufficient.append({
                "item_id": item_id,
                "name": item.name,
                "requested_quantity": quantity_str(quantity),
                "on_hand": quantity_str(on_hand),
            })

    if insufficient:
        raise ValidationError(
            "Insufficient stock for one or more items",
            details={"items": insufficient},
        )


def low_stock_items(store) -> list:
    """Active items at or below their minimum stock alert, lowest stock first."""
    items = store.filter("Item", status="active", sort="name")
    low = [item for item in items if item.is_low_stock]
    return sorted(low, key=lambda item: (to_quantity(item.quantity_in_stock or 0), item.name))
