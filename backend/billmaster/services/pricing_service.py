# Overview: Invoice line items and the totals calculator (subtotal, discount, rounding, grand total).

"""
Invoice Pricing

WHY: Totals are derived from lines, never typed in. Line products stay
unrounded Decimals, so the subtotal is the exact sum of quantity * rate with
no binary floating-point drift, quantized to two places once.

ALGORITHM:
    subtotal       = sum(line.quantity * line.rate)
    after_discount = subtotal - discount
    rounding on:   grand_total = nearest whole unit of after_discount
                   rounding_off = grand_total - after_discount
    rounding off:  grand_total = after_discount, rounding_off = 0

The calculator is pure and does not police its inputs. validate_lines and
validate_discount are the finalize-time checks invoice creation runs first.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Iterable, Sequence

from ..errors import ValidationError
from ..money import ZERO, line_subtotal, money_str, quantity_str, round_to_nearest_integer, to_money, to_quantity


# Units sold in whole numbers only
COUNTABLE_UNITS = {"pcs", "box", "set"}


@dataclass(frozen=True)
class LineItem:
    """
    One invoice line.

    name/unit/hsn are a snapshot of the stock item taken when the invoice is
    created; they are blank on an incoming request until then.
    """

    item_id: int
    quantity: Decimal
    rate: Decimal
    name: str = ""
    unit: str = ""
    hsn: str = ""

    @property
    def subtotal(self) -> Decimal:
        return line_subtotal(self.quantity, self.rate)

    @classmethod
    def from_dict(cls, data: dict, position: int = 1) -> "LineItem":
        if not isinstance(data, dict):
            raise ValidationError(f"Line {position} must be an object")
        item_id = data.get("item_id")
        if item_id is None or isinstance(item_id, bool):
            raise ValidationError(f"Line {position}: item_id is required")
        try:
            item_id = int(item_id)
        except (TypeError, ValueError):
            raise ValidationError(f"Line {position}: item_id must be an integer")

        return cls(
            item_id=item_id,
            quantity=to_quantity(data.get("quantity", 1), f"Line {position} quantity"),
            rate=to_money(data.get("rate", 0), f"Line {position} rate"),
            name=str(data.get("name") or ""),
            unit=str(data.get("unit") or ""),
            hsn=str(data.get("hsn") or ""),
        )

    def with_snapshot(self, item) -> "LineItem":
        """Copy of this line carrying the stock item's current name/unit/HSN."""
        return replace(self, name=item.name, unit=item.unit, hsn=item.hsn_code or "")

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "name": self.name,
            "unit": self.unit,
            "hsn": self.hsn,
            "quantity": quantity_str(self.quantity),
            "rate": money_str(self.rate),
            "subtotal": money_str(self.subtotal),
        }


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    discount: Decimal
    after_discount: Decimal
    rounding_off: Decimal
    grand_total: Decimal

    def to_dict(self) -> dict:
        return {
            "subtotal": money_str(self.subtotal),
            "discount": money_str(self.discount),
            "after_discount": money_str(self.after_discount),
            "rounding_off": money_str(self.rounding_off),
            "grand_total": money_str(self.grand_total),
        }


def calculate_subtotal(lines: Iterable[LineItem]) -> Decimal:
    # Sum unrounded line products, quantize the total only
    return to_money(sum((line.subtotal for line in lines), ZERO), "subtotal")


def calculate_totals(
    lines: Sequence[LineItem],
    discount=ZERO,
    apply_rounding: bool = True,
) -> InvoiceTotals:
    """Derive subtotal, after-discount amount, rounding-off and grand total."""
    discount = to_money(discount, "discount")
    subtotal = calculate_subtotal(lines)
    after_discount = subtotal - discount

    if apply_rounding:
        grand_total, rounding_off = round_to_nearest_integer(after_discount)
    else:
        grand_total, rounding_off = after_discount, ZERO

    return InvoiceTotals(
        subtotal=subtotal,
        discount=discount,
        after_discount=after_discount,
        rounding_off=rounding_off,
        grand_total=grand_total,
    )


def validate_lines(lines: Sequence[LineItem]) -> None:
    """
    Finalize-time checks on snapshotted lines.

    Raises:
        ValidationError: no lines, rate <= 0, quantity <= 0, or a fractional
        quantity on a countable unit (pcs, box, set)
    """
    if not lines:
        raise ValidationError("Please add at least one item")

    bad_rates = [line.item_id for line in lines if line.rate <= 0]
    if bad_rates:
        raise ValidationError(
            "Please enter valid rates for all items",
            details={"item_ids": bad_rates},
        )

    for line in lines:
        if line.quantity <= 0:
            raise ValidationError(
                f"Quantity for {line.name or line.item_id} must be greater than zero",
                details={"item_id": line.item_id},
            )
        if line.unit in COUNTABLE_UNITS and line.quantity != line.quantity.to_integral_value():
            raise ValidationError(
                f"Quantity for {line.name} must be a whole number of {line.unit}",
                details={"item_id": line.item_id, "unit": line.unit},
            )


def validate_discount(discount: Decimal, subtotal: Decimal) -> None:
    """A discount is never negative and never larger than the subtotal."""
    if discount < 0:
        raise ValidationError("Discount cannot be negative")
    if discount > subtotal:
        raise ValidationError(
            "Discount cannot exceed the subtotal",
            details={"discount": money_str(discount), "subtotal": money_str(subtotal)},
        )
