# Overview: Decimal helpers for currency amounts, quantities and whole-unit rounding.

"""
Money & Rounding

All monetary values are Decimal quantized to two places; quantities are
Decimal quantized to three places (kg, ltr and mtr items sell fractions).
Binary floats never take part in arithmetic: a float coming from JSON is
converted through its string form first.

ROUNDING POLICY:
    Grand totals round to the nearest whole currency unit with ties going
    away from zero (ROUND_HALF_UP on Decimal), so 10.50 -> 11 and
    -10.50 -> -11.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .errors import ValidationError


CENT = Decimal("0.01")
QUANTITY_STEP = Decimal("0.001")
ZERO = Decimal("0.00")


def _to_decimal(value, field: str) -> Decimal:
    if value is None:
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        raise ValidationError(f"{field} must be a number")

    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return result


def to_money(value, field: str = "amount") -> Decimal:
    """Coerce to a Decimal with exactly two places."""
    return _to_decimal(value, field).quantize(CENT, rounding=ROUND_HALF_UP)


def to_quantity(value, field: str = "quantity") -> Decimal:
    """Coerce to a Decimal with three places."""
    return _to_decimal(value, field).quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)


def line_subtotal(quantity: Decimal, rate: Decimal) -> Decimal:
    """Exact quantity * rate. Callers round once, on the summed total."""
    return quantity * rate


def round_to_nearest_integer(amount: Decimal) -> tuple[Decimal, Decimal]:
    """
    Round an amount to the nearest whole unit.

    Returns (rounded_amount, delta) where delta = rounded_amount - amount.
    The delta is signed and its magnitude never exceeds 0.50.
    """
    amount = to_money(amount)
    rounded = amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    rounded = rounded.quantize(CENT)
    return rounded, rounded - amount


def format_money(amount: Decimal, symbol: str = "₹") -> str:
    """Human readable amount for audit details, e.g. ₹1,250.00."""
    return f"{symbol}{to_money(amount):,.2f}"


def money_str(value) -> str | None:
    """Serialize an amount for JSON without passing through float."""
    if value is None:
        return None
    return f"{to_money(value):.2f}"


def quantity_str(value) -> str | None:
    """Serialize a quantity, dropping trailing zeros (3.000 -> "3", 1.500 -> "1.5")."""
    if value is None:
        return None
    q = to_quantity(value)
    if q == q.to_integral_value():
        return str(q.quantize(Decimal("1")))
    return format(q.normalize(), "f")
