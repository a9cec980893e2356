# Overview: Signed adjustments to a customer's outstanding credit, clamped at zero.

from __future__ import annotations

from decimal import Decimal

from ..errors import ValidationError
from ..money import ZERO, money_str, to_money


def apply_credit_delta(store, customer_id: int, signed_amount):
    """
    Add a signed amount to a customer's outstanding credit.

    The result is max(0, current + delta):
    - invoice created with balance due:      +balance_due
    - payment recorded:                      -payment amount
    - cancellation approved with balance:    -balance_due

    Raises:
        NotFoundError: customer does not exist
    """
    delta = to_money(signed_amount, "credit delta")
    customer = store.get("Customer", customer_id, for_update=True)
    current = to_money(customer.outstanding_credit or ZERO)
    new_balance = max(ZERO, current + delta)
    return store.update("Customer", customer_id, {"outstanding_credit": new_balance})


def validate_payment_amount(invoice, amount) -> Decimal:
    """
    A payment must satisfy 0 < amount <= invoice.balance_due.

    Returns the amount as a two-place Decimal.
    """
    amount = to_money(amount, "amount")
    balance_due = to_money(invoice.balance_due or ZERO)

    if amount <= 0:
        raise ValidationError("Please enter a valid payment amount")
    if amount > balance_due:
        raise ValidationError(
            "Payment amount cannot exceed balance due",
            details={"amount": money_str(amount), "balance_due": money_str(balance_due)},
        )
    return amount
