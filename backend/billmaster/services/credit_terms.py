# Overview: Payment modes, named net-days credit terms, due dates and balance due.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal

from ..errors import ValidationError
from ..money import ZERO, money_str, to_money
from billmaster.time_utils import to_iso_date


PAYMENT_CASH = "cash"
PAYMENT_CARD = "card"
PAYMENT_UPI = "upi"
PAYMENT_CREDIT = "credit"

VALID_PAYMENT_MODES = [PAYMENT_CASH, PAYMENT_CARD, PAYMENT_UPI, PAYMENT_CREDIT]

CREDIT_TERMS = ["net_7", "net_15", "net_30", "net_45", "net_60", "net_90"]
DEFAULT_CREDIT_TERM = "net_7"


@dataclass(frozen=True)
class CreditTerms:
    """Payment fields of a new invoice."""

    payment_mode: str
    credit_term: str | None
    due_date: date | None
    amount_paid: Decimal
    balance_due: Decimal

    def to_dict(self) -> dict:
        return {
            "payment_mode": self.payment_mode,
            "credit_term": self.credit_term,
            "due_date": to_iso_date(self.due_date),
            "amount_paid": money_str(self.amount_paid),
            "balance_due": money_str(self.balance_due),
        }


def validate_payment_mode(payment_mode: str) -> None:
    if payment_mode not in VALID_PAYMENT_MODES:
        raise ValidationError(
            f"Invalid payment mode: {payment_mode}. Must be one of {VALID_PAYMENT_MODES}"
        )


def term_days(term: str) -> int:
    """Number of days in a net_N term code (net_30 -> 30)."""
    if term not in CREDIT_TERMS:
        raise ValidationError(f"Invalid credit term: {term}. Must be one of {CREDIT_TERMS}")
    return int(term.split("_", 1)[1])


def resolve_due_date(term: str, reference: datetime | date) -> date:
    """Due date = reference date + N days."""
    if isinstance(reference, datetime):
        reference = reference.date()
    return reference + timedelta(days=term_days(term))


def resolve_credit_terms(
    payment_mode: str,
    credit_term: str | None,
    grand_total: Decimal,
    amount_paid=ZERO,
    reference: datetime | date | None = None,
) -> CreditTerms:
    """
    Work out the payment fields of a new invoice.

    Credit sales may take an upfront part payment (0 <= amount_paid <=
    grand_total); the rest becomes balance_due, due N days after the
    reference instant. Every other mode is paid in full on the spot.
    """
    validate_payment_mode(payment_mode)
    grand_total = to_money(grand_total, "grand_total")

    if payment_mode != PAYMENT_CREDIT:
        return CreditTerms(
            payment_mode=payment_mode,
            credit_term=None,
            due_date=None,
            amount_paid=grand_total,
            balance_due=ZERO,
        )

    term = credit_term or DEFAULT_CREDIT_TERM
    if reference is None:
        raise ValidationError("A reference date is required for credit invoices")

    amount_paid = to_money(amount_paid if amount_paid is not None else ZERO, "amount_paid")
    if amount_paid < 0:
        raise ValidationError("Amount paid cannot be negative")
    if amount_paid > grand_total:
        raise ValidationError(
            "Amount paid cannot exceed the grand total",
            details={"amount_paid": money_str(amount_paid), "grand_total": money_str(grand_total)},
        )

    return CreditTerms(
        payment_mode=payment_mode,
        credit_term=term,
        due_date=resolve_due_date(term, reference),
        amount_paid=amount_paid,
        balance_due=grand_total - amount_paid,
    )
