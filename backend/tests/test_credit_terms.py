from datetime import date, datetime
from decimal import Decimal

import pytest

from billmaster.errors import ValidationError
from billmaster.services.credit_terms import (
    CREDIT_TERMS,
    resolve_credit_terms,
    resolve_due_date,
    term_days,
)


@pytest.mark.parametrize("term,days", [("net_7", 7), ("net_30", 30), ("net_90", 90)])
def test_term_days(term, days):
    assert term_days(term) == days


def test_unknown_term_rejected():
    with pytest.raises(ValidationError, match="Invalid credit term"):
        term_days("net_10")


def test_every_term_resolves():
    for term in CREDIT_TERMS:
        assert resolve_due_date(term, date(2026, 1, 1)) > date(2026, 1, 1)


def test_due_date_counts_from_reference_date():
    reference = datetime(2026, 10, 18, 23, 59)
    assert resolve_due_date("net_30", reference) == date(2026, 11, 17)


def test_non_credit_paid_in_full():
    terms = resolve_credit_terms("upi", "net_30", Decimal("340.00"), Decimal("0"))

    assert terms.credit_term is None
    assert terms.due_date is None
    assert terms.amount_paid == Decimal("340.00")
    assert terms.balance_due == Decimal("0")


def test_credit_with_part_payment():
    terms = resolve_credit_terms(
        "credit", "net_30", Decimal("1000.00"), Decimal("200.00"),
        reference=datetime(2026, 10, 18, 10, 0),
    )

    assert terms.credit_term == "net_30"
    assert terms.due_date == date(2026, 11, 17)
    assert terms.amount_paid == Decimal("200.00")
    assert terms.balance_due == Decimal("800.00")
    assert terms.to_dict()["balance_due"] == "800.00"


def test_credit_defaults_to_net_7():
    terms = resolve_credit_terms("credit", None, Decimal("100"), reference=date(2026, 10, 18))
    assert terms.credit_term == "net_7"
    assert terms.due_date == date(2026, 10, 25)
    assert terms.balance_due == Decimal("100.00")


@pytest.mark.parametrize("paid", ["-0.01", "1000.01"])
def test_credit_amount_paid_out_of_range(paid):
    with pytest.raises(ValidationError):
        resolve_credit_terms("credit", "net_30", Decimal("1000.00"), Decimal(paid), reference=date(2026, 10, 18))


def test_invalid_payment_mode():
    with pytest.raises(ValidationError, match="Invalid payment mode"):
        resolve_credit_terms("cheque", None, Decimal("10"))
