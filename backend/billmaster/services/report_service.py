# Overview: Read-only reports: credit dues, sales summary by payment mode, low stock.

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from decimal import Decimal

from flask import current_app, has_app_context

from ..errors import ValidationError
from ..money import ZERO, money_str, quantity_str, to_money
from billmaster.time_utils import parse_iso_date, to_iso_date, today as utc_today
from .credit_terms import PAYMENT_CREDIT, VALID_PAYMENT_MODES
from .entity_store import get_store
from .invoice_state import STATUS_ACTIVE, STATUS_PENDING_CANCEL
from .stock_ledger import low_stock_items


DUES_FILTERS = ("all", "overdue", "due_soon")
DEFAULT_DUE_SOON_DAYS = 7


def _due_soon_days(value: int | None) -> int:
    if value is not None:
        return value
    if has_app_context():
        return int(current_app.config.get("DUE_SOON_DAYS", DEFAULT_DUE_SOON_DAYS))
    return DEFAULT_DUE_SOON_DAYS


def due_status(due_date: date | None, today: date) -> str:
    """Label shown next to a due: "3 days overdue", "Due today", "Due in 5 days"."""
    if due_date is None:
        return "No due date"
    days = (due_date - today).days
    if days < 0:
        overdue = -days
        return f"{overdue} day overdue" if overdue == 1 else f"{overdue} days overdue"
    if days == 0:
        return "Due today"
    if days == 1:
        return "Due tomorrow"
    return f"Due in {days} days"


def credit_dues(
    *,
    store=None,
    dues_filter: str = "all",
    today: date | None = None,
    due_soon_days: int | None = None,
) -> dict:
    """
    Unpaid credit invoices, earliest due first.

    - all:      every non-cancelled credit invoice with balance_due > 0
    - overdue:  due date before today
    - due_soon: due today or within the next due_soon_days days
    """
    if dues_filter not in DUES_FILTERS:
        raise ValidationError(f"Invalid filter: {dues_filter}. Must be one of {list(DUES_FILTERS)}")

    store = store or get_store()
    today = today or utc_today()
    window = _due_soon_days(due_soon_days)

    invoices = store.filter(
        "Invoice",
        payment_mode=PAYMENT_CREDIT,
        status=[STATUS_ACTIVE, STATUS_PENDING_CANCEL],
        sort="due_date",
    )
    invoices = [inv for inv in invoices if to_money(inv.balance_due or ZERO) > 0]

    if dues_filter == "overdue":
        invoices = [inv for inv in invoices if inv.due_date and inv.due_date < today]
    elif dues_filter == "due_soon":
        horizon = today + timedelta(days=window)
        invoices = [inv for inv in invoices if inv.due_date and today <= inv.due_date <= horizon]

    rows = []
    total = ZERO
    for inv in invoices:
        balance = to_money(inv.balance_due)
        total += balance
        rows.append({
            "invoice_id": inv.id,
            "invoice_number": inv.invoice_number,
            "customer_id": inv.customer_id,
            "customer_name": inv.customer_name,
            "customer_phone": inv.customer_phone,
            "grand_total": money_str(inv.grand_total),
            "amount_paid": money_str(inv.amount_paid),
            "balance_due": money_str(balance),
            "credit_term": inv.credit_term,
            "due_date": to_iso_date(inv.due_date),
            "due_status": due_status(inv.due_date, today),
            "is_overdue": bool(inv.due_date and inv.due_date < today),
            "status": inv.status,
        })

    return {
        "filter": dues_filter,
        "today": to_iso_date(today),
        "count": len(rows),
        "total_due": money_str(total),
        "rows": rows,
    }


def sales_summary(
    *,
    store=None,
    start: str | date | None = None,
    end: str | date | None = None,
) -> dict:
    """
    Active invoices grouped by payment mode, with the outstanding credit
    still owed on them. start/end are inclusive calendar dates.
    """
    store = store or get_store()
    start_date = parse_iso_date(start, "start")
    end_date = parse_iso_date(end, "end")
    if start_date and end_date and start_date > end_date:
        raise ValidationError("start must be on or before end")

    start_dt = datetime.combine(start_date, time.min) if start_date else None
    end_dt = datetime.combine(end_date + timedelta(days=1), time.min) if end_date else None

    invoices = store.filter("Invoice", status=STATUS_ACTIVE, sort="created_date")
    if start_dt:
        invoices = [inv for inv in invoices if inv.created_date.replace(tzinfo=None) >= start_dt]
    if end_dt:
        invoices = [inv for inv in invoices if inv.created_date.replace(tzinfo=None) < end_dt]

    by_mode: dict[str, dict] = {
        mode: {"count": 0, "total": ZERO} for mode in VALID_PAYMENT_MODES
    }
    total_sales = ZERO
    total_discount = ZERO
    outstanding = ZERO
    for inv in invoices:
        grand_total = to_money(inv.grand_total)
        bucket = by_mode.setdefault(inv.payment_mode, {"count": 0, "total": ZERO})
        bucket["count"] += 1
        bucket["total"] += grand_total
        total_sales += grand_total
        total_discount += to_money(inv.discount or ZERO)
        outstanding += to_money(inv.balance_due or ZERO)

    return {
        "start": to_iso_date(start_date),
        "end": to_iso_date(end_date),
        "invoice_count": len(invoices),
        "total_sales": money_str(total_sales),
        "total_discount": money_str(total_discount),
        "outstanding_credit": money_str(outstanding),
        "by_payment_mode": {
            mode: {"count": bucket["count"], "total": money_str(bucket["total"])}
            for mode, bucket in by_mode.items()
        },
    }


def low_stock_report(*, store=None) -> dict:
    store = store or get_store()
    items = low_stock_items(store)
    return {
        "count": len(items),
        "rows": [
            {
                "item_id": item.id,
                "name": item.name,
                "unit": item.unit,
                "quantity_in_stock": quantity_str(item.quantity_in_stock),
                "minimum_stock_alert": quantity_str(item.minimum_stock_alert),
                "shortfall": quantity_str(max(Decimal("0"), item.minimum_stock_alert - item.quantity_in_stock)),
            }
            for item in items
        ],
    }
