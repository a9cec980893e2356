from datetime import date, datetime

import pytest

from billmaster.errors import PermissionDeniedError, ValidationError
from billmaster.models import AuditLogEntry, Item
from billmaster.services import invoice_service, report_service, settings_service
from billmaster.services.audit_service import list_audit_entries
from billmaster.services.entity_store import get_store
from billmaster.services.invoice_service import InvoiceRequest
from billmaster.services.report_service import due_status

from conftest import line


TODAY = date(2026, 10, 18)


def _create(customer, item, clerk, *, mode="cash", term=None, paid="0", created=datetime(2026, 10, 1, 9, 0), rate="100.00"):
    request = InvoiceRequest.from_payload({
        "customer_id": customer.id,
        "items": [line(item, 1, rate)],
        "payment_mode": mode,
        "credit_term": term,
        "amount_paid": paid,
    })
    return invoice_service.create_invoice(request, clerk, now=created)


@pytest.mark.parametrize(
    "due,label",
    [
        (date(2026, 10, 15), "3 days overdue"),
        (date(2026, 10, 17), "1 day overdue"),
        (date(2026, 10, 18), "Due today"),
        (date(2026, 10, 19), "Due tomorrow"),
        (date(2026, 10, 23), "Due in 5 days"),
        (None, "No due date"),
    ],
)
def test_due_status_labels(due, label):
    assert due_status(due, TODAY) == label


class TestCreditDues:
    @pytest.fixture
    def dues(self, db_session, clerk, customer, hammer):
        # created 2026-10-01: net_7 -> due 10-08 (overdue); the net_15 one is paid in full
        overdue = _create(customer, hammer, clerk, mode="credit", term="net_7")
        _create(customer, hammer, clerk, mode="credit", term="net_15", paid="100.00")  # fully paid
        # created 2026-10-10: net_15 -> due 10-25 (due soon)
        soon = _create(customer, hammer, clerk, mode="credit", term="net_15", created=datetime(2026, 10, 10, 9, 0))
        # created 2026-10-18: net_30 -> due 11-17 (later)
        later = _create(customer, hammer, clerk, mode="credit", term="net_30", created=datetime(2026, 10, 18, 9, 0))
        _create(customer, hammer, clerk, mode="cash")
        return overdue, soon, later

    def test_all_unpaid_sorted_by_due_date(self, db_session, dues):
        overdue, soon, later = dues
        report = report_service.credit_dues(today=TODAY)

        assert [row["invoice_number"] for row in report["rows"]] == [
            overdue.invoice_number, soon.invoice_number, later.invoice_number
        ]
        assert report["total_due"] == "300.00"
        assert report["rows"][0]["due_status"] == "10 days overdue"
        assert report["rows"][0]["is_overdue"] is True

    def test_overdue_filter(self, db_session, dues):
        overdue, _, _ = dues
        report = report_service.credit_dues(dues_filter="overdue", today=TODAY)
        assert [row["invoice_number"] for row in report["rows"]] == [overdue.invoice_number]

    def test_due_soon_filter(self, db_session, dues):
        _, soon, _ = dues
        report = report_service.credit_dues(dues_filter="due_soon", today=TODAY)
        assert [row["invoice_number"] for row in report["rows"]] == [soon.invoice_number]
        assert report["rows"][0]["due_status"] == "Due in 7 days"

    def test_pending_cancel_still_owed_cancelled_dropped(self, db_session, admin, clerk, dues):
        overdue, soon, _ = dues
        invoice_service.request_cancellation(overdue.id, None, clerk)
        invoice_service.request_cancellation(soon.id, None, clerk)
        invoice_service.approve_cancellation(soon.id, admin)

        numbers = [row["invoice_number"] for row in report_service.credit_dues(today=TODAY)["rows"]]
        assert overdue.invoice_number in numbers
        assert soon.invoice_number not in numbers

    def test_unknown_filter(self, db_session):
        with pytest.raises(ValidationError):
            report_service.credit_dues(dues_filter="someday")


class TestSalesSummary:
    def test_groups_active_invoices_by_mode(self, db_session, admin, clerk, customer, hammer):
        _create(customer, hammer, clerk, mode="cash", rate="100.00")
        _create(customer, hammer, clerk, mode="upi", rate="250.00")
        _create(customer, hammer, clerk, mode="credit", term="net_30", paid="40.00", rate="90.00")
        cancelled = _create(customer, hammer, clerk, mode="card", rate="500.00")
        invoice_service.request_cancellation(cancelled.id, None, clerk)
        invoice_service.approve_cancellation(cancelled.id, admin)

        summary = report_service.sales_summary()

        assert summary["invoice_count"] == 3
        assert summary["total_sales"] == "440.00"
        assert summary["outstanding_credit"] == "50.00"
        assert summary["by_payment_mode"]["cash"] == {"count": 1, "total": "100.00"}
        assert summary["by_payment_mode"]["upi"] == {"count": 1, "total": "250.00"}
        assert summary["by_payment_mode"]["credit"] == {"count": 1, "total": "90.00"}
        assert summary["by_payment_mode"]["card"] == {"count": 0, "total": "0.00"}

    def test_date_range_is_inclusive(self, db_session, clerk, customer, hammer):
        _create(customer, hammer, clerk, created=datetime(2026, 10, 1, 9, 0))
        _create(customer, hammer, clerk, created=datetime(2026, 10, 5, 23, 59))
        _create(customer, hammer, clerk, created=datetime(2026, 10, 6, 0, 1))

        summary = report_service.sales_summary(start="2026-10-01", end="2026-10-05")
        assert summary["invoice_count"] == 2

    def test_reversed_range_rejected(self, db_session):
        with pytest.raises(ValidationError):
            report_service.sales_summary(start="2026-10-05", end="2026-10-01")


class TestLowStock:
    def test_active_items_at_or_below_alert(self, db_session, hammer, wire):
        db_session.add(Item(name="LED Bulb 9W", unit="pcs", quantity_in_stock=3, minimum_stock_alert=10))
        db_session.add(Item(name="Old Stock", unit="pcs", quantity_in_stock=0, minimum_stock_alert=5, status="inactive"))
        db_session.add(Item(name="Wall Primer", unit="ltr", quantity_in_stock=5, minimum_stock_alert=5))
        db_session.commit()

        report = report_service.low_stock_report()

        assert [row["name"] for row in report["rows"]] == ["LED Bulb 9W", "Wall Primer"]
        assert report["rows"][0]["shortfall"] == "7"


class TestSettingsAndAudit:
    def test_settings_require_admin(self, db_session, clerk):
        with pytest.raises(PermissionDeniedError):
            settings_service.update_shop_settings({"shop_name": "Mine"}, clerk)

    def test_shop_name_required(self, db_session, admin):
        with pytest.raises(ValidationError, match="Shop name is required"):
            settings_service.update_shop_settings({"invoice_prefix": "BM"}, admin)

    def test_unknown_field_rejected(self, db_session, admin):
        with pytest.raises(ValidationError, match="Field not allowed"):
            settings_service.update_shop_settings({"shop_name": "Mine", "theme": "dark"}, admin)

    @pytest.mark.parametrize("prefix", [123, ["INV"], {"p": "INV"}])
    def test_prefix_must_be_text(self, db_session, admin, prefix):
        with pytest.raises(ValidationError, match="invoice_prefix must be a string"):
            settings_service.update_shop_settings({"shop_name": "Mine", "invoice_prefix": prefix}, admin)
        assert settings_service.get_shop_settings() is None

    def test_prefix_falls_back_to_config(self, db_session, admin):
        assert settings_service.get_shop_settings() is None
        assert settings_service.invoice_prefix() == "INV"

        settings_service.update_shop_settings({"shop_name": "Demo Hardware"}, admin)
        assert settings_service.invoice_prefix() == "INV"

        settings_service.update_shop_settings({"invoice_prefix": "DH"}, admin)
        assert settings_service.invoice_prefix() == "DH"
        assert settings_service.get_shop_settings().shop_name == "Demo Hardware"

        entries = db_session.query(AuditLogEntry).filter_by(action="Update Settings").all()
        assert len(entries) == 2
        assert entries[0].details == "Shop settings updated"

    def test_audit_listing_newest_first(self, db_session, admin, clerk, customer, hammer):
        first = _create(customer, hammer, clerk)
        _create(customer, hammer, clerk)
        invoice_service.request_cancellation(first.id, "typo", clerk)

        entries = list_audit_entries(get_store())
        assert [entry.action for entry in entries] == [
            "Request Invoice Cancellation", "Create Invoice", "Create Invoice"
        ]
        only_first = list_audit_entries(get_store(), invoice_number=first.invoice_number)
        assert len(only_first) == 2
