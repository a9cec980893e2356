"""
Cancellation workflow tests.

Verifies:
- active -> pending_cancel -> cancelled restores stock and credit exactly once
- pending_cancel -> active (reject) changes neither
- Transitions outside the state machine fail without side effects
- A failure partway through approval keeps nothing
"""

from decimal import Decimal

import pytest

from billmaster.errors import (
    InvalidTransitionError,
    PartialFailureError,
    PermissionDeniedError,
    ValidationError,
)
from billmaster.models import AuditLogEntry, Customer, Invoice, Item
from billmaster.services import invoice_service
from billmaster.services.invoice_service import InvoiceRequest
from billmaster.services.invoice_state import can_transition

from conftest import CREATED_AT, line


@pytest.fixture
def credit_invoice(db_session, clerk, customer, hammer, wire):
    """Credit invoice: 3 hammers + 2.5 m wire, 1000.00 total, 200 paid, 800 due."""
    request = InvoiceRequest.from_payload({
        "customer_id": customer.id,
        "items": [line(hammer, 3, "300.00"), line(wire, "2.5", "40.00")],
        "payment_mode": "credit",
        "credit_term": "net_30",
        "amount_paid": "200.00",
    })
    return invoice_service.create_invoice(request, clerk, now=CREATED_AT)


def _stock(db_session, item) -> Decimal:
    return db_session.get(Item, item.id).quantity_in_stock


def _credit(db_session, customer) -> Decimal:
    return db_session.get(Customer, customer.id).outstanding_credit


def _actions(db_session) -> list[str]:
    return [entry.action for entry in db_session.query(AuditLogEntry).order_by(AuditLogEntry.id).all()]


class TestStateMachine:
    @pytest.mark.parametrize(
        "from_status,to_status,allowed",
        [
            ("active", "pending_cancel", True),
            ("pending_cancel", "cancelled", True),
            ("pending_cancel", "active", True),
            ("active", "cancelled", False),
            ("active", "active", False),
            ("pending_cancel", "pending_cancel", False),
            ("cancelled", "active", False),
            ("cancelled", "pending_cancel", False),
            ("cancelled", "cancelled", False),
        ],
    )
    def test_transitions(self, from_status, to_status, allowed):
        assert can_transition(from_status, to_status) is allowed


class TestRequestCancellation:
    def test_request_marks_pending(self, db_session, clerk, credit_invoice):
        invoice = invoice_service.request_cancellation(credit_invoice.id, "wrong items billed", clerk)

        assert invoice.status == "pending_cancel"
        assert invoice.cancellation_reason == "wrong items billed"
        assert invoice.cancellation_requested_by == "clerk@shop.test"
        assert _actions(db_session) == ["Create Invoice", "Request Invoice Cancellation"]

    def test_request_twice_fails(self, db_session, clerk, credit_invoice):
        invoice_service.request_cancellation(credit_invoice.id, "wrong items billed", clerk)

        with pytest.raises(InvalidTransitionError):
            invoice_service.request_cancellation(credit_invoice.id, "again", clerk)
        assert _actions(db_session).count("Request Invoice Cancellation") == 1

    def test_pending_list(self, db_session, clerk, credit_invoice):
        assert invoice_service.pending_cancellations() == []
        invoice_service.request_cancellation(credit_invoice.id, None, clerk)
        assert [inv.id for inv in invoice_service.pending_cancellations()] == [credit_invoice.id]


class TestApproveCancellation:
    def test_approve_after_payment_restores_stock_and_credit(
        self, db_session, admin, clerk, customer, hammer, wire, credit_invoice
    ):
        invoice_service.record_payment(credit_invoice.id, "300", clerk)
        invoice_service.request_cancellation(credit_invoice.id, "customer returned goods", clerk)

        db_session.expire_all()
        assert _stock(db_session, hammer) == Decimal("7")
        assert _stock(db_session, wire) == Decimal("17.5")
        assert _credit(db_session, customer) == Decimal("500.00")

        invoice = invoice_service.approve_cancellation(credit_invoice.id, admin, now=CREATED_AT)

        assert invoice.status == "cancelled"
        assert invoice.cancelled_by == "owner@shop.test"
        assert invoice.cancelled_date is not None
        assert invoice.balance_due == Decimal("500.00")

        db_session.expire_all()
        assert _stock(db_session, hammer) == Decimal("10")
        assert _stock(db_session, wire) == Decimal("20")
        assert _credit(db_session, customer) == Decimal("0")

        approvals = db_session.query(AuditLogEntry).filter_by(action="Approve Invoice Cancellation").all()
        assert len(approvals) == 1
        assert approvals[0].user_role == "admin"
        assert approvals[0].details.startswith("Invoice INV-1 cancellation approved. Stock restored")

    def test_credit_floored_at_zero(self, db_session, admin, clerk, customer, credit_invoice):
        # Credit edited down outside the engine
        db_session.get(Customer, customer.id).outstanding_credit = Decimal("100.00")
        db_session.commit()

        invoice_service.request_cancellation(credit_invoice.id, None, clerk)
        invoice_service.approve_cancellation(credit_invoice.id, admin)

        db_session.expire_all()
        assert _credit(db_session, customer) == Decimal("0")

    def test_approve_twice_does_not_restore_twice(self, db_session, admin, clerk, hammer, credit_invoice):
        invoice_service.request_cancellation(credit_invoice.id, None, clerk)
        invoice_service.approve_cancellation(credit_invoice.id, admin)

        with pytest.raises(InvalidTransitionError):
            invoice_service.approve_cancellation(credit_invoice.id, admin)

        db_session.expire_all()
        assert _stock(db_session, hammer) == Decimal("10")
        assert _actions(db_session).count("Approve Invoice Cancellation") == 1

    def test_active_invoice_cannot_be_approved(self, db_session, admin, hammer, credit_invoice):
        with pytest.raises(InvalidTransitionError):
            invoice_service.approve_cancellation(credit_invoice.id, admin)

        db_session.expire_all()
        assert db_session.get(Invoice, credit_invoice.id).status == "active"
        assert _stock(db_session, hammer) == Decimal("7")

    def test_user_role_cannot_approve(self, db_session, clerk, credit_invoice):
        invoice_service.request_cancellation(credit_invoice.id, None, clerk)

        with pytest.raises(PermissionDeniedError):
            invoice_service.approve_cancellation(credit_invoice.id, clerk)

        db_session.expire_all()
        assert db_session.get(Invoice, credit_invoice.id).status == "pending_cancel"

    def test_missing_item_rolls_back_everything(
        self, db_session, admin, clerk, customer, hammer, wire, credit_invoice
    ):
        invoice_service.request_cancellation(credit_invoice.id, None, clerk)
        wire_id = wire.id
        db_session.delete(wire)
        db_session.commit()

        with pytest.raises(PartialFailureError) as exc_info:
            invoice_service.approve_cancellation(credit_invoice.id, admin)

        error = exc_info.value
        assert error.failed_step == f"restore_stock[item {wire_id}]"
        assert error.completed_steps == ["mark_cancelled", f"restore_stock[item {hammer.id}]"]
        assert error.rolled_back is True
        assert error.status_code == 404
        assert error.to_dict()["details"]["cause"] == "NotFoundError"

        db_session.expire_all()
        invoice = db_session.get(Invoice, credit_invoice.id)
        assert invoice.status == "pending_cancel"
        assert invoice.cancelled_by is None
        assert _stock(db_session, hammer) == Decimal("7")
        assert _credit(db_session, customer) == Decimal("800.00")
        assert "Approve Invoice Cancellation" not in _actions(db_session)


class TestRejectCancellation:
    def test_reject_reverts_to_active(self, db_session, admin, clerk, customer, hammer, credit_invoice):
        invoice_service.request_cancellation(credit_invoice.id, "wrong items billed", clerk)

        invoice = invoice_service.reject_cancellation(credit_invoice.id, "customer mistake", admin)

        assert invoice.status == "active"
        assert invoice.cancellation_reason == "customer mistake"

        db_session.expire_all()
        assert _stock(db_session, hammer) == Decimal("7")
        assert _credit(db_session, customer) == Decimal("800.00")
        assert _actions(db_session) == [
            "Create Invoice",
            "Request Invoice Cancellation",
            "Reject Invoice Cancellation",
        ]

    def test_reject_twice_fails(self, db_session, admin, clerk, credit_invoice):
        invoice_service.request_cancellation(credit_invoice.id, None, clerk)
        invoice_service.reject_cancellation(credit_invoice.id, "customer mistake", admin)

        with pytest.raises(InvalidTransitionError):
            invoice_service.reject_cancellation(credit_invoice.id, "customer mistake", admin)

    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_reason_required(self, db_session, admin, clerk, credit_invoice, reason):
        invoice_service.request_cancellation(credit_invoice.id, "wrong items billed", clerk)

        with pytest.raises(ValidationError, match="rejection reason"):
            invoice_service.reject_cancellation(credit_invoice.id, reason, admin)

        db_session.expire_all()
        invoice = db_session.get(Invoice, credit_invoice.id)
        assert invoice.status == "pending_cancel"
        assert invoice.cancellation_reason == "wrong items billed"

    def test_can_request_again_after_reject(self, db_session, admin, clerk, credit_invoice):
        invoice_service.request_cancellation(credit_invoice.id, None, clerk)
        invoice_service.reject_cancellation(credit_invoice.id, "customer mistake", admin)

        invoice = invoice_service.request_cancellation(credit_invoice.id, "second attempt", clerk)
        assert invoice.status == "pending_cancel"
