"""
API tests for Bill Master.

Verifies:
- Requests without the identity headers return 401
- The user role is denied admin-only operations (403)
- Billing errors map to their status codes with {"error", "details"}
- Money crosses the API as decimal strings
"""

from decimal import Decimal

import pytest

from billmaster.models import Customer, Item

from conftest import line


def _create_credit_invoice(client, headers, customer, hammer, wire):
    resp = client.post("/api/invoices/", headers=headers, json={
        "customer_id": customer.id,
        "items": [line(hammer, 3, "300.00"), line(wire, "2.5", "40.00")],
        "payment_mode": "credit",
        "credit_term": "net_30",
        "amount_paid": "200.00",
    })
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["invoice"]


# =============================================================================
# IDENTITY AND PERMISSIONS
# =============================================================================


class TestIdentity:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/invoices/"),
            ("POST", "/api/invoices/"),
            ("POST", "/api/invoices/1/payments"),
            ("POST", "/api/cancellations/1/approve"),
            ("GET", "/api/reports/credit-dues"),
            ("GET", "/api/audit-log/"),
            ("PUT", "/api/settings/"),
        ],
    )
    def test_requires_identity(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_unknown_role_rejected(self, client, db_session):
        resp = client.get("/api/invoices/", headers={"X-User-Email": "x@shop.test", "X-User-Role": "owner"})
        assert resp.status_code == 401

    def test_user_cannot_read_audit_log(self, client, db_session, clerk_headers):
        resp = client.get("/api/audit-log/", headers=clerk_headers)
        assert resp.status_code == 403
        assert resp.get_json()["required_permission"] == "VIEW_AUDIT_LOG"

    def test_user_cannot_change_settings(self, client, db_session, clerk_headers):
        resp = client.put("/api/settings/", headers=clerk_headers, json={"shop_name": "Mine"})
        assert resp.status_code == 403


# =============================================================================
# INVOICES AND PAYMENTS
# =============================================================================


class TestInvoiceRoutes:
    def test_create_invoice(self, client, db_session, clerk_headers, customer, hammer, wire):
        resp = client.post("/api/invoices/", headers=clerk_headers, json={
            "customer_id": customer.id,
            "items": [line(hammer, 3, "100.00"), line(wire, 1, "50.00")],
            "discount": "10.25",
            "payment_mode": "cash",
        })

        assert resp.status_code == 201
        invoice = resp.get_json()["invoice"]
        assert invoice["invoice_number"] == "INV-1"
        assert invoice["subtotal"] == "350.00"
        assert invoice["grand_total"] == "340.00"
        assert invoice["rounding_off"] == "0.25"
        assert invoice["balance_due"] == "0.00"
        assert invoice["items"][0]["name"] == "Claw Hammer"

        db_session.expire_all()
        assert db_session.get(Item, hammer.id).quantity_in_stock == Decimal("7")

    def test_validation_error_shape(self, client, db_session, clerk_headers, customer, hammer):
        resp = client.post("/api/invoices/", headers=clerk_headers, json={
            "customer_id": customer.id,
            "items": [line(hammer, 1, "0")],
        })

        assert resp.status_code == 400
        body = resp.get_json()
        assert body["error"] == "Please enter valid rates for all items"
        assert body["details"] == {"item_ids": [hammer.id]}

    def test_missing_customer_is_404(self, client, db_session, clerk_headers, hammer):
        resp = client.post("/api/invoices/", headers=clerk_headers, json={
            "customer_id": 9999,
            "items": [line(hammer, 1, "10.00")],
        })
        assert resp.status_code == 404

    def test_preview_totals(self, client, db_session, clerk_headers, hammer):
        resp = client.post("/api/invoices/preview", headers=clerk_headers, json={
            "items": [line(hammer, 3, "100.00")],
            "discount": "0.40",
        })

        assert resp.status_code == 200
        assert resp.get_json()["totals"]["grand_total"] == "300.00"

    def test_list_and_get(self, client, db_session, clerk_headers, customer, hammer, wire):
        created = _create_credit_invoice(client, clerk_headers, customer, hammer, wire)

        listed = client.get("/api/invoices/?payment_mode=credit", headers=clerk_headers)
        assert listed.status_code == 200
        assert listed.get_json()["count"] == 1

        fetched = client.get(f"/api/invoices/{created['id']}", headers=clerk_headers)
        assert fetched.get_json()["invoice"]["due_date"] == created["due_date"]

        missing = client.get("/api/invoices/424242", headers=clerk_headers)
        assert missing.status_code == 404
        assert missing.get_json()["details"] == {"entity_type": "Invoice", "id": 424242}

    def test_record_payment(self, client, db_session, clerk_headers, customer, hammer, wire):
        created = _create_credit_invoice(client, clerk_headers, customer, hammer, wire)

        resp = client.post(f"/api/invoices/{created['id']}/payments", headers=clerk_headers, json={"amount": "300"})

        assert resp.status_code == 201
        body = resp.get_json()
        assert body["invoice"]["balance_due"] == "500.00"
        assert body["invoice"]["amount_paid"] == "500.00"
        assert body["customer"]["outstanding_credit"] == "500.00"

    def test_overpayment_rejected(self, client, db_session, clerk_headers, customer, hammer, wire):
        created = _create_credit_invoice(client, clerk_headers, customer, hammer, wire)

        resp = client.post(f"/api/invoices/{created['id']}/payments", headers=clerk_headers, json={"amount": "900"})

        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Payment amount cannot exceed balance due"

    def test_payment_amount_required(self, client, db_session, clerk_headers, customer, hammer, wire):
        created = _create_credit_invoice(client, clerk_headers, customer, hammer, wire)
        resp = client.post(f"/api/invoices/{created['id']}/payments", headers=clerk_headers, json={})
        assert resp.status_code == 400

    def test_payment_body_must_be_an_object(self, client, db_session, clerk_headers, customer, hammer, wire):
        created = _create_credit_invoice(client, clerk_headers, customer, hammer, wire)
        resp = client.post(f"/api/invoices/{created['id']}/payments", headers=clerk_headers, json=[1])
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid JSON payload"


# =============================================================================
# CANCELLATIONS
# =============================================================================


class TestCancellationRoutes:
    def test_full_workflow(self, client, db_session, clerk_headers, admin_headers, customer, hammer, wire):
        created = _create_credit_invoice(client, clerk_headers, customer, hammer, wire)
        invoice_id = created["id"]

        requested = client.post(
            f"/api/cancellations/{invoice_id}/request", headers=clerk_headers, json={"reason": "duplicate bill"}
        )
        assert requested.status_code == 200
        assert requested.get_json()["invoice"]["status"] == "pending_cancel"

        pending = client.get("/api/cancellations/pending", headers=admin_headers)
        assert [inv["id"] for inv in pending.get_json()["invoices"]] == [invoice_id]

        denied = client.post(f"/api/cancellations/{invoice_id}/approve", headers=clerk_headers)
        assert denied.status_code == 403

        approved = client.post(f"/api/cancellations/{invoice_id}/approve", headers=admin_headers)
        assert approved.status_code == 200
        assert approved.get_json()["invoice"]["status"] == "cancelled"
        assert approved.get_json()["invoice"]["cancelled_by"] == "owner@shop.test"

        again = client.post(f"/api/cancellations/{invoice_id}/approve", headers=admin_headers)
        assert again.status_code == 409

        db_session.expire_all()
        assert db_session.get(Item, hammer.id).quantity_in_stock == Decimal("10")
        assert db_session.get(Customer, customer.id).outstanding_credit == Decimal("0")

    def test_reject_requires_reason(self, client, db_session, clerk_headers, admin_headers, customer, hammer, wire):
        created = _create_credit_invoice(client, clerk_headers, customer, hammer, wire)
        client.post(f"/api/cancellations/{created['id']}/request", headers=clerk_headers, json={})

        missing = client.post(f"/api/cancellations/{created['id']}/reject", headers=admin_headers, json={})
        assert missing.status_code == 400

        rejected = client.post(
            f"/api/cancellations/{created['id']}/reject", headers=admin_headers, json={"reason": "customer mistake"}
        )
        assert rejected.status_code == 200
        assert rejected.get_json()["invoice"]["status"] == "active"
        assert rejected.get_json()["invoice"]["cancellation_reason"] == "customer mistake"


# =============================================================================
# REPORTS, AUDIT, SETTINGS, HEALTH
# =============================================================================


class TestReadRoutes:
    def test_credit_dues(self, client, db_session, clerk_headers, customer, hammer, wire):
        _create_credit_invoice(client, clerk_headers, customer, hammer, wire)

        resp = client.get("/api/reports/credit-dues?filter=all", headers=clerk_headers)
        assert resp.status_code == 200
        assert resp.get_json()["total_due"] == "800.00"

        bad = client.get("/api/reports/credit-dues?filter=later", headers=clerk_headers)
        assert bad.status_code == 400

    def test_sales_summary_and_low_stock(self, client, db_session, clerk_headers, customer, hammer, wire):
        _create_credit_invoice(client, clerk_headers, customer, hammer, wire)

        summary = client.get("/api/reports/sales-summary", headers=clerk_headers)
        assert summary.get_json()["by_payment_mode"]["credit"] == {"count": 1, "total": "1000.00"}

        low = client.get("/api/reports/low-stock", headers=clerk_headers)
        assert low.status_code == 200
        assert low.get_json()["count"] == 0

    def test_audit_log_for_admin(self, client, db_session, clerk_headers, admin_headers, customer, hammer, wire):
        created = _create_credit_invoice(client, clerk_headers, customer, hammer, wire)

        resp = client.get(f"/api/audit-log/?invoice_number={created['invoice_number']}", headers=admin_headers)
        assert resp.status_code == 200
        entries = resp.get_json()["entries"]
        assert [entry["action"] for entry in entries] == ["Create Invoice"]
        assert entries[0]["user_email"] == "clerk@shop.test"

    def test_settings_roundtrip(self, client, db_session, clerk_headers, admin_headers):
        before = client.get("/api/settings/", headers=clerk_headers).get_json()["settings"]
        assert before == {"configured": False, "shop_name": None, "invoice_prefix": "INV"}

        resp = client.put("/api/settings/", headers=admin_headers, json={
            "shop_name": "Demo Hardware",
            "invoice_prefix": "DH",
        })
        assert resp.status_code == 200

        after = client.get("/api/settings/", headers=clerk_headers).get_json()["settings"]
        assert after["configured"] is True
        assert after["invoice_prefix"] == "DH"
        assert after["updated_by"] == "owner@shop.test"

    def test_numeric_prefix_rejected(self, client, db_session, admin_headers):
        resp = client.put("/api/settings/", headers=admin_headers, json={"shop_name": "S", "invoice_prefix": 123})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "invoice_prefix must be a string"

    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json()["checks"]["database"]["status"] == "healthy"
