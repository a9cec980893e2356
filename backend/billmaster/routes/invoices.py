# Overview: Flask API routes for invoices and payments; parses input and returns JSON responses.

"""
Invoice API Routes

WHY: Billing screens create invoices, look them up and take payments on
credit invoices through these endpoints. All money arrives and leaves as
decimal strings ("339.75") so no amount ever passes through a float.

SECURITY:
- CREATE_INVOICE permission required for creating invoices
- VIEW_INVOICES permission required for lookups and totals preview
- RECORD_PAYMENT permission required for payments
- Every state change writes one audit entry
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor, require_permission, current_policy
from ..errors import BillingError, ValidationError
from ..services import invoice_service
from ..services.entity_store import get_store
from ..services.invoice_service import InvoiceRequest
from ..services.pricing_service import LineItem, calculate_totals


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


# =============================================================================
# INVOICE CREATION
# =============================================================================

@invoices_bp.post("/")
@require_actor
@require_permission("CREATE_INVOICE")
def create_invoice_route():
    """
    Create an invoice.

    Request body:
    {
        "customer_id": 7,
        "items": [{"item_id": 1, "quantity": "3", "rate": "100.00"}, ...],
        "discount": "10.25",            (optional, default 0)
        "apply_rounding": true,         (optional, default true)
        "payment_mode": "credit",       (cash | card | upi | credit)
        "credit_term": "net_30",        (credit only, default net_7)
        "amount_paid": "200.00"         (credit only, upfront part payment)
    }

    Returns:
        201: Invoice created
        400: Invalid input
        403: Permission denied
        404: Customer or item not found
        500: Server error
    """
    try:
        invoice_request = InvoiceRequest.from_payload(request.get_json(silent=True))
        invoice = invoice_service.create_invoice(
            invoice_request,
            g.current_actor,
            policy=current_policy(),
        )
        return jsonify({"invoice": invoice.to_dict()}), 201

    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.post("/preview")
@require_actor
@require_permission("VIEW_INVOICES")
def preview_totals_route():
    """
    Price a set of lines without saving anything (live totals on the billing form).

    Request body: {"items": [...], "discount": "0", "apply_rounding": true}
    """
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON payload")
        raw_lines = data.get("items") or []
        if not isinstance(raw_lines, list):
            raise ValidationError("items must be a list")

        lines = [LineItem.from_dict(line, i) for i, line in enumerate(raw_lines, start=1)]
        apply_rounding = data.get("apply_rounding", True)
        if not isinstance(apply_rounding, bool):
            raise ValidationError("apply_rounding must be true or false")

        totals = calculate_totals(lines, data.get("discount") or 0, apply_rounding)
        return jsonify({
            "lines": [line.to_dict() for line in lines],
            "totals": totals.to_dict(),
        }), 200

    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to preview invoice totals")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# INVOICE QUERIES
# =============================================================================

@invoices_bp.get("/")
@require_actor
@require_permission("VIEW_INVOICES")
def list_invoices_route():
    """
    List invoices, newest first.

    Query params:
    - status: active | pending_cancel | cancelled
    - payment_mode: cash | card | upi | credit
    - customer_id
    - limit (default 100)
    """
    try:
        invoices = invoice_service.list_invoices(
            status=request.args.get("status"),
            payment_mode=request.args.get("payment_mode"),
            customer_id=request.args.get("customer_id", type=int),
            limit=request.args.get("limit", 100, type=int),
        )
        return jsonify({
            "invoices": [invoice.to_dict() for invoice in invoices],
            "count": len(invoices),
        }), 200

    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list invoices")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/<int:invoice_id>")
@require_actor
@require_permission("VIEW_INVOICES")
def get_invoice_route(invoice_id: int):
    try:
        invoice = invoice_service.get_invoice(invoice_id)
        return jsonify({"invoice": invoice.to_dict()}), 200
    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to get invoice")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PAYMENTS
# =============================================================================

@invoices_bp.post("/<int:invoice_id>/payments")
@require_actor
@require_permission("RECORD_PAYMENT")
def record_payment_route(invoice_id: int):
    """
    Record a payment against a credit invoice.

    Request body: {"amount": "300.00"}

    Returns:
        201: Payment recorded; updated invoice and customer balance
        400: Amount missing, not positive, above the balance due, or not a credit invoice
        404: Invoice not found
        409: Invoice is cancelled
    """
    try:
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON payload")
        if data.get("amount") is None:
            return jsonify({"error": "amount is required"}), 400

        invoice = invoice_service.record_payment(
            invoice_id,
            data["amount"],
            g.current_actor,
            policy=current_policy(),
        )
        customer = get_store().get("Customer", invoice.customer_id)
        return jsonify({
            "invoice": invoice.to_dict(),
            "customer": customer.to_dict(),
        }), 201

    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Internal server error"}), 500
