# Overview: Flask API routes for the invoice cancellation workflow.

"""
Cancellation API Routes

WORKFLOW:
    POST /api/cancellations/<id>/request   active -> pending_cancel (any billing user)
    POST /api/cancellations/<id>/approve   pending_cancel -> cancelled (admin)
    POST /api/cancellations/<id>/reject    pending_cancel -> active (admin)
    GET  /api/cancellations/pending        approval queue (admin)

Approval restores stock and customer credit; rejection changes neither.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor, require_permission, current_policy
from ..errors import BillingError
from ..services import invoice_service


cancellations_bp = Blueprint("cancellations", __name__, url_prefix="/api/cancellations")


@cancellations_bp.post("/<int:invoice_id>/request")
@require_actor
@require_permission("REQUEST_CANCELLATION")
def request_cancellation_route(invoice_id: int):
    """Request body: {"reason": "wrong items billed"} (reason optional)."""
    try:
        data = request.get_json(silent=True) or {}
        invoice = invoice_service.request_cancellation(
            invoice_id,
            data.get("reason"),
            g.current_actor,
            policy=current_policy(),
        )
        return jsonify({"invoice": invoice.to_dict()}), 200

    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to request cancellation")
        return jsonify({"error": "Internal server error"}), 500


@cancellations_bp.post("/<int:invoice_id>/approve")
@require_actor
@require_permission("APPROVE_CANCELLATION")
def approve_cancellation_route(invoice_id: int):
    """
    Approve a pending cancellation.

    Returns:
        200: Invoice cancelled, stock and credit restored
        404: Invoice not found
        409: Invoice is not pending cancellation
        4xx/503 with details.failed_step: a step failed and nothing was kept
    """
    try:
        invoice = invoice_service.approve_cancellation(
            invoice_id,
            g.current_actor,
            policy=current_policy(),
        )
        return jsonify({"invoice": invoice.to_dict()}), 200

    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to approve cancellation")
        return jsonify({"error": "Internal server error"}), 500


@cancellations_bp.post("/<int:invoice_id>/reject")
@require_actor
@require_permission("APPROVE_CANCELLATION")
def reject_cancellation_route(invoice_id: int):
    """Request body: {"reason": "customer mistake"} (reason required)."""
    try:
        data = request.get_json(silent=True) or {}
        invoice = invoice_service.reject_cancellation(
            invoice_id,
            data.get("reason"),
            g.current_actor,
            policy=current_policy(),
        )
        return jsonify({"invoice": invoice.to_dict()}), 200

    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reject cancellation")
        return jsonify({"error": "Internal server error"}), 500


@cancellations_bp.get("/pending")
@require_actor
@require_permission("APPROVE_CANCELLATION")
def pending_cancellations_route():
    try:
        invoices = invoice_service.pending_cancellations()
        return jsonify({
            "invoices": [invoice.to_dict() for invoice in invoices],
            "count": len(invoices),
        }), 200
    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list pending cancellations")
        return jsonify({"error": "Internal server error"}), 500
