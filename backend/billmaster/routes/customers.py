# Overview: Flask API routes for customers; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor, require_permission, current_policy
from ..errors import BillingError
from ..services import customers_service


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("/")
@require_actor
@require_permission("VIEW_CUSTOMERS")
def list_customers_route():
    """
    List customers by name.

    Query params:
    - search: fragment of the name or phone number
    """
    try:
        customers = customers_service.list_customers(search=request.args.get("search"))
        return jsonify({
            "customers": [customer.to_dict() for customer in customers],
            "count": len(customers),
        }), 200

    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list customers")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/<int:customer_id>")
@require_actor
@require_permission("VIEW_CUSTOMERS")
def get_customer_route(customer_id: int):
    try:
        customer = customers_service.get_customer(customer_id)
        return jsonify({"customer": customer.to_dict()}), 200
    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.post("/")
@require_actor
@require_permission("MANAGE_CUSTOMERS")
def create_customer_route():
    """
    Add a customer.

    Request body:
    {
        "name": "Patel Electricals",
        "phone": "9800000002",
        "email", "address", "city", "state", "pincode", "gstin",   (optional)
        "credit_eligible": true                                    (optional)
    }

    Returns:
        201: Customer created
        400: Invalid input (outstanding_credit is never accepted)
    """
    try:
        customer = customers_service.create_customer(
            request.get_json(silent=True),
            g.current_actor,
            policy=current_policy(),
        )
        return jsonify({"customer": customer.to_dict()}), 201

    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.put("/<int:customer_id>")
@require_actor
@require_permission("MANAGE_CUSTOMERS")
def update_customer_route(customer_id: int):
    try:
        customer = customers_service.update_customer(
            customer_id,
            request.get_json(silent=True),
            g.current_actor,
            policy=current_policy(),
        )
        return jsonify({"customer": customer.to_dict()}), 200

    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500
