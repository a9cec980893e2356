# Overview: Flask API routes for stock items and categories; parses input and returns JSON responses.

"""
Inventory API Routes

SECURITY:
- VIEW_INVENTORY permission required for listing and lookups
- MANAGE_INVENTORY permission required for create, update and delete
- Every write records one audit entry
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor, require_permission, current_policy
from ..errors import BillingError
from ..services import inventory_service


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


# =============================================================================
# ITEMS
# =============================================================================

@inventory_bp.get("/items")
@require_actor
@require_permission("VIEW_INVENTORY")
def list_items_route():
    """
    List stock items by name.

    Query params:
    - status: active | inactive
    - category_id
    - search: fragment of the item name
    """
    try:
        items = inventory_service.list_items(
            status=request.args.get("status"),
            category_id=request.args.get("category_id", type=int),
            search=request.args.get("search"),
        )
        return jsonify({"items": [item.to_dict() for item in items], "count": len(items)}), 200

    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list items")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/items/<int:item_id>")
@require_actor
@require_permission("VIEW_INVENTORY")
def get_item_route(item_id: int):
    try:
        return jsonify({"item": inventory_service.get_item(item_id).to_dict()}), 200
    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/items")
@require_actor
@require_permission("MANAGE_INVENTORY")
def create_item_route():
    """
    Add a stock item.

    Request body:
    {
        "name": "PVC Pipe 1in",
        "unit": "mtr",                  (pcs | box | kg | ltr | mtr | set)
        "quantity_in_stock": "120",
        "minimum_stock_alert": "20",
        "hsn_code": "3917",             (optional)
        "category_id": 2,               (optional)
        "status": "active"              (optional, default active)
    }

    Returns:
        201: Item created
        400: Invalid input
        404: Category not found
    """
    try:
        item = inventory_service.create_item(
            request.get_json(silent=True),
            g.current_actor,
            policy=current_policy(),
        )
        return jsonify({"item": item.to_dict()}), 201

    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.put("/items/<int:item_id>")
@require_actor
@require_permission("MANAGE_INVENTORY")
def update_item_route(item_id: int):
    """Partial update; only the fields sent are changed."""
    try:
        item = inventory_service.update_item(
            item_id,
            request.get_json(silent=True),
            g.current_actor,
            policy=current_policy(),
        )
        return jsonify({"item": item.to_dict()}), 200

    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update item")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.delete("/items/<int:item_id>")
@require_actor
@require_permission("MANAGE_INVENTORY")
def delete_item_route(item_id: int):
    try:
        inventory_service.delete_item(item_id, g.current_actor, policy=current_policy())
        return jsonify({"ok": True}), 200

    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete item")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# CATEGORIES
# =============================================================================

@inventory_bp.get("/categories")
@require_actor
@require_permission("VIEW_INVENTORY")
def list_categories_route():
    try:
        categories = inventory_service.list_categories()
        return jsonify({
            "categories": [category.to_dict() for category in categories],
            "count": len(categories),
        }), 200

    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list categories")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/categories")
@require_actor
@require_permission("MANAGE_INVENTORY")
def create_category_route():
    """
    Add a category.

    Returns:
        201: Category created
        400: Name missing
        409: Name already taken
    """
    try:
        category = inventory_service.create_category(
            request.get_json(silent=True),
            g.current_actor,
            policy=current_policy(),
        )
        return jsonify({"category": category.to_dict()}), 201

    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create category")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.put("/categories/<int:category_id>")
@require_actor
@require_permission("MANAGE_INVENTORY")
def update_category_route(category_id: int):
    try:
        category = inventory_service.update_category(
            category_id,
            request.get_json(silent=True),
            g.current_actor,
            policy=current_policy(),
        )
        return jsonify({"category": category.to_dict()}), 200

    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update category")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.delete("/categories/<int:category_id>")
@require_actor
@require_permission("MANAGE_INVENTORY")
def delete_category_route(category_id: int):
    """Delete a category. Its items are kept, without a category."""
    try:
        inventory_service.delete_category(category_id, g.current_actor, policy=current_policy())
        return jsonify({"ok": True}), 200

    except BillingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete category")
        return jsonify({"error": "Internal server error"}), 500
