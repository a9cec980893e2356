from flask import Blueprint, jsonify, request, current_app

from ..decorators import require_actor, require_permission
from ..errors import BillingError
from ..services import audit_service
from ..services.entity_store import get_store


audit_bp = Blueprint("audit", __name__, url_prefix="/api/audit-log")


@audit_bp.get("/")
@require_actor
@require_permission("VIEW_AUDIT_LOG")
def list_audit_log():
    """
    Audit trail, newest first.

    Query params: action, invoice_number, user_email, limit (default 200)
    """
    try:
        entries = audit_service.list_audit_entries(
            get_store(),
            action=request.args.get("action"),
            invoice_number=request.args.get("invoice_number"),
            user_email=request.args.get("user_email"),
            limit=request.args.get("limit", 200, type=int),
        )
        return jsonify({
            "entries": [entry.to_dict() for entry in entries],
            "count": len(entries),
        }), 200
    except BillingError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to list audit log")
        return jsonify({"error": "Internal server error"}), 500
