from __future__ import annotations

from flask import Blueprint, jsonify, request, g, current_app

from ..decorators import require_actor, require_permission, current_policy
from ..errors import BillingError
from ..services import settings_service


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


def _settings_payload(settings) -> dict:
    if settings is None:
        return {
            "configured": False,
            "shop_name": None,
            "invoice_prefix": settings_service.configured_prefix(),
        }
    return {"configured": True, **settings.to_dict()}


@settings_bp.get("/")
@require_actor
def get_settings():
    try:
        return jsonify({"settings": _settings_payload(settings_service.get_shop_settings())}), 200
    except BillingError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to load shop settings")
        return jsonify({"error": "Internal server error"}), 500


@settings_bp.put("/")
@require_actor
@require_permission("MANAGE_SETTINGS")
def update_settings():
    try:
        settings = settings_service.update_shop_settings(
            request.get_json(silent=True),
            g.current_actor,
            policy=current_policy(),
        )
        return jsonify({"settings": _settings_payload(settings)}), 200
    except BillingError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to update shop settings")
        return jsonify({"error": "Internal server error"}), 500
