from flask import Blueprint, jsonify, request, current_app

from ..decorators import require_actor, require_permission
from ..errors import BillingError
from ..services import report_service
from billmaster.time_utils import parse_iso_date


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/credit-dues")
@require_actor
@require_permission("VIEW_REPORTS")
def credit_dues_report():
    dues_filter = request.args.get("filter", "all")

    try:
        report = report_service.credit_dues(
            dues_filter=dues_filter,
            today=parse_iso_date(request.args.get("today"), "today"),
        )
        return jsonify(report), 200
    except BillingError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to build credit dues report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/sales-summary")
@require_actor
@require_permission("VIEW_REPORTS")
def sales_summary_report():
    start = request.args.get("start")
    end = request.args.get("end")

    try:
        report = report_service.sales_summary(start=start, end=end)
        return jsonify(report), 200
    except BillingError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to build sales summary")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/low-stock")
@require_actor
@require_permission("VIEW_REPORTS")
def low_stock_report():
    try:
        return jsonify(report_service.low_stock_report()), 200
    except BillingError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to build low stock report")
        return jsonify({"error": "Internal server error"}), 500
