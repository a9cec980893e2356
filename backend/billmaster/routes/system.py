"""
System health and version endpoints.

/health checks that the billing tables answer queries; /version reports
non-sensitive deployment information.
"""

import sys
import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Customer, Invoice, Item
from billmaster.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity with a count on each core table.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        details = {
            "items": db.session.query(Item).count(),
            "customers": db.session.query(Customer).count(),
            "invoices": db.session.query(Invoice).count(),
        }
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: database healthy
    - 503: database unhealthy
    """
    start_time = time.time()
    database_health = check_database_health()
    http_status = 200 if database_health["status"] == "healthy" else 503

    return {
        "status": database_health["status"],
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {"database": database_health},
    }, http_status


@system_bp.get("/version")
def version():
    env = "production" if not current_app.debug else "development"
    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }
