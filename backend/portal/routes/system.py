# backend/portal/routes/system.py
"""
System health and portal entry endpoints.

/api/health reports database and identity provider readiness.
/api/user/employee-status is the portal entry check; it always answers 200
so the storefront can call it for any visitor.
"""

import time

from flask import Blueprint, current_app, jsonify

from ..extensions import db
from ..models import Order, User
from ..services import employee_service
from ..services.identity_provider import IdentityProviderError
from ..decorators import resolve_identity
from portal.time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        order_count = db.session.query(Order).count()
        employee_count = db.session.query(User).filter_by(is_employee=True).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "orders": order_count,
                "employees": employee_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_identity_provider_config() -> dict:
    """Configuration-only check; no call leaves the process."""
    kind = current_app.config.get("IDENTITY_PROVIDER")
    details = {"provider": kind, "admin_emails_configured": bool(current_app.config.get("ADMIN_EMAILS"))}

    if kind == "http" and not current_app.config.get("IDENTITY_PROVIDER_SECRET_KEY"):
        return {
            "status": "degraded",
            "warning": "IDENTITY_PROVIDER_SECRET_KEY is not set",
            "details": details,
        }
    return {"status": "healthy", "details": details}


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    identity_health = check_identity_provider_config()

    all_checks = [database_health, identity_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status = "unhealthy"
        http_status = 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status = "degraded"
        http_status = 200  # Degraded is still operational
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "identity_provider": identity_health,
        }
    }

    return response, http_status


@system_bp.get("/user/employee-status")
def employee_status():
    """
    {"is_employee": bool, "role": str | null}

    Anonymous callers and identity provider outages read as non-employees.
    """
    try:
        identity_id = resolve_identity()
    except IdentityProviderError:
        current_app.logger.exception("Failed to check employee status")
        return jsonify({"is_employee": False, "role": None}), 200

    return jsonify(employee_service.get_employee_status(identity_id)), 200
