# backend/stockai/routes/system.py
"""
System health endpoint.

Checks database connectivity and that access-control reference data
(modules, system roles) has been seeded.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import User, Role, Module
from ..services.permission_service import super_admin_slug
from ..formats import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"users": user_count},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_access_control_health() -> dict:
    """Degraded when modules or the super admin role are missing (run `flask system init`)."""
    start_time = time.time()
    try:
        module_count = db.session.query(Module).count()
        has_super_admin_role = db.session.query(Role.id).filter_by(slug=super_admin_slug()).first() is not None
        elapsed_ms = (time.time() - start_time) * 1000

        details = {"module_count": module_count, "super_admin_role": has_super_admin_role}
        if module_count == 0 or not has_super_admin_role:
            return {
                "status": "degraded",
                "latency_ms": round(elapsed_ms, 2),
                "warning": "Access control not initialized",
                "details": details,
            }
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2), "details": details}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Access control health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Access control error"
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    access_health = check_access_control_health()

    all_checks = [database_health, access_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": utcnow().replace(microsecond=0).isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "access_control": access_health,
        }
    }, http_status
