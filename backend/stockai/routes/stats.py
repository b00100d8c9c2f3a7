# Overview: Flask API route for dashboard statistics.

from flask import Blueprint, jsonify, current_app

from ..services import stats_service
from ..decorators import require_auth, require_module
from ..permissions import MODULE_DASHBOARD


stats_bp = Blueprint("stats", __name__, url_prefix="/api/stats")


@stats_bp.get("")
@require_auth
@require_module(MODULE_DASHBOARD)
def dashboard_stats_route():
    try:
        return jsonify(stats_service.dashboard_stats()), 200
    except Exception:
        current_app.logger.exception("Failed to compute dashboard stats")
        return jsonify({"error": "Internal server error"}), 500
