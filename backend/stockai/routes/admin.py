# Overview: Flask API routes for administrative actions (tenant approval).

from flask import Blueprint, jsonify, request, current_app

from ..services import user_service
from ..services.user_service import UserError
from ..decorators import require_auth, require_module
from ..permissions import MODULE_USERS


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")

REVIEW_OUTCOMES = {"approve": "approved", "reject": "rejected"}


@admin_bp.post("/approve-tenant")
@require_auth
@require_module(MODULE_USERS)
def approve_tenant_route():
    """Body: {"userId", "action": "approve" | "reject"}"""
    try:
        data = request.get_json(silent=True) or {}
        user_id = data.get("userId") or data.get("user_id")
        action = data.get("action")
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            return jsonify({"error": "userId is required"}), 400

        user = user_service.review_tenant(user_id, action)
        return jsonify({
            "message": f"Tenant {REVIEW_OUTCOMES[action]} successfully.",
            "user": user.to_dict(),
        }), 200
    except UserError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to review tenant")
        return jsonify({"error": "Internal server error"}), 500
