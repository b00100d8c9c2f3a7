# Overview: Flask API routes for roles and module grants; parses input and returns JSON responses.

# backend/stockai/routes/roles.py
"""
Role administration.

GET /api/roles returns {slug: [module names]} for every role, with the
super admin expanded to every module.
"""

from flask import Blueprint, jsonify, request, current_app

from ..services import permission_service
from ..services.permission_service import RoleError
from ..decorators import require_auth, require_module
from ..permissions import MODULE_ROLES


roles_bp = Blueprint("roles", __name__, url_prefix="/api/roles")


@roles_bp.get("")
@require_auth
def role_map_route():
    try:
        return jsonify(permission_service.get_role_permission_map()), 200
    except Exception:
        current_app.logger.exception("Failed to load role permissions")
        return jsonify({"error": "Internal server error"}), 500


@roles_bp.get("/modules")
@require_auth
@require_module(MODULE_ROLES)
def list_modules_route():
    try:
        return jsonify(permission_service.list_modules()), 200
    except Exception:
        current_app.logger.exception("Failed to list modules")
        return jsonify({"error": "Internal server error"}), 500


@roles_bp.post("")
@require_auth
@require_module(MODULE_ROLES)
def create_role_route():
    """Body: {"name", "slug"}"""
    try:
        data = request.get_json(silent=True) or {}
        role = permission_service.create_role(data.get("name"), data.get("slug"))
        return jsonify(role.to_dict()), 201
    except RoleError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create role")
        return jsonify({"error": "Internal server error"}), 500


@roles_bp.put("/permissions")
@require_auth
@require_module(MODULE_ROLES)
def replace_permissions_route():
    """
    Body: {"permissions": {slug: [module names]}} or the bare mapping.

    Each listed role's grants are replaced wholesale, all in one transaction.
    """
    try:
        data = request.get_json(silent=True)
        mapping = data.get("permissions", data) if isinstance(data, dict) else data
        applied = permission_service.replace_role_modules(mapping)
        return jsonify({"message": "Permissions updated successfully", "updated": applied}), 200
    except RoleError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update role permissions")
        return jsonify({"error": "Internal server error"}), 500


@roles_bp.delete("/<string:slug>")
@require_auth
@require_module(MODULE_ROLES)
def delete_role_route(slug: str):
    try:
        permission_service.delete_role(slug)
        return jsonify({"message": "Role deleted successfully"}), 200
    except RoleError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete role")
        return jsonify({"error": "Internal server error"}), 500
