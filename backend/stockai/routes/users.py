# Overview: Flask API routes for user administration and self-service profile.

# backend/stockai/routes/users.py
from flask import Blueprint, jsonify, request, g, current_app

from ..services import user_service, auth_service
from ..services.user_service import UserError
from ..services.auth_service import AuthError, PasswordValidationError
from ..decorators import require_auth, require_module
from ..permissions import MODULE_USERS


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_module(MODULE_USERS)
def list_users_route():
    try:
        result = user_service.list_users(
            page=request.args.get("page"),
            limit=request.args.get("limit"),
            status=request.args.get("status"),
        )
        return jsonify(result), 200
    except Exception:
        current_app.logger.exception("Failed to list users")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.post("")
@require_auth
@require_module(MODULE_USERS)
def create_user_route():
    """Body: {"name", "email", "password", "role"?, "status"?, "contact_number"?}"""
    try:
        data = request.get_json(silent=True) or {}
        user = user_service.create_user(
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
            role=data.get("role") or "user",
            status=data.get("status") or "active",
            contact_number=data.get("contact_number"),
        )
        return jsonify(user.to_dict()), 201
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except UserError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.get("/profile")
@require_auth
def get_profile_route():
    return jsonify(g.current_user.to_dict()), 200


@users_bp.put("/profile")
@require_auth
def update_profile_route():
    """Body: {"name"?, "hobbies"?}. Email cannot be changed here."""
    try:
        user = user_service.update_profile(g.current_user, request.get_json(silent=True) or {})
        return jsonify(user.to_dict()), 200
    except UserError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update profile")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.put("/change-password")
@require_auth
def change_password_route():
    """Body: {"currentPassword", "newPassword"}. Every session is revoked afterwards."""
    try:
        data = request.get_json(silent=True) or {}
        auth_service.change_password(
            g.current_user,
            data.get("currentPassword") or data.get("current_password"),
            data.get("newPassword") or data.get("new_password"),
        )
        return jsonify({"message": "Password updated successfully. Please log in again."}), 200
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except AuthError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to change password")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.put("/<int:user_id>")
@require_auth
@require_module(MODULE_USERS)
def update_user_route(user_id: int):
    try:
        user = user_service.update_user(user_id, request.get_json(silent=True) or {})
        return jsonify(user.to_dict()), 200
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except UserError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.delete("/<int:user_id>")
@require_auth
@require_module(MODULE_USERS)
def delete_user_route(user_id: int):
    try:
        user_service.delete_user(user_id, actor_id=g.current_user.id)
        return jsonify({"message": "User deleted successfully"}), 200
    except UserError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete user")
        return jsonify({"error": "Internal server error"}), 500
