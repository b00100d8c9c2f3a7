# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/stockai/routes/auth.py
"""
Authentication API routes

- Login by display name or email; returns the session token, the user and
  the user's module list.
- Tenants self-register and wait for approval.
- Clients re-pull their module list from /permissions after login or
  after an administrator edits roles.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services import permission_service
from ..services.auth_service import AuthError, PasswordValidationError
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _user_payload(user) -> dict:
    data = user.to_dict()
    data["permissions"] = permission_service.get_module_names_for_role(user.role)
    return data


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Body: {"username" (name or email), "password"}
    """
    try:
        data = request.get_json(silent=True) or {}
        identifier = data.get("username") or data.get("email") or data.get("identifier")
        password = data.get("password")

        try:
            user = auth_service.authenticate(identifier, password)
        except AuthError as e:
            permission_service.log_security_event(
                user_id=None,
                event_type="LOGIN_FAILED",
                success=False,
                resource=request.path,
                action="LOGIN",
                reason=str(e),
                ip_address=request.remote_addr,
                user_agent=request.headers.get("User-Agent"),
            )
            return jsonify({"error": str(e)}), e.status_code

        _, token = session_service.create_session(
            user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return jsonify({"token": token, "user": _user_payload(user)}), 200

    except Exception:
        current_app.logger.exception("Failed to log in")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/register-tenant")
def register_tenant_route():
    """
    Tenant self-registration.

    Body: {"name" (or "username"), "email", "password", "contact_number"}
    The account is created "pending" and an administrator is notified.
    """
    try:
        data = request.get_json(silent=True) or {}
        user = auth_service.register_tenant(
            name=data.get("name") or data.get("username"),
            email=data.get("email"),
            password=data.get("password"),
            contact_number=data.get("contact_number"),
        )
        return jsonify({
            "message": "Registration successful. Your account is pending approval.",
            "user": user.to_dict(),
        }), 201

    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except AuthError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to register tenant")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        session_service.revoke_session(g.token, reason="User logout")
        return jsonify({"message": "Logged out"}), 200
    except Exception:
        current_app.logger.exception("Failed to log out")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": _user_payload(g.current_user)}), 200


@auth_bp.get("/permissions")
@require_auth
def permissions_route():
    """Current module list for the caller's role."""
    try:
        return jsonify({
            "role": g.role,
            "permissions": permission_service.get_module_names_for_role(g.role),
        }), 200
    except Exception:
        current_app.logger.exception("Failed to load permissions")
        return jsonify({"error": "Internal server error"}), 500
