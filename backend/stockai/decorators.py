# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .services import session_service, permission_service
from .services.permission_service import ModuleAccessDenied


def _extract_token() -> str | None:
    """Bearer token from Authorization, falling back to the x-auth-token header."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1].strip()
        return token or None
    token = request.headers.get("x-auth-token", "").strip()
    return token or None


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'role')


def require_auth(f):
    """
    Require authentication.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.role: The user's role slug
    - g.token: The plaintext bearer token (used by logout)

    SECURITY: Returns 401 if:
    - No token header
    - Invalid, expired or revoked token
    - User account not active
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _extract_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        user = session_service.validate_session(token)
        if not user:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = user
        g.role = user.role
        g.token = token

        return f(*args, **kwargs)

    return decorated_function


def require_module(module_name: str):
    """
    Require the caller's role to have access to a module.

    Must be stacked under @require_auth. A failed permission lookup is a
    500, never an implicit deny.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            try:
                permission_service.require_module(
                    g.role,
                    module_name,
                    user_id=g.current_user.id,
                    resource=request.path,
                    ip_address=request.remote_addr,
                    user_agent=request.headers.get("User-Agent"),
                )
            except ModuleAccessDenied as e:
                return jsonify({"error": str(e)}), 403
            except Exception:
                current_app.logger.exception("Failed to check module permission")
                return jsonify({"error": "Internal server error"}), 500

            return f(*args, **kwargs)

        return decorated_function
    return decorator
