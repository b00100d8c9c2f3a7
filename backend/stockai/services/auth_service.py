# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every action must be attributable. Uses bcrypt for secure password
hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
- Only "active" accounts may log in; self-registered tenants wait for approval
"""

import bcrypt
import re
from ..extensions import db
from ..models import User, Notification
from ..permissions import TENANT_ROLE
from .session_service import revoke_all_user_sessions


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class AuthError(Exception):
    """Raised when credentials are rejected or an account may not log in."""

    def __init__(self, message: str, status_code: int = 400, details: dict | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details or {}


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>_\-]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def authenticate(identifier: str, password: str) -> User:
    """
    Authenticate by display name or email.

    Returns the User when credentials are valid and the account is active.

    Raises:
        AuthError(400): unknown identifier or wrong password (same message for both)
        AuthError(403): account pending approval or rejected
    """
    identifier = (identifier or "").strip()
    if not identifier or not password:
        raise AuthError("Username and password are required")

    user = db.session.query(User).filter(
        db.or_(User.name == identifier, User.email == identifier.lower())
    ).order_by(User.id.asc()).first()

    if not user or not verify_password(password, user.password_hash):
        raise AuthError("Invalid credentials")

    if user.status == "pending":
        raise AuthError("Your account is pending approval", 403)
    if user.status != "active":
        raise AuthError("Your account has been rejected", 403)

    return user


def register_tenant(name: str, email: str, password: str, contact_number: str | None = None) -> User:
    """
    Self-service tenant signup.

    Creates a "pending" tenant account and a TENANT_REGISTRATION notification
    for administrators, in one transaction.

    Raises AuthError(409) if the email is taken, PasswordValidationError on weak passwords.
    """
    name = (name or "").strip()
    email = (email or "").strip().lower()
    if not name or not email or not password:
        raise AuthError("Name, email and password are required")

    if db.session.query(User.id).filter_by(email=email).first() is not None:
        raise AuthError("User already exists", 409)

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=TENANT_ROLE,
        status="pending",
        contact_number=(contact_number or "").strip() or None,
        hobbies=[],
    )
    db.session.add(user)
    db.session.flush()

    db.session.add(Notification(
        type="TENANT_REGISTRATION",
        message=f"New tenant registration: {name} ({email})",
        related_user_id=user.id,
        is_read=False,
    ))
    db.session.commit()
    return user


def change_password(user: User, current_password: str, new_password: str) -> None:
    """
    Change a user's own password.

    Requires the current password. All existing sessions are revoked
    afterwards, so the caller must log in again.
    """
    if not current_password or not new_password:
        raise AuthError("Current password and new password are required")

    if not verify_password(current_password, user.password_hash):
        raise AuthError("Current password is incorrect")

    user.password_hash = hash_password(new_password)
    db.session.commit()

    revoke_all_user_sessions(user.id, reason="Password changed")
