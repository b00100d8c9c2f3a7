# Overview: Service-layer operations for user administration; encapsulates business logic and database work.

"""
User Administration Service

WHY: Staff create and maintain back-office accounts; tenants self-register
(see auth_service.register_tenant) and wait here for approval.

INVARIANTS:
- Email is unique (stored lower-cased).
- A user's role must name an existing Role.
- At most one user holds the super admin role. This is an application-level
  count check, not a database constraint: two concurrent creations can race.
"""

from __future__ import annotations

import json

from ..extensions import db
from ..models import User, Role, Notification
from .auth_service import hash_password
from .pagination import paginate
from .permission_service import super_admin_slug
from .session_service import revoke_all_user_sessions


class UserError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


USER_STATUSES = {"active", "pending", "rejected"}


def _require_role_exists(slug: str) -> None:
    if db.session.query(Role.id).filter_by(slug=slug).first() is None:
        raise UserError(f"Role '{slug}' does not exist")


def _ensure_single_super_admin(role: str, exclude_user_id: int | None = None) -> None:
    if role != super_admin_slug():
        return
    q = db.session.query(User.id).filter(User.role == role)
    if exclude_user_id is not None:
        q = q.filter(User.id != exclude_user_id)
    if q.count() > 0:
        raise UserError("A super admin already exists", 409)


def _ensure_email_free(email: str, exclude_user_id: int | None = None) -> None:
    q = db.session.query(User.id).filter(User.email == email)
    if exclude_user_id is not None:
        q = q.filter(User.id != exclude_user_id)
    if q.first() is not None:
        raise UserError("User already exists", 409)


def list_users(page=None, limit=None, status: str | None = None) -> dict:
    query = db.session.query(User)
    if status:
        query = query.filter(User.status == status)
    query = query.order_by(User.created_at.desc(), User.id.desc())
    rows, meta = paginate(query, page, limit)
    return {"users": [u.to_dict() for u in rows], **meta}


def get_user(user_id: int) -> User:
    user = db.session.query(User).filter_by(id=user_id).first()
    if user is None:
        raise UserError("User not found", 404)
    return user


def create_user(
    name: str,
    email: str,
    password: str,
    role: str = "user",
    status: str = "active",
    contact_number: str | None = None,
) -> User:
    """
    Create an account (staff path, no approval needed).

    Raises UserError on missing fields, unknown role, duplicate email or a
    second super admin; PasswordValidationError on weak passwords.
    """
    name = (name or "").strip()
    email = (email or "").strip().lower()
    role = (role or "user").strip()
    if not name or not email or not password:
        raise UserError("Name, email and password are required")
    if status not in USER_STATUSES:
        raise UserError(f"status must be one of: {', '.join(sorted(USER_STATUSES))}")

    _require_role_exists(role)
    _ensure_single_super_admin(role)
    _ensure_email_free(email)

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=role,
        status=status,
        contact_number=contact_number,
        hobbies=[],
    )
    db.session.add(user)
    db.session.commit()
    return user


def update_user(user_id: int, data: dict) -> User:
    """Admin edit: name, email, role, status, contact_number; password only when non-blank."""
    user = get_user(user_id)
    revoke_sessions = False

    if "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            raise UserError("Name cannot be blank")
        user.name = name

    if "email" in data:
        email = (data.get("email") or "").strip().lower()
        if not email:
            raise UserError("Email cannot be blank")
        _ensure_email_free(email, exclude_user_id=user.id)
        user.email = email

    if "role" in data and data["role"] and data["role"] != user.role:
        role = str(data["role"]).strip()
        _require_role_exists(role)
        _ensure_single_super_admin(role, exclude_user_id=user.id)
        user.role = role

    if "status" in data and data["status"] != user.status:
        if data["status"] not in USER_STATUSES:
            raise UserError(f"status must be one of: {', '.join(sorted(USER_STATUSES))}")
        user.status = data["status"]
        revoke_sessions = user.status != "active"

    if "contact_number" in data:
        user.contact_number = (data.get("contact_number") or "").strip() or None

    password = data.get("password")
    if isinstance(password, str) and password.strip():
        user.password_hash = hash_password(password)
        revoke_sessions = True

    db.session.commit()

    if revoke_sessions:
        revoke_all_user_sessions(user.id, reason="Account updated by administrator")
    return user


def delete_user(user_id: int, actor_id: int) -> None:
    if user_id == actor_id:
        raise UserError("You cannot delete your own account")
    user = get_user(user_id)

    db.session.query(Notification).filter(Notification.related_user_id == user.id).update(
        {Notification.related_user_id: None}, synchronize_session=False
    )
    db.session.delete(user)
    db.session.commit()


def update_profile(user: User, data: dict) -> User:
    """
    Self-service profile edit. Only name and hobbies; email stays fixed.

    hobbies may be a list of strings or a JSON-encoded list.
    """
    if "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            raise UserError("Name cannot be blank")
        user.name = name

    if "hobbies" in data:
        hobbies = data.get("hobbies")
        if isinstance(hobbies, str):
            try:
                hobbies = json.loads(hobbies) if hobbies.strip() else []
            except ValueError:
                raise UserError("hobbies must be a list of strings")
        if hobbies is None:
            hobbies = []
        if not isinstance(hobbies, list) or not all(isinstance(h, str) for h in hobbies):
            raise UserError("hobbies must be a list of strings")
        user.hobbies = [h.strip() for h in hobbies if h.strip()]

    db.session.commit()
    return user


def review_tenant(user_id: int, action: str) -> User:
    """
    Approve or reject a self-registered tenant.

    action: "approve" -> status active, "reject" -> status rejected.
    """
    if action not in ("approve", "reject"):
        raise UserError("action must be 'approve' or 'reject'")

    user = get_user(user_id)
    user.status = "active" if action == "approve" else "rejected"

    db.session.query(Notification).filter(
        Notification.related_user_id == user.id,
        Notification.type == "TENANT_REGISTRATION",
    ).update({Notification.is_read: True}, synchronize_session=False)

    db.session.commit()

    if user.status != "active":
        revoke_all_user_sessions(user.id, reason="Tenant rejected")
    return user
