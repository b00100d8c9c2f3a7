from __future__ import annotations

from ..extensions import db
from ..formats import to_utc_z


class User(db.Model):
    """
    User accounts for authentication and attribution.

    ROLE: Each user carries exactly one role slug (see Role.slug). Module
    access is resolved from that slug by the permission service.

    STATUS: Self-registered tenants start as "pending" and cannot log in
    until an administrator approves them. Rejected tenants stay "rejected".
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_role_status", "role", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(128), nullable=False, index=True)
    email = db.Column(db.String(255), nullable=False, unique=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(64), nullable=False, default="user", index=True)
    status = db.Column(db.String(16), nullable=False, default="active")

    contact_number = db.Column(db.String(32), nullable=True)
    profile_image = db.Column(db.String(255), nullable=True)
    hobbies = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "status": self.status,
            "contact_number": self.contact_number,
            "profile_image": self.profile_image,
            "hobbies": list(self.hobbies or []),
            "created_at": to_utc_z(self.created_at),
        }


class Role(db.Model):
    """
    Named access tier.

    WHY slug: users reference their role by slug, so renaming a role's
    display name never touches user rows.

    is_system marks built-in tiers that cannot be deleted through the API.
    """
    __tablename__ = "roles"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False, unique=True)
    slug = db.Column(db.String(64), nullable=False, unique=True, index=True)
    is_system = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "is_system": self.is_system,
            "created_at": to_utc_z(self.created_at),
        }


class Module(db.Model):
    """
    Functional capability area (e.g. "Products", "Cart").

    Modules are the unit of access control: routes declare the module they
    belong to and RolePermission rows grant modules to roles.
    """
    __tablename__ = "modules"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False, unique=True, index=True)
    key = db.Column(db.String(64), nullable=False, unique=True)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "key": self.key}


class RolePermission(db.Model):
    """Role-Module association. Presence of a row means the role may use the module."""
    __tablename__ = "role_permissions"
    __table_args__ = (
        db.UniqueConstraint("role_id", "module_id", name="uq_role_permissions"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    role_id = db.Column(db.Integer, db.ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)
    module_id = db.Column(db.Integer, db.ForeignKey("modules.id", ondelete="CASCADE"), nullable=False, index=True)

    granted_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    role = db.relationship(
        "Role",
        backref=db.backref("role_permissions", lazy=True, cascade="all, delete-orphan"),
    )
    module = db.relationship(
        "Module",
        backref=db.backref("role_permissions", lazy=True, cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role_id": self.role_id,
            "module_id": self.module_id,
            "granted_at": to_utc_z(self.granted_at),
        }


class SessionToken(db.Model):
    """
    Opaque bearer credential.

    SECURITY NOTES:
    - Tokens stored hashed in database (SHA-256)
    - 24-hour absolute timeout, 2-hour idle timeout
    - Revocable on logout, password change or account deactivation
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_active", "user_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Token hash (never store plaintext tokens!)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)  # IPv6 max length

    user = db.relationship(
        "User",
        backref=db.backref("session_tokens", lazy=True, cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
        }
