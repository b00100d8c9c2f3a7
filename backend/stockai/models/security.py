from __future__ import annotations

from ..extensions import db
from ..formats import to_utc_z


class SecurityEvent(db.Model):
    """
    Security event audit log.

    WHY: Track authorisation denials and failed logins for monitoring.

    IMMUTABLE: Never update or delete. Append-only for audit integrity.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_user_type", "user_id", "event_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, nullable=True, index=True)  # Nullable for anonymous
    role = db.Column(db.String(64), nullable=True)

    # Event classification
    event_type = db.Column(db.String(64), nullable=False, index=True)  # MODULE_ACCESS_DENIED, LOGIN_FAILED, ...
    resource = db.Column(db.String(128), nullable=True)  # e.g., "/api/sales/checkout"
    action = db.Column(db.String(64), nullable=True)     # e.g., module name

    success = db.Column(db.Boolean, nullable=False)
    reason = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "role": self.role,
            "event_type": self.event_type,
            "resource": self.resource,
            "action": self.action,
            "success": self.success,
            "reason": self.reason,
            "ip_address": self.ip_address,
            "occurred_at": to_utc_z(self.occurred_at),
        }
