from __future__ import annotations

from ..extensions import db
from ..formats import to_utc_z


class Notification(db.Model):
    """Back-office notification (e.g. a tenant awaiting approval)."""
    __tablename__ = "notifications"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(32), nullable=False, index=True)  # TENANT_REGISTRATION, ...
    message = db.Column(db.Text, nullable=False)
    related_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    is_read = db.Column(db.Boolean, nullable=False, default=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    related_user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "message": self.message,
            "related_user_id": self.related_user_id,
            "is_read": self.is_read,
            "created_at": to_utc_z(self.created_at),
        }
