# Overview: Service-layer operations for notifications; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import Notification


class NotificationError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def list_notifications(unread_only: bool = False) -> list[Notification]:
    query = db.session.query(Notification)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()


def get_notification(notification_id: int) -> Notification:
    notification = db.session.query(Notification).filter_by(id=notification_id).first()
    if notification is None:
        raise NotificationError("Notification not found", 404)
    return notification


def mark_read(notification_id: int) -> Notification:
    notification = get_notification(notification_id)
    notification.is_read = True
    db.session.commit()
    return notification
