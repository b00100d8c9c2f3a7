# Overview: Flask API routes for notifications.

from flask import Blueprint, jsonify, request, current_app

from ..services import notification_service
from ..services.notification_service import NotificationError
from ..decorators import require_auth


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_auth
def list_notifications_route():
    try:
        unread_only = request.args.get("unread") in ("1", "true", "yes")
        items = notification_service.list_notifications(unread_only=unread_only)
        return jsonify([n.to_dict() for n in items]), 200
    except Exception:
        current_app.logger.exception("Failed to list notifications")
        return jsonify({"error": "Internal server error"}), 500


@notifications_bp.get("/<int:notification_id>")
@require_auth
def get_notification_route(notification_id: int):
    try:
        return jsonify(notification_service.get_notification(notification_id).to_dict()), 200
    except NotificationError as e:
        return jsonify({"error": str(e)}), e.status_code


@notifications_bp.put("/<int:notification_id>/read")
@require_auth
def mark_read_route(notification_id: int):
    try:
        notification_service.mark_read(notification_id)
        return jsonify({"message": "Marked as read"}), 200
    except NotificationError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to mark notification read")
        return jsonify({"error": "Internal server error"}), 500
