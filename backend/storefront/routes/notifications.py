# Overview: Flask API routes for the authenticated user's notification inbox.

from flask import Blueprint, g, jsonify

from ..decorators import handle_service_errors, require_auth
from ..pagination import paginate
from ..services import notification_service


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_auth
def list_notifications_route():
    result = paginate(notification_service.list_for_user(g.current_user.id))
    result["unread_count"] = notification_service.unread_count(g.current_user.id)
    return jsonify(result)


@notifications_bp.get("/unread")
@require_auth
def unread_notifications_route():
    rows = notification_service.list_for_user(g.current_user.id, unread_only=True).all()
    return jsonify({"data": [n.to_dict() for n in rows], "count": len(rows)})


@notifications_bp.put("/<int:notification_id>/read")
@require_auth
@handle_service_errors("mark notification read")
def mark_read_route(notification_id: int):
    notification = notification_service.mark_as_read(g.current_user.id, notification_id)
    return jsonify({"message": "Notification marked as read", "notification": notification.to_dict()})


@notifications_bp.put("/read-all")
@require_auth
def mark_all_read_route():
    count = notification_service.mark_all_as_read(g.current_user.id)
    return jsonify({"message": "All notifications marked as read", "updated": count})


@notifications_bp.delete("/<int:notification_id>")
@require_auth
@handle_service_errors("delete notification")
def delete_notification_route(notification_id: int):
    notification_service.delete_notification(g.current_user.id, notification_id)
    return jsonify({"message": "Notification deleted"})
