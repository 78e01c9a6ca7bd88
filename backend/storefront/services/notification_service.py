# Overview: Service-layer operations for in-app notifications; the fire-and-forget sink.

"""
Notification Service

Callers commit their own state first, then call notify(). Delivery writes
Notification rows in a separate commit. Any failure here is logged and
swallowed so it can never undo or block the business transition that
triggered it.
"""

from __future__ import annotations

import json

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import NotFoundError
from ..extensions import db
from ..models import Notification, User
from ..permissions import Role
from ..time_utils import utcnow


# Notification types
ORDER_APPROVED = "order_approved"
ORDER_REJECTED = "order_rejected"
ORDER_STATUS_CHANGED = "order_status_changed"
PAYMENT_RECEIVED = "payment_received"
LOW_STOCK = "low_stock"
NEW_REQUEST_ORDER = "new_request_order"
REQUEST_ORDER_ADMIN_APPROVED = "request_order_admin_approved"
REQUEST_ORDER_WAREHOUSE_DECISION = "request_order_warehouse_decision"
REORDER_APPROVED = "reorder_approved"
REORDER_REJECTED = "reorder_rejected"
REORDER_COMPLETED = "reorder_completed"


def _user_ids(recipients) -> list[int]:
    if recipients is None:
        return []
    if isinstance(recipients, (User, int)):
        recipients = [recipients]
    ids = []
    for r in recipients:
        uid = r.id if isinstance(r, User) else int(r)
        if uid not in ids:
            ids.append(uid)
    return ids


def notify(recipients, type: str, title: str, message: str, **data) -> int:
    """
    Write one notification per recipient.

    recipients: a User, a user id, or an iterable of either.
    Returns the number of rows written (0 on failure).
    """
    user_ids = _user_ids(recipients)
    if not user_ids:
        return 0

    try:
        payload = json.dumps(data, default=str) if data else None
        for uid in user_ids:
            db.session.add(Notification(
                user_id=uid,
                type=type,
                title=title,
                message=message,
                data=payload,
            ))
        db.session.commit()
        return len(user_ids)
    except (SQLAlchemyError, TypeError, ValueError):
        db.session.rollback()
        current_app.logger.exception("Failed to deliver %s notification to users %s", type, user_ids)
        return 0


def users_with_role(role: Role, exclude_id: int | None = None) -> list[User]:
    query = User.query.filter_by(role=role.value, is_active=True)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    return query.order_by(User.id).all()


def notify_admins(type: str, title: str, message: str, exclude_id: int | None = None, **data) -> int:
    return notify(users_with_role(Role.ADMIN, exclude_id), type, title, message, **data)


def notify_warehouse_managers(type: str, title: str, message: str, **data) -> int:
    return notify(users_with_role(Role.WAREHOUSE_MANAGER), type, title, message, **data)


# =============================================================================
# INBOX
# =============================================================================

def list_for_user(user_id: int, unread_only: bool = False):
    query = Notification.query.filter_by(user_id=user_id)
    if unread_only:
        query = query.filter(Notification.read_at.is_(None))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc())


def unread_count(user_id: int) -> int:
    return list_for_user(user_id, unread_only=True).count()


def _get_own(user_id: int, notification_id: int) -> Notification:
    notification = Notification.query.filter_by(id=notification_id, user_id=user_id).first()
    if not notification:
        raise NotFoundError("Notification not found")
    return notification


def mark_as_read(user_id: int, notification_id: int) -> Notification:
    notification = _get_own(user_id, notification_id)
    if notification.read_at is None:
        notification.read_at = utcnow()
        db.session.commit()
    return notification


def mark_all_as_read(user_id: int) -> int:
    count = Notification.query.filter(
        Notification.user_id == user_id,
        Notification.read_at.is_(None),
    ).update({"read_at": utcnow()}, synchronize_session=False)
    db.session.commit()
    return count


def delete_notification(user_id: int, notification_id: int) -> None:
    notification = _get_own(user_id, notification_id)
    db.session.delete(notification)
    db.session.commit()
