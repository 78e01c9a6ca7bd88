# Overview: Service-layer operations for customer administration: lookup, stats, suspension and reactivation.

"""
Customer Administration Service

Suspension is is_active=False plus the reason/actor columns on User. Every
suspend or reactivate also writes a UserSuspension row so the full history
survives later reactivations.

SECURITY NOTES:
- Suspending a user revokes every live session immediately
- Only customer accounts are managed here; staff go through staff_service
"""

from datetime import timedelta

from sqlalchemy import func

from ..errors import NotFoundError, ServiceError
from ..extensions import db
from ..models import Order, OrderItem, Product, User, UserSuspension
from ..models.orders import APPROVAL_APPROVED, PAYMENT_PAID
from ..permissions import Role
from ..time_utils import utcnow
from ..validation import ValidationError
from . import session_service


SUSPEND = "suspend"
REACTIVATE = "reactivate"


class UserAdminError(ServiceError):
    pass


def _customer_query():
    return User.query.filter(User.role == Role.CUSTOMER.value)


def get_customer(user_id: int) -> User:
    user = _customer_query().filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def list_customers(search: str | None = None, is_active: bool | None = None, start=None, end=None):
    query = _customer_query()
    if search:
        like = f"%{search}%"
        query = query.filter(db.or_(User.name.ilike(like), User.email.ilike(like), User.phone.ilike(like)))
    if is_active is not None:
        query = query.filter(User.is_active.is_(is_active))
    if start:
        query = query.filter(User.created_at >= start)
    if end:
        query = query.filter(User.created_at <= end)
    return query.order_by(User.created_at.desc(), User.id.desc())


def user_stats(user: User) -> dict:
    orders = Order.query.filter(Order.user_id == user.id)
    paid = orders.filter(
        Order.approval_status == APPROVAL_APPROVED,
        Order.payment_status == PAYMENT_PAID,
    )

    total_spent = int(paid.with_entities(func.coalesce(func.sum(Order.total_amount_cents), 0)).scalar() or 0)
    paid_count = paid.count()

    favorites = (
        db.session.query(Product.id, Product.name, func.sum(OrderItem.quantity).label("qty"))
        .join(OrderItem, OrderItem.product_id == Product.id)
        .join(Order, Order.id == OrderItem.order_id)
        .filter(Order.user_id == user.id)
        .group_by(Product.id, Product.name)
        .order_by(func.sum(OrderItem.quantity).desc(), Product.id)
        .limit(5)
        .all()
    )

    recent = orders.order_by(Order.created_at.desc(), Order.id.desc()).limit(5).all()

    return {
        "total_orders": orders.count(),
        "total_spent_cents": total_spent,
        "average_order_value_cents": total_spent // paid_count if paid_count else 0,
        "recent_orders": [o.to_dict(include_items=False) for o in recent],
        "favorite_products": [
            {"product_id": pid, "name": name, "total_quantity": int(qty or 0)}
            for pid, name, qty in favorites
        ],
        "suspension_count": user.suspension_history.filter_by(action=SUSPEND).count(),
    }


# =============================================================================
# SUSPENSION
# =============================================================================

def _suspend(user: User, reason: str, notes: str | None, admin_id: int) -> None:
    now = utcnow()
    user.is_active = False
    user.suspension_reason = reason
    user.suspension_notes = notes
    user.suspended_at = now
    user.suspended_by = admin_id
    db.session.add(UserSuspension(
        user_id=user.id,
        action=SUSPEND,
        reason=reason,
        notes=notes,
        performed_by=admin_id,
        created_at=now,
    ))
    session_service.revoke_all_user_sessions(user.id, reason="Account suspended", commit=False)


def _reactivate(user: User, notes: str | None, admin_id: int) -> None:
    now = utcnow()
    user.is_active = True
    user.reactivated_at = now
    user.reactivated_by = admin_id
    user.reactivation_notes = notes
    db.session.add(UserSuspension(
        user_id=user.id,
        action=REACTIVATE,
        notes=notes,
        performed_by=admin_id,
        created_at=now,
    ))


def suspend_user(user_id: int, reason: str, admin_id: int, notes: str | None = None) -> User:
    """
    Suspend a customer account and revoke its sessions.

    Raises:
        ValidationError: reason missing
        UserAdminError: user already suspended
    """
    if not reason or not str(reason).strip():
        raise ValidationError({"reason": ["The reason field is required."]})

    user = get_customer(user_id)
    if not user.is_active:
        raise UserAdminError("User is already suspended")

    _suspend(user, reason, notes, admin_id)
    db.session.commit()
    return user


def reactivate_user(user_id: int, admin_id: int, notes: str | None = None) -> User:
    user = get_customer(user_id)
    if user.is_active:
        raise UserAdminError("User is already active")

    _reactivate(user, notes, admin_id)
    db.session.commit()
    return user


def bulk_suspend(user_ids: list[int], reason: str, admin_id: int, notes: str | None = None) -> int:
    """Suspend every active customer in user_ids; others are skipped. Returns the count suspended."""
    if not reason or not str(reason).strip():
        raise ValidationError({"reason": ["The reason field is required."]})

    users = _customer_query().filter(User.id.in_(user_ids), User.is_active.is_(True)).all()
    for user in users:
        _suspend(user, reason, notes, admin_id)
    db.session.commit()
    return len(users)


def bulk_reactivate(user_ids: list[int], admin_id: int, notes: str | None = None) -> int:
    users = _customer_query().filter(User.id.in_(user_ids), User.is_active.is_(False)).all()
    for user in users:
        _reactivate(user, notes, admin_id)
    db.session.commit()
    return len(users)


def suspension_history(user_id: int) -> list[dict]:
    user = get_customer(user_id)
    rows = user.suspension_history.order_by(UserSuspension.created_at.desc(), UserSuspension.id.desc()).all()
    return [row.to_dict() for row in rows]


# =============================================================================
# DASHBOARD
# =============================================================================

def user_dashboard(days: int = 30) -> dict:
    now = utcnow()
    since = now - timedelta(days=days)
    customers = _customer_query()

    recent_registrations = customers.order_by(User.created_at.desc(), User.id.desc()).limit(10).all()
    recent_suspensions = (
        UserSuspension.query.filter_by(action=SUSPEND)
        .order_by(UserSuspension.created_at.desc(), UserSuspension.id.desc())
        .limit(10)
        .all()
    )

    day = func.date(User.created_at)
    registrations = (
        customers.filter(User.created_at >= since)
        .with_entities(day, func.count(User.id))
        .group_by(day)
        .order_by(day)
        .all()
    )

    sday = func.date(UserSuspension.created_at)
    suspensions = (
        db.session.query(sday, func.count(UserSuspension.id))
        .filter(UserSuspension.action == SUSPEND, UserSuspension.created_at >= since)
        .group_by(sday)
        .order_by(sday)
        .all()
    )

    return {
        "stats": {
            "total_users": customers.count(),
            "active_users": customers.filter(User.is_active.is_(True)).count(),
            "suspended_users": customers.filter(User.is_active.is_(False)).count(),
            "new_users_this_period": customers.filter(User.created_at >= since).count(),
        },
        "recent_registrations": [u.to_dict() for u in recent_registrations],
        "recent_suspensions": [s.to_dict() for s in recent_suspensions],
        "trends": {
            "registrations": [{"date": str(d), "count": c} for d, c in registrations],
            "suspensions": [{"date": str(d), "count": c} for d, c in suspensions],
        },
    }
