# Overview: Service-layer operations for staff accounts and the staff order-review workload.

from sqlalchemy import func

from ..errors import NotFoundError
from ..extensions import db
from ..models import Notification, Order, PaymentMethod, User
from ..models.orders import APPROVAL_APPROVED, APPROVAL_PENDING, APPROVAL_REJECTED
from ..permissions import Role
from ..time_utils import end_of_month, start_of_month
from ..validation import ValidationError
from . import auth_service, session_service


STAFF_FIELDS = ("name", "email", "phone", "department", "employee_id", "hire_date", "is_active")


def _staff_query():
    return User.query.filter(User.role == Role.STAFF.value)


def get_staff(staff_id: int) -> User:
    staff = _staff_query().filter(User.id == staff_id).first()
    if not staff:
        raise NotFoundError("Staff member not found")
    return staff


def list_staff(search: str | None = None, department: str | None = None, is_active: bool | None = None):
    query = _staff_query()
    if search:
        like = f"%{search}%"
        query = query.filter(db.or_(
            User.name.ilike(like),
            User.email.ilike(like),
            User.employee_id.ilike(like),
            User.department.ilike(like),
        ))
    if department:
        query = query.filter(User.department == department)
    if is_active is not None:
        query = query.filter(User.is_active.is_(is_active))
    return query.order_by(User.created_at.desc(), User.id.desc())


def departments() -> list[str]:
    rows = (
        db.session.query(User.department)
        .filter(User.role == Role.STAFF.value, User.department.isnot(None))
        .distinct()
        .order_by(User.department)
        .all()
    )
    return [row[0] for row in rows]


def _check_employee_id(employee_id: str | None, exclude_id: int | None = None) -> None:
    if not employee_id:
        return
    query = User.query.filter(User.employee_id == employee_id)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    if query.first():
        raise ValidationError({"employee_id": ["The employee id has already been taken."]})


def create_staff(data: dict) -> User:
    _check_employee_id(data.get("employee_id"))
    return auth_service.create_user(
        data["name"],
        data["email"],
        data["password"],
        Role.STAFF,
        phone=data.get("phone"),
        department=data.get("department"),
        employee_id=data.get("employee_id"),
        hire_date=data.get("hire_date"),
        is_active=True,
    )


def update_staff(staff_id: int, data: dict) -> User:
    staff = get_staff(staff_id)

    if "email" in data and auth_service.email_taken(data["email"], exclude_user_id=staff.id):
        raise ValidationError({"email": ["The email has already been taken."]})
    if "employee_id" in data:
        _check_employee_id(data["employee_id"], exclude_id=staff.id)

    for key in STAFF_FIELDS:
        if key in data:
            value = data[key]
            if key == "email":
                value = value.strip().lower()
            setattr(staff, key, value)

    if data.get("password"):
        staff.password_hash = auth_service.hash_password(data["password"])
        session_service.revoke_all_user_sessions(staff.id, reason="Password reset by admin", commit=False)
    if data.get("is_active") is False:
        session_service.revoke_all_user_sessions(staff.id, reason="Deactivated", commit=False)

    db.session.commit()
    return staff


def delete_staff(staff_id: int) -> bool:
    """
    Remove a staff account. A member who has processed orders is only
    deactivated so the orders keep their staff reference.

    Returns True when the row was deleted.
    """
    staff = get_staff(staff_id)

    if Order.query.filter_by(staff_id=staff.id).first():
        staff.is_active = False
        session_service.revoke_all_user_sessions(staff.id, reason="Deactivated", commit=False)
        db.session.commit()
        return False

    staff.sessions.delete()
    Notification.query.filter_by(user_id=staff.id).delete()
    db.session.delete(staff)
    db.session.commit()
    return True


# =============================================================================
# STAFF WORKLOAD
# =============================================================================

def _period(start=None, end=None):
    return start or start_of_month(), end or end_of_month()


def staff_stats(staff_id: int, start=None, end=None, payment_method_id: int | None = None) -> dict:
    start, end = _period(start, end)

    query = Order.query.filter(Order.staff_id == staff_id, Order.created_at.between(start, end))
    if payment_method_id:
        query = query.filter(Order.payment_method_id == payment_method_id)

    approved = query.filter(Order.approval_status == APPROVAL_APPROVED)
    rejected = query.filter(Order.approval_status == APPROVAL_REJECTED)

    total_income = approved.with_entities(func.coalesce(func.sum(Order.total_amount_cents), 0)).scalar()

    recent_rejections = (
        rejected.order_by(Order.rejected_at.desc(), Order.id.desc()).limit(10).all()
    )

    return {
        "total_approved": approved.count(),
        "total_rejected": rejected.count(),
        "total_income_cents": int(total_income or 0),
        "income_by_payment_method": income_by_payment_method(staff_id, start, end),
        "recent_rejections": [o.to_dict(include_items=False) for o in recent_rejections],
        "period": {"start_date": start.date().isoformat(), "end_date": end.date().isoformat()},
    }


def income_by_payment_method(staff_id: int, start, end) -> list[dict]:
    rows = (
        db.session.query(
            Order.payment_method_id,
            PaymentMethod.name,
            func.sum(Order.total_amount_cents),
            func.count(Order.id),
        )
        .outerjoin(PaymentMethod, Order.payment_method_id == PaymentMethod.id)
        .filter(
            Order.staff_id == staff_id,
            Order.approval_status == APPROVAL_APPROVED,
            Order.created_at.between(start, end),
        )
        .group_by(Order.payment_method_id, PaymentMethod.name)
        .order_by(Order.payment_method_id)
        .all()
    )
    return [
        {
            "payment_method_id": pm_id,
            "payment_method_name": name or "Unknown",
            "total_income_cents": int(total or 0),
            "order_count": count,
        }
        for pm_id, name, total, count in rows
    ]


def staff_dashboard(staff_id: int, start=None, end=None, payment_method_id: int | None = None) -> dict:
    recent = (
        Order.query.filter(
            Order.staff_id == staff_id,
            Order.approval_status.in_([APPROVAL_APPROVED, APPROVAL_REJECTED]),
        )
        .order_by(Order.updated_at.desc(), Order.id.desc())
        .limit(10)
        .all()
    )
    pending = (
        Order.query.filter(Order.approval_status == APPROVAL_PENDING)
        .order_by(Order.created_at.asc(), Order.id.asc())
        .limit(5)
        .all()
    )
    return {
        "stats": staff_stats(staff_id, start, end, payment_method_id),
        "recent_orders": [o.to_dict() for o in recent],
        "pending_orders": [o.to_dict() for o in pending],
        "payment_methods": [m.to_dict() for m in PaymentMethod.query.filter_by(is_active=True).all()],
    }


def staff_income_analytics(staff_id: int, start=None, end=None, payment_method_id: int | None = None) -> dict:
    start, end = _period(start, end)

    query = Order.query.filter(
        Order.staff_id == staff_id,
        Order.approval_status == APPROVAL_APPROVED,
        Order.created_at.between(start, end),
    )
    if payment_method_id:
        query = query.filter(Order.payment_method_id == payment_method_id)

    day = func.date(Order.created_at)
    daily = (
        query.with_entities(day.label("date"), func.sum(Order.total_amount_cents))
        .group_by(day)
        .order_by(day)
        .all()
    )
    total = query.with_entities(func.coalesce(func.sum(Order.total_amount_cents), 0)).scalar()

    return {
        "daily_income": [{"date": str(d), "total_cents": int(t or 0)} for d, t in daily],
        "payment_method_breakdown": income_by_payment_method(staff_id, start, end),
        "total_income_cents": int(total or 0),
        "total_orders": query.count(),
        "period": {"start_date": start.date().isoformat(), "end_date": end.date().isoformat()},
    }
