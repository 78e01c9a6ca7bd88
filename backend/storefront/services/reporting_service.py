# Overview: Read-only aggregations for the admin, warehouse, staff and customer dashboards.

"""
Reporting Service

Everything here is read-only. Money is summed in cents.

Period bucketing (daily/weekly/monthly/yearly) happens in Python over
(created_at, amount) rows so the same code works on SQLite and Postgres.
"""

from collections import OrderedDict
from datetime import timedelta

from sqlalchemy import func

from ..extensions import db
from ..models import (
    Cart,
    Category,
    Order,
    OrderItem,
    PaymentMethod,
    Product,
    RequestOrder,
    User,
    product_categories,
)
from ..models.inventory import REQUEST_APPROVED, REQUEST_PENDING
from ..models.orders import (
    APPROVAL_APPROVED,
    APPROVAL_REJECTED,
    ORDER_DELIVERED,
    ORDER_PENDING,
    ORDER_PROCESSING,
    PAYMENT_PAID,
)
from ..permissions import Role
from ..time_utils import utcnow


PERIODS = ("daily", "weekly", "monthly", "yearly")
DEFAULT_WINDOW_DAYS = 30


def default_window(start=None, end=None):
    end = end or utcnow()
    start = start or end - timedelta(days=DEFAULT_WINDOW_DAYS)
    return start, end


def period_key(dt, period: str) -> str:
    if period == "daily":
        return dt.date().isoformat()
    if period == "weekly":
        year, week, _ = dt.isocalendar()
        return f"{year}-W{week:02d}"
    if period == "monthly":
        return f"{dt.year}-{dt.month:02d}"
    if period == "yearly":
        return str(dt.year)
    raise ValueError(f"Unknown period: {period}")


def _sum_cents(query, column) -> int:
    return int(query.with_entities(func.coalesce(func.sum(column), 0)).scalar() or 0)


def _customers():
    return User.query.filter(User.role == Role.CUSTOMER.value)


# =============================================================================
# ADMIN
# =============================================================================

def admin_dashboard(start=None, end=None, payment_method_id: int | None = None) -> dict:
    start, end = default_window(start, end)

    orders = Order.query.filter(Order.created_at.between(start, end))
    if payment_method_id:
        orders = orders.filter(Order.payment_method_id == payment_method_id)

    approved = orders.filter(Order.approval_status == APPROVAL_APPROVED)

    by_status = (
        orders.with_entities(Order.order_status, func.count(Order.id))
        .group_by(Order.order_status)
        .all()
    )
    by_approval = (
        orders.with_entities(Order.approval_status, func.count(Order.id))
        .group_by(Order.approval_status)
        .all()
    )

    by_method = (
        db.session.query(
            Order.payment_method_id,
            PaymentMethod.name,
            func.sum(Order.total_amount_cents),
            func.count(Order.id),
        )
        .outerjoin(PaymentMethod, Order.payment_method_id == PaymentMethod.id)
        .filter(Order.approval_status == APPROVAL_APPROVED, Order.created_at.between(start, end))
        .group_by(Order.payment_method_id, PaymentMethod.name)
        .all()
    )

    recent = orders.order_by(Order.created_at.desc(), Order.id.desc()).limit(10).all()
    low_stock = Product.low_stock_query().order_by(Product.quantity.asc(), Product.id).limit(10).all()
    pending_requests = (
        RequestOrder.query.filter(RequestOrder.status == REQUEST_PENDING)
        .order_by(RequestOrder.created_at.desc())
        .limit(10)
        .all()
    )

    return {
        "total_income_cents": _sum_cents(approved, Order.total_amount_cents),
        "orders_by_status": [{"order_status": s, "count": c} for s, c in by_status],
        "orders_by_approval_status": [{"approval_status": s, "count": c} for s, c in by_approval],
        "income_by_payment_method": [
            {
                "payment_method_id": pm_id,
                "payment_method_name": name or "Unknown",
                "total_income_cents": int(total or 0),
                "order_count": count,
            }
            for pm_id, name, total, count in by_method
        ],
        "recent_orders": [o.to_dict(include_items=False) for o in recent],
        "low_stock_products": [p.to_dict() for p in low_stock],
        "pending_request_orders": [r.to_dict() for r in pending_requests],
        "top_selling_products": top_selling_products(start, end),
        "user_stats": {
            "total_customers": _customers().count(),
            "new_customers": _customers().filter(User.created_at.between(start, end)).count(),
            "total_staff": User.query.filter(User.role == Role.STAFF.value).count(),
        },
        "staff_performance": staff_performance(start, end),
        "payment_methods": [m.to_dict() for m in PaymentMethod.query.filter_by(is_active=True).all()],
    }


def top_selling_products(start, end, limit: int = 5) -> list[dict]:
    qty = func.sum(OrderItem.quantity)
    rows = (
        db.session.query(Product.id, Product.name, qty, func.sum(OrderItem.quantity * OrderItem.unit_price_cents))
        .join(OrderItem, OrderItem.product_id == Product.id)
        .join(Order, Order.id == OrderItem.order_id)
        .filter(Order.approval_status == APPROVAL_APPROVED, Order.created_at.between(start, end))
        .group_by(Product.id, Product.name)
        .order_by(qty.desc(), Product.id)
        .limit(limit)
        .all()
    )
    return [
        {"product_id": pid, "name": name, "total_sold": int(sold or 0), "revenue_cents": int(revenue or 0)}
        for pid, name, sold, revenue in rows
    ]


def staff_performance(start, end) -> list[dict]:
    rows = (
        Order.query.filter(Order.staff_id.isnot(None), Order.created_at.between(start, end))
        .with_entities(Order.staff_id, Order.approval_status, Order.total_amount_cents)
        .all()
    )

    stats: dict[int, dict] = {}
    for staff_id, approval_status, amount in rows:
        entry = stats.setdefault(staff_id, {"approved": 0, "rejected": 0, "revenue_generated_cents": 0})
        if approval_status == APPROVAL_APPROVED:
            entry["approved"] += 1
            entry["revenue_generated_cents"] += amount
        elif approval_status == APPROVAL_REJECTED:
            entry["rejected"] += 1

    result = []
    for staff_id, entry in stats.items():
        staff = db.session.get(User, staff_id)
        processed = entry["approved"] + entry["rejected"]
        result.append({
            "staff_id": staff_id,
            "staff_name": staff.name if staff else "Unknown",
            "employee_id": (staff.employee_id if staff else None) or "N/A",
            "total_processed": processed,
            "approval_rate": round(entry["approved"] / processed * 100, 2) if processed else 0,
            **entry,
        })
    result.sort(key=lambda r: r["total_processed"], reverse=True)
    return result


def income_analytics(period: str = "monthly", start=None, end=None) -> dict:
    """
    Paid-order income bucketed by period.

    Raises:
        ValueError: unknown period
    """
    if period not in PERIODS:
        raise ValueError(f"Unknown period: {period}")
    start, end = default_window(start, end)

    rows = (
        Order.query.filter(Order.payment_status == PAYMENT_PAID, Order.created_at.between(start, end))
        .with_entities(Order.created_at, Order.total_amount_cents)
        .order_by(Order.created_at)
        .all()
    )

    buckets: OrderedDict[str, dict] = OrderedDict()
    for created_at, amount in rows:
        key = period_key(created_at, period)
        bucket = buckets.setdefault(key, {"period": key, "income_cents": 0, "orders_count": 0})
        bucket["income_cents"] += amount
        bucket["orders_count"] += 1

    data = list(buckets.values())
    return {
        "period": period,
        "data": data,
        "total_income_cents": sum(b["income_cents"] for b in data),
        "total_orders": sum(b["orders_count"] for b in data),
    }


def product_order_history(
    period: str = "monthly",
    start=None,
    end=None,
    product_id: int | None = None,
    category_id: int | None = None,
) -> dict:
    if period not in PERIODS:
        raise ValueError(f"Unknown period: {period}")
    start, end = default_window(start, end)

    query = (
        db.session.query(Order.created_at, Product.id, Product.name, OrderItem.quantity, OrderItem.unit_price_cents)
        .select_from(OrderItem)
        .join(Order, Order.id == OrderItem.order_id)
        .join(Product, Product.id == OrderItem.product_id)
        .filter(Order.payment_status == PAYMENT_PAID, Order.created_at.between(start, end))
    )
    if product_id:
        query = query.filter(Product.id == product_id)
    if category_id:
        query = query.join(product_categories, product_categories.c.product_id == Product.id).filter(
            product_categories.c.category_id == category_id
        )

    buckets: OrderedDict[tuple, dict] = OrderedDict()
    for created_at, pid, name, quantity, unit_price in query.order_by(Order.created_at).all():
        key = period_key(created_at, period)
        bucket = buckets.setdefault((key, pid), {
            "period": key,
            "product_id": pid,
            "product_name": name,
            "total_quantity": 0,
            "total_revenue_cents": 0,
        })
        bucket["total_quantity"] += quantity
        bucket["total_revenue_cents"] += quantity * unit_price

    return {"period": period, "data": list(buckets.values())}


def category_analytics(start=None, end=None) -> dict:
    start, end = default_window(start, end)

    product_counts = dict(
        db.session.query(product_categories.c.category_id, func.count(product_categories.c.product_id))
        .group_by(product_categories.c.category_id)
        .all()
    )

    sales = {
        cid: (int(qty or 0), int(revenue or 0))
        for cid, qty, revenue in (
            db.session.query(
                product_categories.c.category_id,
                func.sum(OrderItem.quantity),
                func.sum(OrderItem.quantity * OrderItem.unit_price_cents),
            )
            .select_from(OrderItem)
            .join(Order, Order.id == OrderItem.order_id)
            .join(product_categories, product_categories.c.product_id == OrderItem.product_id)
            .filter(Order.payment_status == PAYMENT_PAID, Order.created_at.between(start, end))
            .group_by(product_categories.c.category_id)
            .all()
        )
    }

    performance = []
    for category in Category.query.order_by(Category.id).all():
        qty, revenue = sales.get(category.id, (0, 0))
        performance.append({
            "id": category.id,
            "name": category.name,
            "products_count": product_counts.get(category.id, 0),
            "total_quantity_sold": qty,
            "total_revenue_cents": revenue,
        })
    performance.sort(key=lambda row: row["total_revenue_cents"], reverse=True)
    return {"category_performance": performance}


def _summary_stats(start, end) -> dict:
    return {
        "total_revenue_cents": _sum_cents(
            Order.query.filter(Order.payment_status == PAYMENT_PAID, Order.created_at.between(start, end)),
            Order.total_amount_cents,
        ),
        "total_orders": Order.query.filter(Order.created_at.between(start, end)).count(),
        "total_customers": _customers().filter(User.created_at.between(start, end)).count(),
        "total_products": Product.query.count(),
    }


def _change(current: int, previous: int) -> float:
    if previous > 0:
        return round((current - previous) / previous * 100, 2)
    return 100.0 if current > 0 else 0.0


def dashboard_summary(start=None, end=None) -> dict:
    """Current window stats against the window of equal length right before it."""
    start, end = default_window(start, end)
    length = end - start
    prev_end = start
    prev_start = start - length

    current = _summary_stats(start, end)
    previous = _summary_stats(prev_start, prev_end)

    return {
        "current_stats": current,
        "previous_stats": previous,
        "changes": {
            "revenue_change": _change(current["total_revenue_cents"], previous["total_revenue_cents"]),
            "orders_change": _change(current["total_orders"], previous["total_orders"]),
            "customers_change": _change(current["total_customers"], previous["total_customers"]),
        },
    }


# =============================================================================
# WAREHOUSE / STAFF / CUSTOMER
# =============================================================================

def warehouse_dashboard() -> dict:
    pending = (
        RequestOrder.query.filter(
            RequestOrder.admin_approval_status == REQUEST_APPROVED,
            RequestOrder.warehouse_approval_status == REQUEST_PENDING,
        )
        .order_by(RequestOrder.created_at.asc())
        .all()
    )
    recent_approved = (
        RequestOrder.query.filter(RequestOrder.warehouse_approval_status == REQUEST_APPROVED)
        .order_by(RequestOrder.updated_at.desc(), RequestOrder.id.desc())
        .limit(10)
        .all()
    )
    return {
        "pending_approvals": [r.to_dict() for r in pending],
        "low_stock_products": [p.to_dict() for p in Product.low_stock_query().all()],
        "recent_approved_requests": [r.to_dict() for r in recent_approved],
        "inventory_summary": {
            "total_products": Product.query.count(),
            "low_stock_count": Product.low_stock_query().count(),
            "out_of_stock_count": Product.out_of_stock_query().count(),
        },
    }


def staff_overview(staff_id: int) -> dict:
    pending = Order.query.filter(Order.order_status == ORDER_PENDING).order_by(Order.created_at.asc()).all()
    processed = (
        Order.query.filter(Order.staff_id == staff_id)
        .order_by(Order.updated_at.desc(), Order.id.desc())
        .limit(10)
        .all()
    )
    ready = Order.query.filter(Order.order_status == ORDER_PROCESSING).order_by(Order.updated_at.asc()).all()
    return {
        "pending_orders": [o.to_dict() for o in pending],
        "processed_orders": [o.to_dict() for o in processed],
        "ready_for_delivery": [o.to_dict() for o in ready],
    }


def customer_dashboard(user_id: int) -> dict:
    orders = Order.query.filter(Order.user_id == user_id)
    recent = orders.order_by(Order.created_at.desc(), Order.id.desc()).limit(5).all()
    cart = Cart.query.filter_by(user_id=user_id).first()

    return {
        "recent_orders": [o.to_dict() for o in recent],
        "order_stats": {
            "total_orders": orders.count(),
            "pending_orders": orders.filter(Order.order_status == ORDER_PENDING).count(),
            "delivered_orders": orders.filter(Order.order_status == ORDER_DELIVERED).count(),
            "total_spent_cents": _sum_cents(orders.filter(Order.payment_status == PAYMENT_PAID), Order.total_amount_cents),
        },
        "cart_summary": {
            "items_count": len(cart.items) if cart else 0,
            "total_amount_cents": cart.total_cents() if cart else 0,
        },
    }
