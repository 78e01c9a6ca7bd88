# Overview: Service-layer operations for reorder requests; pending -> approved -> completed lifecycle.

"""
ReorderRequest Service

The model methods (approve, warehouse_approve, warehouse_reject, complete,
cancel) apply transitions without checking the current status. This module
is the guard layer:

- approve / warehouse_approve / warehouse_reject / cancel require pending
- complete requires approved

complete() credits quantity_approved (or quantity_requested when the
warehouse never set one) and resolves every open alert for the product.
"""

from ..errors import NotFoundError, ServiceError
from ..extensions import db
from ..models import Product, ReorderRequest
from ..models.inventory import REORDER_APPROVED, REORDER_CANCELLED, REORDER_COMPLETED, REORDER_PENDING
from . import inventory_service, notification_service


HISTORY_STATUSES = (REORDER_APPROVED, REORDER_COMPLETED, REORDER_CANCELLED)


class ReorderError(ServiceError):
    """Raised for reorder state-precondition failures."""
    pass


def get_reorder_request(reorder_id: int) -> ReorderRequest:
    reorder = db.session.get(ReorderRequest, reorder_id)
    if not reorder:
        raise NotFoundError("Reorder request not found")
    return reorder


def _require_pending(reorder: ReorderRequest, message: str = "Reorder request is not pending") -> None:
    if not reorder.is_pending():
        raise ReorderError(message)


# =============================================================================
# QUERIES
# =============================================================================

def list_reorder_requests(status: str | None = None, start=None, end=None):
    query = ReorderRequest.query
    if status:
        query = query.filter(ReorderRequest.status == status)
    if start is not None:
        query = query.filter(ReorderRequest.created_at >= start)
    if end is not None:
        query = query.filter(ReorderRequest.created_at <= end)
    return query.order_by(ReorderRequest.created_at.desc(), ReorderRequest.id.desc())


def pending_reorders(product_name: str | None = None, start=None, end=None):
    query = ReorderRequest.query.filter(ReorderRequest.status == REORDER_PENDING)
    if product_name:
        query = query.join(Product, ReorderRequest.product_id == Product.id).filter(
            Product.name.ilike(f"%{product_name}%")
        )
    if start is not None and end is not None:
        query = query.filter(ReorderRequest.created_at.between(start, end))
    return query.order_by(ReorderRequest.created_at.desc(), ReorderRequest.id.desc())


def reorder_history(status: str | None = None, start=None, end=None):
    query = ReorderRequest.query.filter(ReorderRequest.status.in_(HISTORY_STATUSES))
    if status:
        query = query.filter(ReorderRequest.status == status)
    if start is not None and end is not None:
        query = query.filter(ReorderRequest.updated_at.between(start, end))
    return query.order_by(ReorderRequest.updated_at.desc(), ReorderRequest.id.desc())


# =============================================================================
# TRANSITIONS
# =============================================================================

def create_reorder_request(
    product_id: int,
    admin_id: int,
    quantity_requested: int,
    estimated_cost_cents: int,
    notes: str | None = None,
) -> ReorderRequest:
    if not db.session.get(Product, product_id):
        raise NotFoundError("Product not found")
    if quantity_requested < 1:
        raise ReorderError("Quantity requested must be at least 1")
    if estimated_cost_cents < 0:
        raise ReorderError("Estimated cost must not be negative")

    reorder = ReorderRequest(
        product_id=product_id,
        admin_id=admin_id,
        quantity_requested=quantity_requested,
        estimated_cost_cents=estimated_cost_cents,
        notes=notes,
        status=REORDER_PENDING,
    )
    db.session.add(reorder)
    db.session.commit()
    return reorder


def approve(reorder_id: int) -> ReorderRequest:
    """Admin approval. quantity_approved stays unset."""
    reorder = get_reorder_request(reorder_id)
    _require_pending(reorder)

    reorder.approve()
    db.session.commit()
    return reorder


def warehouse_approve(reorder_id: int, staff_id: int, quantity_approved: int, notes: str | None = None) -> ReorderRequest:
    reorder = get_reorder_request(reorder_id)
    _require_pending(reorder, "This reorder request has already been processed")
    if quantity_approved < 1:
        raise ReorderError("Quantity approved must be at least 1")

    reorder.warehouse_approve(staff_id, quantity_approved, notes)
    db.session.commit()

    notification_service.notify(
        reorder.admin_id,
        notification_service.REORDER_APPROVED,
        "Reorder approved",
        f"Warehouse approved {quantity_approved} x '{reorder.product.name}' "
        f"(requested {reorder.quantity_requested}).",
        reorder_request_id=reorder.id,
    )
    return reorder


def warehouse_reject(reorder_id: int, staff_id: int, notes: str) -> ReorderRequest:
    reorder = get_reorder_request(reorder_id)
    _require_pending(reorder, "This reorder request has already been processed")

    reorder.warehouse_reject(staff_id, notes)
    db.session.commit()

    notification_service.notify(
        reorder.admin_id,
        notification_service.REORDER_REJECTED,
        "Reorder rejected",
        f"Warehouse rejected the reorder of '{reorder.product.name}'. Reason: {notes}",
        reorder_request_id=reorder.id,
    )
    return reorder


def complete(reorder_id: int) -> ReorderRequest:
    reorder = get_reorder_request(reorder_id)
    if not reorder.is_approved():
        raise ReorderError("Reorder request must be approved before completion")

    product = reorder.product
    old_quantity = product.quantity
    reorder.complete()
    db.session.commit()
    inventory_service.log_stock_change(product, old_quantity, product.quantity, f"reorder {reorder.id}")

    notification_service.notify_admins(
        notification_service.REORDER_COMPLETED,
        "Reorder completed",
        f"Reorder of '{product.name}' completed. {product.quantity - old_quantity} units added to stock.",
        reorder_request_id=reorder.id,
    )
    return reorder


def cancel(reorder_id: int) -> ReorderRequest:
    reorder = get_reorder_request(reorder_id)
    _require_pending(reorder, "Only pending reorder requests can be cancelled")

    reorder.cancel()
    db.session.commit()
    return reorder


# =============================================================================
# DASHBOARD
# =============================================================================

def warehouse_reorder_dashboard() -> dict:
    def _count(status):
        return ReorderRequest.query.filter_by(status=status).count()

    def _value(status):
        total = db.session.query(
            db.func.coalesce(db.func.sum(ReorderRequest.estimated_cost_cents), 0)
        ).filter(ReorderRequest.status == status).scalar()
        return int(total or 0)

    recent = (
        ReorderRequest.query.filter(ReorderRequest.status.in_([REORDER_APPROVED, REORDER_CANCELLED]))
        .order_by(ReorderRequest.updated_at.desc(), ReorderRequest.id.desc())
        .limit(10)
        .all()
    )

    return {
        "stats": {
            "pending_reorders": _count(REORDER_PENDING),
            "approved_reorders": _count(REORDER_APPROVED),
            "completed_reorders": _count(REORDER_COMPLETED),
            "rejected_reorders": _count(REORDER_CANCELLED),
            "total_value_pending_cents": _value(REORDER_PENDING),
            "total_value_approved_cents": _value(REORDER_APPROVED),
        },
        "recent_activity": [r.to_dict() for r in recent],
    }
