# Overview: Service-layer operations for request orders; the admin -> warehouse dual approval chain.

"""
RequestOrder Service

APPROVAL CHAIN:
- admin_decision: only while admin_approval_status is Pending.
  Rejected -> status Rejected (terminal). Approved -> status stays Pending
  and warehouse managers are notified.
- warehouse_decision: refused unless admin_approval_status is Approved, and
  refused once warehouse_approval_status has left Pending.
  Approved -> status Approved and product quantity += request quantity.
  Rejected -> status Rejected.

Every guard runs before the first mutation, so a refused call changes
nothing.
"""

from flask import current_app

from ..errors import NotFoundError, ServiceError
from ..extensions import db
from ..models import Product, RequestOrder, User
from ..models.inventory import REQUEST_APPROVED, REQUEST_DECISIONS, REQUEST_PENDING, REQUEST_REJECTED
from ..permissions import Role
from . import inventory_service, notification_service


class RequestOrderError(ServiceError):
    """Raised for request-order state-precondition failures."""
    pass


def get_request_order(request_order_id: int) -> RequestOrder:
    request_order = db.session.get(RequestOrder, request_order_id)
    if not request_order:
        raise NotFoundError("Request order not found")
    return request_order


def list_request_orders(actor: User):
    """
    Admins see every request; warehouse managers only those an admin approved.
    """
    query = RequestOrder.query
    if actor.role == Role.WAREHOUSE_MANAGER.value:
        query = query.filter(RequestOrder.admin_approval_status == REQUEST_APPROVED)
    return query.order_by(RequestOrder.created_at.desc(), RequestOrder.id.desc())


def create_request_order(product_id: int, quantity: int, requested_by: int, admin_notes: str | None = None) -> RequestOrder:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")
    if quantity < 1:
        raise RequestOrderError("Quantity must be at least 1")

    request_order = RequestOrder(
        product_id=product_id,
        quantity=quantity,
        requested_by=requested_by,
        status=REQUEST_PENDING,
        admin_approval_status=REQUEST_PENDING,
        warehouse_approval_status=REQUEST_PENDING,
        admin_notes=admin_notes,
    )
    db.session.add(request_order)
    db.session.commit()

    notification_service.notify_admins(
        notification_service.NEW_REQUEST_ORDER,
        "New request order",
        f"A request order for {quantity} x '{product.name}' needs admin approval.",
        exclude_id=requested_by,
        request_order_id=request_order.id,
    )
    return request_order


def admin_decision(request_order_id: int, decision: str, notes: str | None = None) -> RequestOrder:
    if decision not in REQUEST_DECISIONS:
        raise RequestOrderError(f"Invalid decision: {decision}")

    request_order = get_request_order(request_order_id)
    if request_order.admin_approval_status != REQUEST_PENDING:
        raise RequestOrderError("Admin approval has already been given for this request order")

    request_order.admin_approval_status = decision
    if notes is not None:
        request_order.admin_notes = notes
    if decision == REQUEST_REJECTED:
        request_order.status = REQUEST_REJECTED
    db.session.commit()

    if decision == REQUEST_APPROVED:
        notification_service.notify_warehouse_managers(
            notification_service.REQUEST_ORDER_ADMIN_APPROVED,
            "Request order awaiting warehouse approval",
            f"Request order #{request_order.id} for {request_order.quantity} x "
            f"'{request_order.product.name}' was approved by an admin.",
            request_order_id=request_order.id,
        )
    return request_order


def warehouse_decision(request_order_id: int, decision: str, notes: str | None = None) -> RequestOrder:
    if decision not in REQUEST_DECISIONS:
        raise RequestOrderError(f"Invalid decision: {decision}")

    request_order = get_request_order(request_order_id)
    if request_order.admin_approval_status != REQUEST_APPROVED:
        raise RequestOrderError("Admin approval is required before warehouse approval")
    if request_order.warehouse_approval_status != REQUEST_PENDING:
        raise RequestOrderError("Warehouse approval has already been given for this request order")

    request_order.warehouse_approval_status = decision
    if notes is not None:
        request_order.warehouse_notes = notes

    if decision == REQUEST_APPROVED:
        request_order.status = REQUEST_APPROVED
        product = request_order.product
        old_quantity = product.quantity
        product.quantity = old_quantity + request_order.quantity
        db.session.commit()
        inventory_service.log_stock_change(
            product, old_quantity, product.quantity, f"request order {request_order.id}"
        )
    else:
        request_order.status = REQUEST_REJECTED
        db.session.commit()

    current_app.logger.info(
        "Request order %s warehouse decision=%s", request_order.id, decision
    )

    notification_service.notify(
        request_order.requested_by,
        notification_service.REQUEST_ORDER_WAREHOUSE_DECISION,
        f"Request order {decision.lower()}",
        f"Warehouse {decision.lower()} request order #{request_order.id} for "
        f"{request_order.quantity} x '{request_order.product.name}'.",
        request_order_id=request_order.id,
        decision=decision,
    )
    return request_order
