# Overview: Service-layer operations for orders; placement, cancellation, returns and staff review.

"""
Order Service

PLACEMENT (place_order):
1. Cart must be non-empty and every line must fit current stock.
   Both checks run once, up front; a failure leaves Product, Order and Cart
   untouched.
2. Order + OrderItems are created (unit price snapshot) and committed.
3. Stock is decremented per item. A product that lands in low stock
   triggers an admin notification and check_and_create_alerts.
4. A Pending payment Transaction with a fresh ticket number is created.
5. The cart is cleared.

Steps 2-5 are separate commits with no enclosing transaction. A failure
between them can leave stock, order and cart out of step; there is no
compensation.

STATE MACHINE:
Pending -> {Processing, Cancelled, Rejected} -> Shipped -> Delivered -> Return Requested
- cancel: not from Shipped, Delivered or Cancelled; restores every item's stock
- return: only from Delivered; records the reason, no stock/payment effect
- approve/reject: staff review, guarded by approval_status == pending
"""

import random
import secrets
import string

from flask import current_app

from ..errors import ForbiddenError, NotFoundError, ServiceError
from ..extensions import db
from ..models import Cart, CartItem, Order, OrderItem, PaymentMethod, Transaction, User
from ..models.orders import (
    APPROVAL_PENDING,
    ORDER_CANCELLED,
    ORDER_DELIVERED,
    ORDER_PENDING,
    ORDER_RETURN_REQUESTED,
    ORDER_SHIPPED,
    PAYMENT_PENDING,
    TXN_PENDING,
    TXN_TYPE_PAYMENT,
)
from ..permissions import Role
from ..time_utils import to_utc_z
from . import inventory_service, notification_service


NON_CANCELLABLE_STATUSES = (ORDER_SHIPPED, ORDER_DELIVERED, ORDER_CANCELLED)

ORDER_NUMBER_PREFIX = "ORD-"
ORDER_NUMBER_LENGTH = 10


class OrderError(ServiceError):
    """Raised for order state-precondition failures."""
    pass


# =============================================================================
# IDENTIFIERS
# =============================================================================

def generate_order_number() -> str:
    """ORD- followed by 10 random uppercase alphanumerics, unique among orders."""
    alphabet = string.ascii_uppercase + string.digits
    while True:
        candidate = ORDER_NUMBER_PREFIX + "".join(secrets.choice(alphabet) for _ in range(ORDER_NUMBER_LENGTH))
        if not Order.query.filter_by(order_number=candidate).first():
            return candidate


def generate_ticket_number() -> str:
    """
    3 distinct uppercase letters + 4 zero-padded digits, e.g. "QKD0427".

    Regenerated until no Transaction already carries it.
    """
    while True:
        letters = "".join(random.sample(string.ascii_uppercase, 3))
        digits = f"{random.randint(0, 9999):04d}"
        candidate = letters + digits
        if not Transaction.query.filter_by(ticket_number=candidate).first():
            return candidate


# =============================================================================
# LOOKUPS
# =============================================================================

def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")
    return order


def get_order_for_actor(order_id: int, actor: User, owner_only: bool = False) -> Order:
    """
    Fetch an order the actor may see.

    Customers only ever see their own orders. With owner_only=True the
    check applies to every role (track, return).
    """
    order = get_order(order_id)
    if (owner_only or actor.role == Role.CUSTOMER.value) and order.user_id != actor.id:
        raise ForbiddenError("Unauthorized")
    return order


def list_orders(actor: User, start=None, end=None, order_number: str | None = None):
    query = Order.query
    if actor.role == Role.CUSTOMER.value:
        query = query.filter(Order.user_id == actor.id)
    if start is not None and end is not None:
        query = query.filter(Order.created_at.between(start, end))
    if order_number:
        query = query.filter(Order.order_number.ilike(f"%{order_number}%"))
    return query.order_by(Order.created_at.desc(), Order.id.desc())


def order_history(user_id: int):
    return Order.query.filter_by(user_id=user_id).order_by(Order.created_at.desc(), Order.id.desc())


def tracking_info(order: Order) -> dict:
    return {
        "order_number": order.order_number,
        "order_status": order.order_status,
        "payment_status": order.payment_status,
        "created_at": to_utc_z(order.created_at),
        "updated_at": to_utc_z(order.updated_at),
        "estimated_delivery": to_utc_z(order.estimated_delivery_date),
        "tracking_number": order.tracking_number,
    }


# =============================================================================
# PLACEMENT
# =============================================================================

def place_order(user_id: int, payment_method_id: int, notes: str | None = None) -> tuple[Order, Transaction]:
    """
    Turn the user's cart into an order.

    Returns (order, pending_payment_transaction).

    Raises:
        NotFoundError: payment method does not exist
        OrderError: cart empty, or an item is inactive or exceeds available stock
    """
    if not db.session.get(PaymentMethod, payment_method_id):
        raise NotFoundError("Payment method not found")

    cart = Cart.query.filter_by(user_id=user_id).first()
    if not cart or not cart.items:
        raise OrderError("Cart is empty")

    lines = [(item.product, item.quantity) for item in cart.items]
    for product, quantity in lines:
        if not product.is_active:
            raise OrderError(f"{product.name} is no longer available")
        if quantity > product.quantity:
            raise OrderError(f"Not enough stock for {product.name}")

    order = Order(
        user_id=user_id,
        order_number=generate_order_number(),
        total_amount_cents=sum(product.price_cents * quantity for product, quantity in lines),
        payment_method_id=payment_method_id,
        payment_status=PAYMENT_PENDING,
        order_status=ORDER_PENDING,
        notes=notes,
    )
    db.session.add(order)
    db.session.flush()

    for product, quantity in lines:
        db.session.add(OrderItem(
            order_id=order.id,
            product_id=product.id,
            quantity=quantity,
            unit_price_cents=product.price_cents,
        ))
    db.session.commit()

    for product, quantity in lines:
        old_quantity = product.quantity
        product.quantity = old_quantity - quantity
        db.session.commit()
        inventory_service.log_stock_change(product, old_quantity, product.quantity, f"order {order.order_number}")

        if product.is_low_stock():
            inventory_service.notify_low_stock(product)
            inventory_service.check_and_create_alerts(product)

    transaction = Transaction(
        order_id=order.id,
        user_id=user_id,
        payment_method_id=payment_method_id,
        amount_cents=order.total_amount_cents,
        transaction_type=TXN_TYPE_PAYMENT,
        ticket_number=generate_ticket_number(),
        status=TXN_PENDING,
    )
    db.session.add(transaction)
    db.session.commit()

    CartItem.query.filter_by(cart_id=cart.id).delete()
    db.session.commit()
    db.session.expire(cart, ["items"])

    current_app.logger.info(
        "Order placed order_number=%s user_id=%s total_cents=%s ticket=%s",
        order.order_number, user_id, order.total_amount_cents, transaction.ticket_number,
    )
    return order, transaction


# =============================================================================
# CUSTOMER TRANSITIONS
# =============================================================================

def cancel_order(order_id: int, actor: User) -> Order:
    """
    Cancel an order and put every item's quantity back on the shelf.

    Customers may only cancel their own orders.
    """
    order = get_order_for_actor(order_id, actor)

    if order.order_status in NON_CANCELLABLE_STATUSES:
        raise OrderError("Order cannot be cancelled")

    for item in order.items:
        product = item.product
        old_quantity = product.quantity
        product.quantity = old_quantity + item.quantity
        db.session.commit()
        inventory_service.log_stock_change(product, old_quantity, product.quantity, f"cancel {order.order_number}")

    order.order_status = ORDER_CANCELLED
    db.session.commit()
    return order


def request_return(order_id: int, actor: User, reason: str) -> Order:
    order = get_order_for_actor(order_id, actor, owner_only=True)

    if order.order_status != ORDER_DELIVERED:
        raise OrderError("Only delivered orders can be returned")

    order.order_status = ORDER_RETURN_REQUESTED
    order.return_reason = reason
    db.session.commit()
    return order


# =============================================================================
# STAFF TRANSITIONS
# =============================================================================

def approve_order(order_id: int, staff_id: int, notes: str | None = None) -> Order:
    order = get_order(order_id)
    if not order.is_pending():
        raise OrderError("Order is not pending approval")

    order.approve(staff_id, notes)
    db.session.commit()

    notification_service.notify(
        order.user_id,
        notification_service.ORDER_APPROVED,
        "Order approved",
        f"Your order {order.order_number} has been approved and is being processed.",
        order_id=order.id,
        notes=notes,
    )
    return order


def reject_order(order_id: int, staff_id: int, notes: str) -> Order:
    order = get_order(order_id)
    if not order.is_pending():
        raise OrderError("Order is not pending approval")

    order.reject(staff_id, notes)
    db.session.commit()

    notification_service.notify(
        order.user_id,
        notification_service.ORDER_REJECTED,
        "Order rejected",
        f"Your order {order.order_number} has been rejected. Reason: {notes}",
        order_id=order.id,
        notes=notes,
    )
    return order


def update_order_status(order_id: int, order_status: str, staff_id: int) -> Order:
    """Set order_status directly. approval_status is left as is."""
    order = get_order(order_id)
    old_status = order.order_status

    order.order_status = order_status
    order.staff_id = staff_id
    db.session.commit()

    notification_service.notify(
        order.user_id,
        notification_service.ORDER_STATUS_CHANGED,
        "Order status updated",
        f"Your order {order.order_number} is now {order_status}.",
        order_id=order.id,
        old_status=old_status,
        new_status=order_status,
    )
    return order


def update_payment_status(order_id: int, payment_status: str) -> Order:
    order = get_order(order_id)
    order.payment_status = payment_status
    db.session.commit()
    return order


def pending_review_query(search: str | None = None, payment_method_id: int | None = None, start=None, end=None):
    """Orders awaiting staff review, oldest first."""
    query = Order.query.filter(Order.approval_status == APPROVAL_PENDING)
    if search:
        like = f"%{search}%"
        query = query.join(User, Order.user_id == User.id).filter(
            db.or_(Order.order_number.ilike(like), User.name.ilike(like), User.email.ilike(like))
        )
    if payment_method_id:
        query = query.filter(Order.payment_method_id == payment_method_id)
    if start is not None:
        query = query.filter(Order.created_at >= start)
    if end is not None:
        query = query.filter(Order.created_at <= end)
    return query.order_by(Order.created_at.asc(), Order.id.asc())

