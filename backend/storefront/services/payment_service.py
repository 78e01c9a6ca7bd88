# Overview: Service-layer operations for payments; simulated gateway initiation and callbacks.

"""
Payment Service

There is no real gateway. initiate_payment creates a Pending transaction
with a TXN- id and returns a simulated checkout URL; the gateway (or the
mock completion endpoint) reports back through handle_callback.

CALLBACK:
- success: transaction Completed, order Paid, order_status Pending ->
  Processing (other statuses untouched), customer notified
- failed / cancelled: transaction Failed, order payment Failed
"""

import secrets
import string
from datetime import timedelta

from ..errors import ForbiddenError, NotFoundError, ServiceError
from ..extensions import db
from ..models import Order, PaymentMethod, Transaction, User
from ..models.orders import (
    ORDER_PENDING,
    ORDER_PROCESSING,
    PAYMENT_FAILED,
    PAYMENT_PAID,
    PAYMENT_PENDING,
    TXN_COMPLETED,
    TXN_FAILED,
    TXN_PENDING,
    TXN_TYPE_PAYMENT,
)
from ..permissions import has_permission
from ..time_utils import to_utc_z, utcnow
from . import notification_service
from .order_service import generate_ticket_number, get_order_for_actor


CALLBACK_SUCCESS = "success"
CALLBACK_FAILED = "failed"
CALLBACK_CANCELLED = "cancelled"
CALLBACK_STATUSES = (CALLBACK_SUCCESS, CALLBACK_FAILED, CALLBACK_CANCELLED)

RETRYABLE_STATUSES = (PAYMENT_FAILED, PAYMENT_PENDING)

GATEWAY_URLS = {
    "Credit Card": "https://payment-gateway.example.com/card/{txn}",
    "PayPal": "https://paypal.com/checkout/{txn}",
    "Bank Transfer": "https://bank-gateway.example.com/transfer/{txn}",
    "Digital Wallet": "https://wallet-gateway.example.com/pay/{txn}",
}
DEFAULT_GATEWAY_URL = "https://payment-gateway.example.com/pay/{txn}"

PAYMENT_LINK_TTL = timedelta(minutes=30)


class PaymentError(ServiceError):
    """Raised for payment state-precondition failures."""
    pass


def _random_code(length: int) -> str:
    alphabet = string.ascii_uppercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def active_payment_methods() -> list[PaymentMethod]:
    return PaymentMethod.query.filter_by(is_active=True).order_by(PaymentMethod.id).all()


def simulate_gateway(transaction: Transaction, method: PaymentMethod) -> dict:
    template = GATEWAY_URLS.get(method.name, DEFAULT_GATEWAY_URL)
    return {
        "payment_url": template.format(txn=transaction.transaction_id),
        "gateway_reference": "GW-" + _random_code(10),
        "expires_at": to_utc_z(utcnow() + PAYMENT_LINK_TTL),
    }


def initiate_payment(order_id: int, actor: User, payment_method_id: int) -> tuple[Transaction, dict]:
    """
    Start a (simulated) gateway payment for the actor's own order.

    Returns (pending_transaction, gateway_info).
    """
    order = get_order_for_actor(order_id, actor, owner_only=True)
    if order.payment_status == PAYMENT_PAID:
        raise PaymentError("Order is already paid")

    method = db.session.get(PaymentMethod, payment_method_id)
    if not method:
        raise NotFoundError("Payment method not found")

    transaction = Transaction(
        order_id=order.id,
        user_id=actor.id,
        payment_method_id=method.id,
        amount_cents=order.total_amount_cents,
        transaction_type=TXN_TYPE_PAYMENT,
        transaction_id="TXN-" + _random_code(12),
        ticket_number=generate_ticket_number(),
        status=TXN_PENDING,
    )
    transaction.set_gateway_response({
        "initiated_at": to_utc_z(utcnow()),
        "payment_method": method.name,
    })
    db.session.add(transaction)
    db.session.commit()

    return transaction, simulate_gateway(transaction, method)


def handle_callback(
    transaction_id: str,
    status: str,
    gateway_reference: str | None = None,
    gateway_response: dict | None = None,
    actor: User | None = None,
) -> tuple[Transaction, Order]:
    """
    Apply a gateway result to a transaction and its order.

    When an actor is given, only the order owner or a role that may process
    orders can report the result.
    """
    if status not in CALLBACK_STATUSES:
        raise PaymentError(f"Invalid callback status: {status}")

    transaction = Transaction.query.filter_by(transaction_id=transaction_id).first()
    if not transaction:
        raise NotFoundError("Transaction not found")
    order = transaction.order
    if not order:
        raise NotFoundError("Order not found")
    if actor is not None and order.user_id != actor.id and not has_permission(actor.role, "PROCESS_ORDERS"):
        raise ForbiddenError("Unauthorized")

    succeeded = status == CALLBACK_SUCCESS
    now = utcnow()

    merged = transaction.get_gateway_response() or {}
    merged.update(gateway_response or {})
    merged["callback_received_at"] = to_utc_z(now)

    transaction.status = TXN_COMPLETED if succeeded else TXN_FAILED
    transaction.gateway_reference = gateway_reference
    transaction.set_gateway_response(merged)
    transaction.completed_at = now if succeeded else None

    if succeeded:
        order.payment_status = PAYMENT_PAID
        if order.order_status == ORDER_PENDING:
            order.order_status = ORDER_PROCESSING
    else:
        order.payment_status = PAYMENT_FAILED
    db.session.commit()

    if succeeded:
        notification_service.notify(
            order.user_id,
            notification_service.PAYMENT_RECEIVED,
            "Payment received",
            f"Payment for order {order.order_number} was received. Order status: {order.order_status}.",
            order_id=order.id,
            transaction_id=transaction.transaction_id,
        )
    return transaction, order


def mock_complete(transaction_id: str, success: bool, actor: User | None = None) -> tuple[Transaction, Order]:
    return handle_callback(
        transaction_id,
        CALLBACK_SUCCESS if success else CALLBACK_FAILED,
        gateway_reference="MOCK-" + _random_code(8),
        gateway_response={
            "mock_payment": True,
            "processed_at": to_utc_z(utcnow()),
            "success": success,
        },
        actor=actor,
    )


def payment_status(order_id: int, actor: User) -> dict:
    order = get_order_for_actor(order_id, actor, owner_only=True)
    transactions = Transaction.query.filter_by(order_id=order.id).order_by(
        Transaction.created_at.desc(), Transaction.id.desc()
    ).all()
    return {
        "order_id": order.id,
        "payment_status": order.payment_status,
        "total_amount_cents": order.total_amount_cents,
        "payment_method": order.payment_method.to_dict() if order.payment_method else None,
        "latest_transaction": transactions[0].to_dict() if transactions else None,
        "all_transactions": [t.to_dict() for t in transactions],
    }


def retry_payment(order_id: int, actor: User) -> tuple[Transaction, dict]:
    order = get_order_for_actor(order_id, actor, owner_only=True)
    if order.payment_status == PAYMENT_PAID:
        raise PaymentError("Order is already paid")
    if order.payment_status not in RETRYABLE_STATUSES:
        raise PaymentError("Payment cannot be retried")
    if not order.payment_method_id:
        raise PaymentError("Order has no payment method")
    return initiate_payment(order.id, actor, order.payment_method_id)


def transaction_history(user_id: int):
    return Transaction.query.filter_by(user_id=user_id).order_by(Transaction.created_at.desc(), Transaction.id.desc())
