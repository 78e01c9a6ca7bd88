# Overview: Service-layer operations for the transaction ledger (admin and per-customer views).

from sqlalchemy import func

from ..errors import NotFoundError
from ..extensions import db
from ..models import Order, Transaction, User
from ..models.orders import TXN_COMPLETED, TXN_FAILED, TXN_PENDING, TXN_SUCCESS, TXN_TYPE_PAYMENT, TXN_TYPE_REFUND
from .order_service import generate_ticket_number


SUCCESSFUL_STATUSES = (TXN_SUCCESS, TXN_COMPLETED)

UPDATABLE_FIELDS = ("amount_cents", "transaction_type", "transaction_id", "status", "notes")


def list_transactions(
    user_id: int | None = None,
    start=None,
    end=None,
    username: str | None = None,
    user_email: str | None = None,
    ticket_number: str | None = None,
    transaction_type: str | None = None,
    status: str | None = None,
):
    """Filtered ledger query, newest first. user_id scopes to one customer."""
    query = Transaction.query
    if user_id is not None:
        query = query.filter(Transaction.user_id == user_id)
    if start is not None and end is not None:
        query = query.filter(Transaction.created_at.between(start, end))
    if username or user_email:
        query = query.join(User, Transaction.user_id == User.id)
        if username:
            query = query.filter(User.name.ilike(f"%{username}%"))
        if user_email:
            query = query.filter(User.email.ilike(f"%{user_email}%"))
    if ticket_number:
        query = query.filter(Transaction.ticket_number.ilike(f"%{ticket_number}%"))
    if transaction_type:
        query = query.filter(Transaction.transaction_type == transaction_type)
    if status:
        query = query.filter(Transaction.status == status)
    return query.order_by(Transaction.created_at.desc(), Transaction.id.desc())


def get_transaction(transaction_pk: int, user_id: int | None = None) -> Transaction:
    query = Transaction.query.filter(Transaction.id == transaction_pk)
    if user_id is not None:
        query = query.filter(Transaction.user_id == user_id)
    transaction = query.first()
    if not transaction:
        raise NotFoundError("Transaction not found")
    return transaction


def find_by_ticket(ticket_number: str, user_id: int | None = None) -> Transaction:
    query = Transaction.query.filter(Transaction.ticket_number == ticket_number.strip().upper())
    if user_id is not None:
        query = query.filter(Transaction.user_id == user_id)
    transaction = query.first()
    if not transaction:
        raise NotFoundError("Transaction not found")
    return transaction


def create_transaction(
    order_id: int,
    amount_cents: int,
    transaction_type: str,
    status: str,
    transaction_id: str | None = None,
    notes: str | None = None,
) -> Transaction:
    """Manual ledger entry. Owner is taken from the order; ticket number is generated."""
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")

    transaction = Transaction(
        order_id=order.id,
        user_id=order.user_id,
        payment_method_id=order.payment_method_id,
        amount_cents=amount_cents,
        transaction_type=transaction_type,
        transaction_id=transaction_id,
        ticket_number=generate_ticket_number(),
        status=status,
        notes=notes,
    )
    db.session.add(transaction)
    db.session.commit()
    return transaction


def update_transaction(transaction_pk: int, changes: dict) -> Transaction:
    transaction = get_transaction(transaction_pk)
    for key in UPDATABLE_FIELDS:
        if key in changes:
            setattr(transaction, key, changes[key])
    db.session.commit()
    return transaction


def summary(user_id: int | None = None, start=None, end=None) -> dict:
    base = Transaction.query
    if user_id is not None:
        base = base.filter(Transaction.user_id == user_id)
    if start is not None and end is not None:
        base = base.filter(Transaction.created_at.between(start, end))

    def _sum(query) -> int:
        return int(query.with_entities(func.coalesce(func.sum(Transaction.amount_cents), 0)).scalar() or 0)

    successful = base.filter(Transaction.status.in_(SUCCESSFUL_STATUSES))

    return {
        "total_transactions": base.count(),
        "successful_transactions": successful.count(),
        "pending_transactions": base.filter(Transaction.status == TXN_PENDING).count(),
        "failed_transactions": base.filter(Transaction.status == TXN_FAILED).count(),
        "total_amount_cents": _sum(successful),
        "payment_amount_cents": _sum(successful.filter(Transaction.transaction_type == TXN_TYPE_PAYMENT)),
        "refund_amount_cents": _sum(successful.filter(Transaction.transaction_type == TXN_TYPE_REFUND)),
    }
