from __future__ import annotations

import json

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


# Order.payment_status
PAYMENT_PENDING = "Pending"
PAYMENT_PAID = "Paid"
PAYMENT_FAILED = "Failed"
PAYMENT_REFUNDED = "Refunded"
PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_PAID, PAYMENT_FAILED, PAYMENT_REFUNDED)

# Order.order_status
ORDER_PENDING = "Pending"
ORDER_APPROVED = "Approved"
ORDER_REJECTED = "Rejected"
ORDER_PROCESSING = "Processing"
ORDER_SHIPPED = "Shipped"
ORDER_DELIVERED = "Delivered"
ORDER_CANCELLED = "Cancelled"
ORDER_RETURN_REQUESTED = "Return Requested"
ORDER_STATUSES = (
    ORDER_PENDING,
    ORDER_APPROVED,
    ORDER_REJECTED,
    ORDER_PROCESSING,
    ORDER_SHIPPED,
    ORDER_DELIVERED,
    ORDER_CANCELLED,
    ORDER_RETURN_REQUESTED,
)

# Order.approval_status (staff review, independent of order_status)
APPROVAL_PENDING = "pending"
APPROVAL_APPROVED = "approved"
APPROVAL_REJECTED = "rejected"
APPROVAL_STATUSES = (APPROVAL_PENDING, APPROVAL_APPROVED, APPROVAL_REJECTED)

# Transaction
TXN_TYPE_PAYMENT = "Payment"
TXN_TYPE_REFUND = "Refund"
TXN_TYPES = (TXN_TYPE_PAYMENT, TXN_TYPE_REFUND)

TXN_PENDING = "Pending"
TXN_SUCCESS = "Success"
TXN_COMPLETED = "Completed"
TXN_FAILED = "Failed"
TXN_STATUSES = (TXN_PENDING, TXN_SUCCESS, TXN_COMPLETED, TXN_FAILED)


class PaymentMethod(db.Model):
    __tablename__ = "payment_methods"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    description = db.Column(db.String(255), nullable=True)
    type = db.Column(db.String(50), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "is_active": self.is_active,
        }


class Order(db.Model):
    """
    Customer purchase.

    Two status fields coexist and are NOT kept in lock-step:
    - order_status: fulfilment lifecycle (Pending -> Processing -> Shipped -> ...)
    - approval_status: staff review (pending | approved | rejected)

    approve()/reject() write both; update_order_status only writes order_status.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_user_created", "user_id", "created_at"),
        db.Index("ix_orders_status", "order_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    order_number = db.Column(db.String(32), nullable=False, unique=True, index=True)
    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    payment_method_id = db.Column(db.Integer, db.ForeignKey("payment_methods.id"), nullable=True)
    payment_status = db.Column(db.String(16), nullable=False, default=PAYMENT_PENDING)
    order_status = db.Column(db.String(32), nullable=False, default=ORDER_PENDING)
    approval_status = db.Column(db.String(16), nullable=False, default=APPROVAL_PENDING)

    staff_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    staff_notes = db.Column(db.Text, nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)
    rejected_at = db.Column(db.DateTime, nullable=True)

    return_reason = db.Column(db.Text, nullable=True)
    tracking_number = db.Column(db.String(64), nullable=True)
    estimated_delivery_date = db.Column(db.Date, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = db.relationship("User", foreign_keys=[user_id], backref=db.backref("orders", lazy="dynamic"))
    staff = db.relationship("User", foreign_keys=[staff_id])
    payment_method = db.relationship("PaymentMethod")
    items = db.relationship("OrderItem", backref="order", lazy=True, order_by="OrderItem.id")

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.order_number} status={self.order_status}>"

    def is_pending(self) -> bool:
        return self.approval_status == APPROVAL_PENDING

    def is_approved(self) -> bool:
        return self.approval_status == APPROVAL_APPROVED

    def is_rejected(self) -> bool:
        return self.approval_status == APPROVAL_REJECTED

    def approve(self, staff_id: int, notes: str | None = None) -> None:
        self.approval_status = APPROVAL_APPROVED
        self.staff_id = staff_id
        self.approved_at = utcnow()
        self.staff_notes = notes
        self.order_status = ORDER_PROCESSING

    def reject(self, staff_id: int, notes: str | None = None) -> None:
        self.approval_status = APPROVAL_REJECTED
        self.staff_id = staff_id
        self.rejected_at = utcnow()
        self.staff_notes = notes
        self.order_status = ORDER_CANCELLED

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "customer_name": self.user.name if self.user else None,
            "order_number": self.order_number,
            "total_amount_cents": self.total_amount_cents,
            "payment_method_id": self.payment_method_id,
            "payment_method": self.payment_method.name if self.payment_method else None,
            "payment_status": self.payment_status,
            "order_status": self.order_status,
            "approval_status": self.approval_status,
            "staff_id": self.staff_id,
            "notes": self.notes,
            "staff_notes": self.staff_notes,
            "approved_at": to_utc_z(self.approved_at),
            "rejected_at": to_utc_z(self.rejected_at),
            "return_reason": self.return_reason,
            "tracking_number": self.tracking_number,
            "estimated_delivery_date": to_utc_z(self.estimated_delivery_date),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    __tablename__ = "order_items"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)

    # Price at time of sale; product price edits never rewrite history
    unit_price_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def line_total_cents(self) -> int:
        return self.quantity * self.unit_price_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents(),
        }


class Transaction(db.Model):
    """
    Payment/refund ledger row.

    ticket_number is the short human-readable id (3 letters + 4 digits) and
    is globally unique; transaction_id is the gateway-facing TXN- id.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    payment_method_id = db.Column(db.Integer, db.ForeignKey("payment_methods.id"), nullable=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    transaction_type = db.Column(db.String(16), nullable=False, default=TXN_TYPE_PAYMENT)
    transaction_id = db.Column(db.String(64), nullable=True, unique=True)
    ticket_number = db.Column(db.String(16), nullable=False, unique=True, index=True)
    status = db.Column(db.String(16), nullable=False, default=TXN_PENDING)

    gateway_reference = db.Column(db.String(255), nullable=True)
    gateway_response = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    completed_at = db.Column(db.DateTime, nullable=True)

    order = db.relationship("Order", backref=db.backref("transactions", lazy=True, order_by="Transaction.id"))
    user = db.relationship("User")
    payment_method = db.relationship("PaymentMethod")

    def get_gateway_response(self) -> dict | None:
        if not self.gateway_response:
            return None
        try:
            return json.loads(self.gateway_response)
        except ValueError:
            return None

    def set_gateway_response(self, payload: dict | None) -> None:
        self.gateway_response = json.dumps(payload) if payload is not None else None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "order_number": self.order.order_number if self.order else None,
            "user_id": self.user_id,
            "payment_method_id": self.payment_method_id,
            "payment_method": self.payment_method.name if self.payment_method else None,
            "amount_cents": self.amount_cents,
            "transaction_type": self.transaction_type,
            "transaction_id": self.transaction_id,
            "ticket_number": self.ticket_number,
            "status": self.status,
            "gateway_reference": self.gateway_reference,
            "gateway_response": self.get_gateway_response(),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at),
        }
