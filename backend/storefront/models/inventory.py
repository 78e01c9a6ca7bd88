from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


# RequestOrder statuses (status, admin_approval_status, warehouse_approval_status)
REQUEST_PENDING = "Pending"
REQUEST_APPROVED = "Approved"
REQUEST_REJECTED = "Rejected"
REQUEST_DECISIONS = (REQUEST_APPROVED, REQUEST_REJECTED)

# ReorderRequest.status
REORDER_PENDING = "pending"
REORDER_APPROVED = "approved"
REORDER_COMPLETED = "completed"
REORDER_CANCELLED = "cancelled"
REORDER_STATUSES = (REORDER_PENDING, REORDER_APPROVED, REORDER_COMPLETED, REORDER_CANCELLED)

# InventoryAlert.alert_type
ALERT_LOW_STOCK = "low_stock"
ALERT_OUT_OF_STOCK = "out_of_stock"
ALERT_REORDER_NEEDED = "reorder_needed"
ALERT_TYPES = (ALERT_LOW_STOCK, ALERT_OUT_OF_STOCK, ALERT_REORDER_NEEDED)


class RequestOrder(db.Model):
    """
    Admin request for restock that needs two sequential approvals.

    APPROVAL CHAIN:
    1. admin_approval_status: Pending -> Approved | Rejected
       Rejected also sets status=Rejected (terminal).
    2. warehouse_approval_status: Pending -> Approved | Rejected
       Only accepted once admin_approval_status=Approved.
       Approved sets status=Approved and credits quantity to the product once.

    No uniqueness constraints: several open requests per product are allowed.
    """
    __tablename__ = "request_orders"
    __table_args__ = (
        db.Index("ix_request_orders_admin_status", "admin_approval_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    requested_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=REQUEST_PENDING)
    admin_approval_status = db.Column(db.String(16), nullable=False, default=REQUEST_PENDING)
    warehouse_approval_status = db.Column(db.String(16), nullable=False, default=REQUEST_PENDING)

    admin_notes = db.Column(db.Text, nullable=True)
    warehouse_notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    product = db.relationship("Product", backref=db.backref("request_orders", lazy="dynamic"))
    requester = db.relationship("User", foreign_keys=[requested_by])

    def __repr__(self) -> str:
        return (
            f"<RequestOrder id={self.id} status={self.status} "
            f"admin={self.admin_approval_status} warehouse={self.warehouse_approval_status}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "requested_by": self.requested_by,
            "requested_by_name": self.requester.name if self.requester else None,
            "status": self.status,
            "admin_approval_status": self.admin_approval_status,
            "warehouse_approval_status": self.warehouse_approval_status,
            "admin_notes": self.admin_notes,
            "warehouse_notes": self.warehouse_notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ReorderRequest(db.Model):
    """
    Procurement request to replenish one product.

    LIFECYCLE:
    pending -> approved (warehouse sets quantity_approved) -> completed
    pending -> cancelled (explicit cancel or warehouse rejection)

    complete() does NOT check that the request is approved. The service
    layer is the only guard; calling complete() on a pending request credits
    stock anyway.
    """
    __tablename__ = "reorder_requests"
    __table_args__ = (
        db.Index("ix_reorder_requests_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    admin_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    warehouse_staff_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    quantity_requested = db.Column(db.Integer, nullable=False)
    quantity_approved = db.Column(db.Integer, nullable=True)
    estimated_cost_cents = db.Column(db.Integer, nullable=True)
    status = db.Column(db.String(16), nullable=False, default=REORDER_PENDING)

    notes = db.Column(db.Text, nullable=True)
    warehouse_notes = db.Column(db.Text, nullable=True)

    approved_at = db.Column(db.DateTime, nullable=True)
    warehouse_approved_at = db.Column(db.DateTime, nullable=True)
    warehouse_rejected_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    product = db.relationship("Product", backref=db.backref("reorder_requests", lazy="dynamic"))
    admin = db.relationship("User", foreign_keys=[admin_id])
    warehouse_staff = db.relationship("User", foreign_keys=[warehouse_staff_id])

    def is_pending(self) -> bool:
        return self.status == REORDER_PENDING

    def is_approved(self) -> bool:
        return self.status == REORDER_APPROVED

    def is_completed(self) -> bool:
        return self.status == REORDER_COMPLETED

    def approve(self) -> None:
        """Admin approval; quantity_approved stays unset (falls back to requested)."""
        self.status = REORDER_APPROVED
        self.approved_at = utcnow()

    def warehouse_approve(self, staff_id: int, quantity_approved: int, notes: str | None = None) -> None:
        self.warehouse_staff_id = staff_id
        self.quantity_approved = quantity_approved
        self.warehouse_notes = notes
        self.warehouse_approved_at = utcnow()
        self.status = REORDER_APPROVED

    def warehouse_reject(self, staff_id: int, notes: str | None = None) -> None:
        self.warehouse_staff_id = staff_id
        self.warehouse_notes = notes
        self.warehouse_rejected_at = utcnow()
        self.status = REORDER_CANCELLED

    def quantity_to_receive(self) -> int:
        return self.quantity_approved if self.quantity_approved is not None else self.quantity_requested

    def complete(self) -> int:
        """
        Mark completed, credit stock and resolve the product's open alerts.

        Returns the quantity credited. Caller commits.
        """
        quantity = self.quantity_to_receive()
        now = utcnow()

        self.status = REORDER_COMPLETED
        self.completed_at = now

        self.product.quantity = self.product.quantity + quantity

        InventoryAlert.query.filter_by(product_id=self.product_id, is_resolved=False).update(
            {"is_resolved": True, "resolved_at": now},
            synchronize_session="fetch",
        )
        return quantity

    def cancel(self) -> None:
        self.status = REORDER_CANCELLED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "admin_id": self.admin_id,
            "admin_name": self.admin.name if self.admin else None,
            "warehouse_staff_id": self.warehouse_staff_id,
            "warehouse_staff_name": self.warehouse_staff.name if self.warehouse_staff else None,
            "quantity_requested": self.quantity_requested,
            "quantity_approved": self.quantity_approved,
            "estimated_cost_cents": self.estimated_cost_cents,
            "status": self.status,
            "notes": self.notes,
            "warehouse_notes": self.warehouse_notes,
            "approved_at": to_utc_z(self.approved_at),
            "warehouse_approved_at": to_utc_z(self.warehouse_approved_at),
            "warehouse_rejected_at": to_utc_z(self.warehouse_rejected_at),
            "completed_at": to_utc_z(self.completed_at),
            "created_at": to_utc_z(self.created_at),
        }


class InventoryAlert(db.Model):
    """
    Advisory record raised when a product crosses a stock threshold.

    While any unresolved alert exists for a product, no new alert of any type
    is raised for it.
    """
    __tablename__ = "inventory_alerts"
    __table_args__ = (
        db.Index("ix_inventory_alerts_product_resolved", "product_id", "is_resolved"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    alert_type = db.Column(db.String(32), nullable=False)
    message = db.Column(db.String(500), nullable=False)
    is_resolved = db.Column(db.Boolean, nullable=False, default=False)
    resolved_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    product = db.relationship("Product", backref=db.backref("inventory_alerts", lazy="dynamic"))

    def resolve(self) -> None:
        self.is_resolved = True
        self.resolved_at = utcnow()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "alert_type": self.alert_type,
            "message": self.message,
            "is_resolved": self.is_resolved,
            "resolved_at": to_utc_z(self.resolved_at),
            "created_at": to_utc_z(self.created_at),
        }
