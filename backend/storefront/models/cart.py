from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Cart(db.Model):
    """One cart per user, created on registration or on first access."""
    __tablename__ = "carts"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    user = db.relationship("User", backref=db.backref("cart", uselist=False))
    items = db.relationship(
        "CartItem",
        backref="cart",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="CartItem.id",
    )

    def total_cents(self) -> int:
        return sum(item.quantity * item.product.price_cents for item in self.items)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "items": [item.to_dict() for item in self.items],
            "item_count": sum(item.quantity for item in self.items),
            "total_cents": self.total_cents(),
        }


class CartItem(db.Model):
    __tablename__ = "cart_items"
    __table_args__ = (
        db.UniqueConstraint("cart_id", "product_id", name="uq_cart_items_cart_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.Integer, db.ForeignKey("carts.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "unit_price_cents": self.product.price_cents if self.product else None,
            "quantity": self.quantity,
            "line_total_cents": self.quantity * self.product.price_cents if self.product else None,
            "created_at": to_utc_z(self.created_at),
        }
