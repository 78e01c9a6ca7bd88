from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


product_categories = db.Table(
    "product_categories",
    db.Column("product_id", db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    db.Column("category_id", db.Integer, db.ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)


class Category(db.Model):
    __tablename__ = "categories"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=False, unique=True, index=True)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }


class Brand(db.Model):
    __tablename__ = "brands"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=False, unique=True, index=True)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Sellable item plus its stock-keeping configuration.

    STOCK GUARD:
    - low stock:       quantity <= low_stock_threshold
    - out of stock:    quantity <= 0
    - needs reorder:   low stock AND auto_reorder

    quantity is only clamped at 0 on the manual "decrease" adjustment path.
    Every other path relies on pre-checks (there is no CHECK constraint).
    Alert creation lives in inventory_service.check_and_create_alerts.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_active_name", "is_active", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Authoritative storage in cents
    price_cents = db.Column(db.Integer, nullable=False, default=0)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=10)
    reorder_quantity = db.Column(db.Integer, nullable=False, default=50)
    auto_reorder = db.Column(db.Boolean, nullable=False, default=False)
    reorder_cost_cents = db.Column(db.Integer, nullable=True)

    brand_id = db.Column(db.Integer, db.ForeignKey("brands.id"), nullable=True, index=True)
    image = db.Column(db.String(500), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    brand = db.relationship("Brand", backref=db.backref("products", lazy="dynamic"))
    categories = db.relationship(
        "Category",
        secondary=product_categories,
        lazy="selectin",
        backref=db.backref("products", lazy="dynamic"),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} quantity={self.quantity}>"

    # -- Stock guard ---------------------------------------------------------

    def is_low_stock(self) -> bool:
        return self.quantity <= self.low_stock_threshold

    def is_out_of_stock(self) -> bool:
        return self.quantity <= 0

    def needs_reordering(self) -> bool:
        return self.is_low_stock() and bool(self.auto_reorder)

    @classmethod
    def low_stock_query(cls):
        return cls.query.filter(cls.quantity <= cls.low_stock_threshold)

    @classmethod
    def out_of_stock_query(cls):
        return cls.query.filter(cls.quantity <= 0)

    @classmethod
    def needs_reordering_query(cls):
        return cls.query.filter(
            cls.quantity <= cls.low_stock_threshold,
            cls.auto_reorder.is_(True),
        )

    # -- Reviews -------------------------------------------------------------

    def average_rating(self) -> float:
        avg = db.session.query(db.func.avg(Review.rating)).filter(Review.product_id == self.id).scalar()
        return round(float(avg), 2) if avg is not None else 0.0

    def review_count(self) -> int:
        return Review.query.filter_by(product_id=self.id).count()

    def to_dict(self, include_reviews_summary: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
            "quantity": self.quantity,
            "low_stock_threshold": self.low_stock_threshold,
            "reorder_quantity": self.reorder_quantity,
            "auto_reorder": self.auto_reorder,
            "reorder_cost_cents": self.reorder_cost_cents,
            "brand_id": self.brand_id,
            "brand": self.brand.to_dict() if self.brand else None,
            "categories": [c.to_dict() for c in self.categories],
            "image": self.image,
            "is_active": self.is_active,
            "is_low_stock": self.is_low_stock(),
            "is_out_of_stock": self.is_out_of_stock(),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_reviews_summary:
            data["average_rating"] = self.average_rating()
            data["review_count"] = self.review_count()
        return data


class Review(db.Model):
    __tablename__ = "reviews"
    __table_args__ = (
        db.UniqueConstraint("user_id", "product_id", name="uq_reviews_user_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    user = db.relationship("User")
    product = db.relationship("Product", backref=db.backref("reviews", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user_name": self.user.name if self.user else None,
            "product_id": self.product_id,
            "rating": self.rating,
            "comment": self.comment,
            "created_at": to_utc_z(self.created_at),
        }


class Wishlist(db.Model):
    __tablename__ = "wishlists"
    __table_args__ = (
        db.UniqueConstraint("user_id", "product_id", name="uq_wishlists_user_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product": self.product.to_dict() if self.product else None,
            "created_at": to_utc_z(self.created_at),
        }
