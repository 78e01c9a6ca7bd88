# Overview: Service-layer operations for the catalog; products, categories, brands and search.

import re

from ..errors import NotFoundError, ServiceError
from ..extensions import db
from ..models import Brand, CartItem, Category, OrderItem, Product, Wishlist
from ..validation import ValidationError
from . import inventory_service


SORTABLE_FIELDS = {
    "name": Product.name,
    "price": Product.price_cents,
    "created_at": Product.created_at,
}

PRODUCT_FIELDS = (
    "name",
    "description",
    "price_cents",
    "quantity",
    "low_stock_threshold",
    "reorder_quantity",
    "auto_reorder",
    "reorder_cost_cents",
    "brand_id",
    "image",
    "is_active",
)


class CatalogError(ServiceError):
    pass


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.strip().lower()).strip("-")
    return slug or "item"


# =============================================================================
# PRODUCTS
# =============================================================================

def get_product(product_id: int, active_only: bool = False) -> Product:
    product = db.session.get(Product, product_id)
    if not product or (active_only and not product.is_active):
        raise NotFoundError("Product not found")
    return product


def list_products(active_only: bool = True):
    query = Product.query
    if active_only:
        query = query.filter(Product.is_active.is_(True))
    return query.order_by(Product.created_at.desc(), Product.id.desc())


def products_by_category(slug: str) -> tuple[Category, list[Product]]:
    category = Category.query.filter_by(slug=slug).first()
    if not category:
        raise NotFoundError("Category not found")
    products = (
        list_products()
        .filter(Product.categories.any(Category.id == category.id))
        .all()
    )
    return category, products


def search_products(
    q: str | None = None,
    category_id: int | None = None,
    min_price_cents: int | None = None,
    max_price_cents: int | None = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
):
    query = Product.query.filter(Product.is_active.is_(True))

    if q:
        like = f"%{q}%"
        query = query.filter(db.or_(Product.name.ilike(like), Product.description.ilike(like)))
    if category_id is not None:
        query = query.filter(Product.categories.any(Category.id == category_id))
    if min_price_cents is not None:
        query = query.filter(Product.price_cents >= min_price_cents)
    if max_price_cents is not None:
        query = query.filter(Product.price_cents <= max_price_cents)

    column = SORTABLE_FIELDS.get(sort_by)
    if column is not None:
        query = query.order_by(column.asc() if sort_order == "asc" else column.desc(), Product.id.asc())
    return query


def _resolve_categories(category_ids: list[int]) -> list[Category]:
    categories = Category.query.filter(Category.id.in_(category_ids)).all() if category_ids else []
    missing = set(category_ids) - {c.id for c in categories}
    if missing:
        raise ValidationError({"categories": [f"The selected categories are invalid: {sorted(missing)}"]})
    return categories


def _check_brand(brand_id: int | None) -> None:
    if brand_id is not None and not db.session.get(Brand, brand_id):
        raise ValidationError({"brand_id": ["The selected brand_id is invalid."]})


def create_product(data: dict, category_ids: list[int] | None = None) -> Product:
    _check_brand(data.get("brand_id"))
    categories = _resolve_categories(category_ids or [])

    product = Product(**{k: v for k, v in data.items() if k in PRODUCT_FIELDS})
    product.categories = categories
    db.session.add(product)
    db.session.commit()
    return product


def update_product(product_id: int, data: dict, category_ids: list[int] | None = None) -> Product:
    """
    Partial update. When quantity changes and the product ends up low, admins
    are notified and alerts are checked.
    """
    product = get_product(product_id)
    if "brand_id" in data:
        _check_brand(data["brand_id"])
    categories = _resolve_categories(category_ids) if category_ids is not None else None

    old_quantity = product.quantity
    for key, value in data.items():
        if key in PRODUCT_FIELDS:
            setattr(product, key, value)
    if categories is not None:
        product.categories = categories
    db.session.commit()

    if "quantity" in data:
        inventory_service.log_stock_change(product, old_quantity, product.quantity, "product update")
        if product.is_low_stock():
            inventory_service.notify_low_stock(product)
            inventory_service.check_and_create_alerts(product)
    return product


def delete_product(product_id: int) -> bool:
    """
    Hard delete, unless the product appears on an order; then it is
    deactivated so order history keeps its line items.

    Returns True when the row was removed.
    """
    product = get_product(product_id)

    if OrderItem.query.filter_by(product_id=product.id).first():
        product.is_active = False
        db.session.commit()
        return False

    CartItem.query.filter_by(product_id=product.id).delete()
    Wishlist.query.filter_by(product_id=product.id).delete()
    product.categories = []
    db.session.delete(product)
    db.session.commit()
    return True


# =============================================================================
# CATEGORIES & BRANDS
# =============================================================================

def _unique_slug(model, base: str, exclude_id: int | None = None) -> str:
    slug = base
    n = 2
    while True:
        query = model.query.filter_by(slug=slug)
        if exclude_id is not None:
            query = query.filter(model.id != exclude_id)
        if not query.first():
            return slug
        slug = f"{base}-{n}"
        n += 1


def _create_named(model, name: str, description: str | None, slug: str | None):
    if slug:
        if model.query.filter_by(slug=slug).first():
            raise ValidationError({"slug": ["The slug has already been taken."]})
    else:
        slug = _unique_slug(model, slugify(name))

    row = model(name=name, slug=slug, description=description)
    db.session.add(row)
    db.session.commit()
    return row


def _update_named(row, changes: dict):
    model = type(row)
    if "slug" in changes and changes["slug"]:
        if model.query.filter(model.slug == changes["slug"], model.id != row.id).first():
            raise ValidationError({"slug": ["The slug has already been taken."]})
        row.slug = changes["slug"]
    if "name" in changes:
        row.name = changes["name"]
    if "description" in changes:
        row.description = changes["description"]
    db.session.commit()
    return row


def list_categories():
    return Category.query.order_by(Category.name).all()


def get_category(category_id: int) -> Category:
    category = db.session.get(Category, category_id)
    if not category:
        raise NotFoundError("Category not found")
    return category


def create_category(name: str, description: str | None = None, slug: str | None = None) -> Category:
    return _create_named(Category, name, description, slug)


def update_category(category_id: int, changes: dict) -> Category:
    return _update_named(get_category(category_id), changes)


def delete_category(category_id: int) -> None:
    category = get_category(category_id)
    for product in category.products.all():
        product.categories.remove(category)
    db.session.delete(category)
    db.session.commit()


def list_brands():
    return Brand.query.order_by(Brand.name).all()


def get_brand(brand_id: int) -> Brand:
    brand = db.session.get(Brand, brand_id)
    if not brand:
        raise NotFoundError("Brand not found")
    return brand


def create_brand(name: str, description: str | None = None, slug: str | None = None) -> Brand:
    return _create_named(Brand, name, description, slug)


def update_brand(brand_id: int, changes: dict) -> Brand:
    return _update_named(get_brand(brand_id), changes)


def delete_brand(brand_id: int) -> None:
    brand = get_brand(brand_id)
    if Product.query.filter_by(brand_id=brand.id).first():
        raise CatalogError("Brand is still assigned to products")
    db.session.delete(brand)
    db.session.commit()
