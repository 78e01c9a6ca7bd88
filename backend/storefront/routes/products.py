# Overview: Flask API routes for the catalog (products, categories, brands); parses input and returns JSON responses.

"""
Catalog Routes

Public: product list/detail/search, products by category, category and
brand lists. Writes require MANAGE_CATALOG.
"""

from flask import Blueprint, jsonify, request

from ..decorators import handle_service_errors, require_auth, require_permission
from ..models import Product
from ..pagination import paginate
from ..request_args import int_arg
from ..services import catalog_service
from ..validation import MAX_CENTS, MAX_INTEGER, MAX_QUANTITY, Field, ValidationError, validate_payload


products_bp = Blueprint("products", __name__, url_prefix="/api")


PRODUCT_RULES = {
    "name": Field("str", required=True, max_length=255),
    "description": Field("str"),
    "price_cents": Field("int", required=True, min_value=0, max_value=MAX_CENTS),
    "quantity": Field("int", required=True, min_value=0, max_value=MAX_QUANTITY),
    "low_stock_threshold": Field("int", min_value=0, max_value=MAX_QUANTITY),
    "reorder_quantity": Field("int", min_value=1, max_value=MAX_QUANTITY),
    "auto_reorder": Field("bool"),
    "reorder_cost_cents": Field("int", min_value=0, max_value=MAX_CENTS),
    "brand_id": Field("int"),
    "image": Field("str", max_length=255),
    "is_active": Field("bool"),
    "categories": Field("list"),
}

NAMED_RULES = {
    "name": Field("str", required=True, max_length=255),
    "slug": Field("str", max_length=255),
    "description": Field("str"),
}


def _category_ids(data: dict) -> list[int] | None:
    if "categories" not in data:
        return None
    ids = data.pop("categories") or []
    if not all(isinstance(i, int) and not isinstance(i, bool) and 0 < i <= MAX_INTEGER for i in ids):
        raise ValidationError({"categories": ["The categories field must contain category ids."]})
    return ids


def _cents_arg(key: str) -> int | None:
    raw = request.args.get(key)
    if raw is None or raw == "":
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError({key: [f"The {key} field must be an integer."]})
    if abs(value) > MAX_CENTS:
        raise ValidationError({key: [f"The {key} field must not be greater than {MAX_CENTS}."]})
    return value


# =============================================================================
# PRODUCTS (public)
# =============================================================================

@products_bp.get("/products")
def list_products_route():
    """Active products, newest first, paginated."""
    return jsonify(paginate(catalog_service.list_products()))


@products_bp.get("/products/<int:product_id>")
@handle_service_errors("load product")
def get_product_route(product_id: int):
    product = catalog_service.get_product(product_id, active_only=True)
    return jsonify(product.to_dict(include_reviews_summary=True))


@products_bp.get("/products/category/<slug>")
@handle_service_errors("list products by category")
def products_by_category_route(slug: str):
    category, products = catalog_service.products_by_category(slug)
    return jsonify({"category": category.to_dict(), "products": [p.to_dict() for p in products]})


@products_bp.get("/products/search")
@handle_service_errors("search products")
def search_products_route():
    """
    Query parameters:
    - q: matches name or description
    - category_id
    - min_price_cents / max_price_cents
    - sort_by: name | price | created_at
    - sort_order: asc | desc
    """
    sort_by = request.args.get("sort_by", "created_at")
    if sort_by not in catalog_service.SORTABLE_FIELDS:
        raise ValidationError({"sort_by": ["The selected sort_by is invalid."]})
    sort_order = request.args.get("sort_order", "desc")
    if sort_order not in ("asc", "desc"):
        raise ValidationError({"sort_order": ["The selected sort_order is invalid."]})

    query = catalog_service.search_products(
        q=request.args.get("q"),
        category_id=int_arg("category_id"),
        min_price_cents=_cents_arg("min_price_cents"),
        max_price_cents=_cents_arg("max_price_cents"),
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return jsonify(paginate(query))


# =============================================================================
# PRODUCTS (admin)
# =============================================================================

@products_bp.post("/products")
@require_auth
@require_permission("MANAGE_CATALOG")
@handle_service_errors("create product")
def create_product_route():
    data = validate_payload(request.get_json(silent=True), PRODUCT_RULES)
    category_ids = _category_ids(data)
    product = catalog_service.create_product(data, category_ids)
    return jsonify({"message": "Product created successfully", "product": product.to_dict()}), 201


@products_bp.put("/products/<int:product_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
@handle_service_errors("update product")
def update_product_route(product_id: int):
    data = validate_payload(request.get_json(silent=True), PRODUCT_RULES, partial=True)
    category_ids = _category_ids(data)
    product = catalog_service.update_product(product_id, data, category_ids)
    return jsonify({"message": "Product updated successfully", "product": product.to_dict()})


@products_bp.delete("/products/<int:product_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
@handle_service_errors("delete product")
def delete_product_route(product_id: int):
    deleted = catalog_service.delete_product(product_id)
    if deleted:
        return jsonify({"message": "Product deleted successfully"})
    return jsonify({"message": "Product has orders and was deactivated instead of deleted"})


@products_bp.get("/products/low-stock")
@require_auth
@require_permission("VIEW_INVENTORY")
def low_stock_products_route():
    query = Product.low_stock_query().order_by(Product.quantity.asc(), Product.id.asc())
    return jsonify(paginate(query))


# =============================================================================
# CATEGORIES
# =============================================================================

@products_bp.get("/categories")
def list_categories_route():
    return jsonify([c.to_dict() for c in catalog_service.list_categories()])


@products_bp.post("/categories")
@require_auth
@require_permission("MANAGE_CATALOG")
@handle_service_errors("create category")
def create_category_route():
    data = validate_payload(request.get_json(silent=True), NAMED_RULES)
    category = catalog_service.create_category(data["name"], data.get("description"), data.get("slug"))
    return jsonify(category.to_dict()), 201


@products_bp.put("/categories/<int:category_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
@handle_service_errors("update category")
def update_category_route(category_id: int):
    data = validate_payload(request.get_json(silent=True), NAMED_RULES, partial=True)
    return jsonify(catalog_service.update_category(category_id, data).to_dict())


@products_bp.delete("/categories/<int:category_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
@handle_service_errors("delete category")
def delete_category_route(category_id: int):
    catalog_service.delete_category(category_id)
    return jsonify({"message": "Category deleted successfully"})


# =============================================================================
# BRANDS
# =============================================================================

@products_bp.get("/brands")
def list_brands_route():
    return jsonify([b.to_dict() for b in catalog_service.list_brands()])


@products_bp.post("/brands")
@require_auth
@require_permission("MANAGE_CATALOG")
@handle_service_errors("create brand")
def create_brand_route():
    data = validate_payload(request.get_json(silent=True), NAMED_RULES)
    brand = catalog_service.create_brand(data["name"], data.get("description"), data.get("slug"))
    return jsonify(brand.to_dict()), 201


@products_bp.put("/brands/<int:brand_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
@handle_service_errors("update brand")
def update_brand_route(brand_id: int):
    data = validate_payload(request.get_json(silent=True), NAMED_RULES, partial=True)
    return jsonify(catalog_service.update_brand(brand_id, data).to_dict())


@products_bp.delete("/brands/<int:brand_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
@handle_service_errors("delete brand")
def delete_brand_route(brand_id: int):
    catalog_service.delete_brand(brand_id)
    return jsonify({"message": "Brand deleted successfully"})
