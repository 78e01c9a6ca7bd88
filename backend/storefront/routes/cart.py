# Overview: Flask API routes for the shopping cart; parses input and returns JSON responses.

from flask import Blueprint, g, jsonify, request

from ..decorators import handle_service_errors, require_auth, require_permission
from ..services import cart_service
from ..validation import MAX_QUANTITY, Field, validate_payload


cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


@cart_bp.get("")
@require_auth
@require_permission("SHOP")
@handle_service_errors("load cart")
def get_cart_route():
    """The caller's cart, created on first access. Totals use current prices."""
    cart = cart_service.get_or_create_cart(g.current_user.id)
    return jsonify(cart.to_dict())


@cart_bp.post("/add")
@require_auth
@require_permission("SHOP")
@handle_service_errors("add cart item")
def add_item_route():
    data = validate_payload(request.get_json(silent=True), {
        "product_id": Field("int", required=True),
        "quantity": Field("int", required=True, min_value=1, max_value=MAX_QUANTITY),
    })
    cart = cart_service.add_item(g.current_user.id, data["product_id"], data["quantity"])
    return jsonify({"message": "Product added to cart", "cart": cart.to_dict()})


@cart_bp.put("/items/<int:item_id>")
@require_auth
@require_permission("SHOP")
@handle_service_errors("update cart item")
def update_item_route(item_id: int):
    data = validate_payload(request.get_json(silent=True), {
        "quantity": Field("int", required=True, min_value=1, max_value=MAX_QUANTITY),
    })
    cart = cart_service.update_item(g.current_user.id, item_id, data["quantity"])
    return jsonify({"message": "Cart updated", "cart": cart.to_dict()})


@cart_bp.delete("/items/<int:item_id>")
@require_auth
@require_permission("SHOP")
@handle_service_errors("remove cart item")
def remove_item_route(item_id: int):
    cart = cart_service.remove_item(g.current_user.id, item_id)
    return jsonify({"message": "Item removed from cart", "cart": cart.to_dict()})


@cart_bp.delete("/clear")
@require_auth
@require_permission("SHOP")
@handle_service_errors("clear cart")
def clear_cart_route():
    cart = cart_service.clear(g.current_user.id)
    return jsonify({"message": "Cart cleared", "cart": cart.to_dict()})
