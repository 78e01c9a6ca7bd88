# Overview: Flask API routes for the customer wishlist.

from flask import Blueprint, g, jsonify

from ..decorators import handle_service_errors, require_auth, require_permission
from ..services import wishlist_service


wishlist_bp = Blueprint("wishlist", __name__, url_prefix="/api/wishlist")


@wishlist_bp.get("")
@require_auth
@require_permission("SHOP")
def list_wishlist_route():
    return jsonify([item.to_dict() for item in wishlist_service.list_items(g.current_user.id)])


@wishlist_bp.post("/<int:product_id>")
@require_auth
@require_permission("SHOP")
@handle_service_errors("add wishlist item")
def add_wishlist_route(product_id: int):
    item = wishlist_service.add(g.current_user.id, product_id)
    return jsonify({"message": "Product added to wishlist", "item": item.to_dict()}), 201


@wishlist_bp.delete("/<int:product_id>")
@require_auth
@require_permission("SHOP")
@handle_service_errors("remove wishlist item")
def remove_wishlist_route(product_id: int):
    wishlist_service.remove(g.current_user.id, product_id)
    return jsonify({"message": "Product removed from wishlist"})
