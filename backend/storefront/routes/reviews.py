# Overview: Flask API routes for product reviews.

from flask import Blueprint, g, jsonify, request

from ..decorators import handle_service_errors, require_any_permission, require_auth, require_permission
from ..pagination import paginate
from ..services import review_service
from ..validation import Field, validate_payload


reviews_bp = Blueprint("reviews", __name__, url_prefix="/api")


@reviews_bp.get("/products/<int:product_id>/reviews")
@handle_service_errors("list reviews")
def list_reviews_route(product_id: int):
    return jsonify(paginate(review_service.reviews_for_product(product_id)))


@reviews_bp.post("/products/<int:product_id>/reviews")
@require_auth
@require_permission("SHOP")
@handle_service_errors("create review")
def create_review_route(product_id: int):
    data = validate_payload(request.get_json(silent=True), {
        "rating": Field("int", required=True, min_value=1, max_value=5),
        "comment": Field("str", required=True, max_length=1000),
    })
    review = review_service.create_review(g.current_user.id, product_id, data["rating"], data["comment"])
    return jsonify({"message": "Review submitted successfully", "review": review.to_dict()}), 201


@reviews_bp.delete("/reviews/<int:review_id>")
@require_auth
@require_any_permission("SHOP", "MANAGE_CATALOG")
@handle_service_errors("delete review")
def delete_review_route(review_id: int):
    """Owner or admin only."""
    review_service.delete_review(review_id, g.current_user)
    return jsonify({"message": "Review deleted successfully"})
