# Overview: Flask API routes for request orders; admin creation and the admin -> warehouse approval chain.

"""
Request Order Routes

SECURITY:
- Create and admin approval require MANAGE_REQUEST_ORDERS (admin)
- Warehouse approval requires WAREHOUSE_APPROVE
- Listing is open to both; warehouse managers only see admin-approved rows
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import handle_service_errors, require_any_permission, require_auth, require_permission
from ..models.inventory import REQUEST_APPROVED, REQUEST_DECISIONS
from ..pagination import paginate
from ..permissions import Role
from ..services import request_order_service
from ..validation import MAX_QUANTITY, Field, validate_payload


request_orders_bp = Blueprint("request_orders", __name__, url_prefix="/api/request-orders")


DECISION_RULES = {
    "status": Field("str", required=True, choices=REQUEST_DECISIONS),
    "notes": Field("str", max_length=1000),
}


@request_orders_bp.get("")
@require_auth
@require_any_permission("MANAGE_REQUEST_ORDERS", "WAREHOUSE_APPROVE")
def list_request_orders_route():
    return jsonify(paginate(request_order_service.list_request_orders(g.current_user)))


@request_orders_bp.post("")
@require_auth
@require_permission("MANAGE_REQUEST_ORDERS")
@handle_service_errors("create request order")
def create_request_order_route():
    data = validate_payload(request.get_json(silent=True), {
        "product_id": Field("int", required=True),
        "quantity": Field("int", required=True, min_value=1, max_value=MAX_QUANTITY),
        "admin_notes": Field("str", max_length=1000),
    })
    request_order = request_order_service.create_request_order(
        data["product_id"],
        data["quantity"],
        g.current_user.id,
        data.get("admin_notes"),
    )
    return jsonify({"message": "Request order created successfully", "request_order": request_order.to_dict()}), 201


@request_orders_bp.get("/<int:request_order_id>")
@require_auth
@require_any_permission("MANAGE_REQUEST_ORDERS", "WAREHOUSE_APPROVE")
@handle_service_errors("load request order")
def get_request_order_route(request_order_id: int):
    request_order = request_order_service.get_request_order(request_order_id)
    if (
        g.current_user.role == Role.WAREHOUSE_MANAGER.value
        and request_order.admin_approval_status != REQUEST_APPROVED
    ):
        return jsonify({"message": "Request order not found"}), 404
    return jsonify(request_order.to_dict())


@request_orders_bp.put("/<int:request_order_id>/admin-approval")
@require_auth
@require_permission("MANAGE_REQUEST_ORDERS")
@handle_service_errors("record admin approval")
def admin_approval_route(request_order_id: int):
    data = validate_payload(request.get_json(silent=True), DECISION_RULES)
    request_order = request_order_service.admin_decision(request_order_id, data["status"], data.get("notes"))
    return jsonify({"message": "Admin approval updated successfully", "request_order": request_order.to_dict()})


@request_orders_bp.put("/<int:request_order_id>/warehouse-approval")
@require_auth
@require_permission("WAREHOUSE_APPROVE")
@handle_service_errors("record warehouse approval")
def warehouse_approval_route(request_order_id: int):
    """
    Returns:
        200: decision recorded (approved adds quantity to stock)
        400: admin approval missing, or warehouse decision already recorded
    """
    data = validate_payload(request.get_json(silent=True), DECISION_RULES)
    request_order = request_order_service.warehouse_decision(request_order_id, data["status"], data.get("notes"))
    return jsonify({"message": "Warehouse approval updated successfully", "request_order": request_order.to_dict()})
