# Overview: Flask API routes for inventory administration; alerts, reorder requests, settings and stock adjustments.

"""
Inventory Routes

SECURITY:
- Reads (dashboard, alerts, reorder list, low-stock list) need VIEW_INVENTORY
- Every write needs MANAGE_INVENTORY (admin)
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import handle_service_errors, require_auth, require_permission
from ..models import Product
from ..models.inventory import ALERT_TYPES, REORDER_STATUSES
from ..pagination import paginate
from ..request_args import bool_arg, date_range_args
from ..services import inventory_service, reorder_service
from ..validation import MAX_CENTS, MAX_QUANTITY, Field, ValidationError, validate_payload


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/dashboard")
@require_auth
@require_permission("VIEW_INVENTORY")
def inventory_dashboard_route():
    return jsonify(inventory_service.inventory_dashboard())


# =============================================================================
# ALERTS
# =============================================================================

@inventory_bp.get("/alerts")
@require_auth
@require_permission("VIEW_INVENTORY")
@handle_service_errors("list inventory alerts")
def list_alerts_route():
    """
    Query parameters:
    - type: low_stock | out_of_stock | reorder_needed
    - resolved: true | false
    - start_date / end_date
    """
    alert_type = request.args.get("type")
    if alert_type and alert_type not in ALERT_TYPES:
        raise ValidationError({"type": ["The selected type is invalid."]})
    start, end = date_range_args()
    query = inventory_service.list_alerts(alert_type, bool_arg("resolved"), start, end)
    return jsonify(paginate(query))


@inventory_bp.put("/alerts/<int:alert_id>/resolve")
@require_auth
@require_permission("MANAGE_INVENTORY")
@handle_service_errors("resolve inventory alert")
def resolve_alert_route(alert_id: int):
    alert = inventory_service.resolve_alert(alert_id)
    return jsonify({"message": "Alert resolved successfully", "alert": alert.to_dict()})


# =============================================================================
# REORDER REQUESTS
# =============================================================================

@inventory_bp.get("/reorder-requests")
@require_auth
@require_permission("VIEW_INVENTORY")
@handle_service_errors("list reorder requests")
def list_reorder_requests_route():
    status = request.args.get("status")
    if status and status not in REORDER_STATUSES:
        raise ValidationError({"status": ["The selected status is invalid."]})
    start, end = date_range_args()
    return jsonify(paginate(reorder_service.list_reorder_requests(status, start, end)))


@inventory_bp.post("/reorder-requests")
@require_auth
@require_permission("MANAGE_INVENTORY")
@handle_service_errors("create reorder request")
def create_reorder_request_route():
    data = validate_payload(request.get_json(silent=True), {
        "product_id": Field("int", required=True),
        "quantity_requested": Field("int", required=True, min_value=1, max_value=MAX_QUANTITY),
        "estimated_cost_cents": Field("int", required=True, min_value=0, max_value=MAX_CENTS),
        "notes": Field("str", max_length=1000),
    })
    reorder = reorder_service.create_reorder_request(
        data["product_id"],
        g.current_user.id,
        data["quantity_requested"],
        data["estimated_cost_cents"],
        data.get("notes"),
    )
    return jsonify({"message": "Reorder request created successfully", "reorder_request": reorder.to_dict()}), 201


@inventory_bp.put("/reorder-requests/<int:reorder_id>/approve")
@require_auth
@require_permission("MANAGE_INVENTORY")
@handle_service_errors("approve reorder request")
def approve_reorder_request_route(reorder_id: int):
    reorder = reorder_service.approve(reorder_id)
    return jsonify({"message": "Reorder request approved", "reorder_request": reorder.to_dict()})


@inventory_bp.put("/reorder-requests/<int:reorder_id>/complete")
@require_auth
@require_permission("MANAGE_INVENTORY")
@handle_service_errors("complete reorder request")
def complete_reorder_request_route(reorder_id: int):
    reorder = reorder_service.complete(reorder_id)
    return jsonify({"message": "Reorder request completed and stock updated", "reorder_request": reorder.to_dict()})


@inventory_bp.put("/reorder-requests/<int:reorder_id>/cancel")
@require_auth
@require_permission("MANAGE_INVENTORY")
@handle_service_errors("cancel reorder request")
def cancel_reorder_request_route(reorder_id: int):
    reorder = reorder_service.cancel(reorder_id)
    return jsonify({"message": "Reorder request cancelled", "reorder_request": reorder.to_dict()})


# =============================================================================
# PRODUCT SETTINGS & STOCK
# =============================================================================

@inventory_bp.put("/products/<int:product_id>/settings")
@require_auth
@require_permission("MANAGE_INVENTORY")
@handle_service_errors("update inventory settings")
def update_settings_route(product_id: int):
    data = validate_payload(request.get_json(silent=True), {
        "low_stock_threshold": Field("int", required=True, min_value=0, max_value=MAX_QUANTITY),
        "reorder_quantity": Field("int", required=True, min_value=1, max_value=MAX_QUANTITY),
        "auto_reorder": Field("bool", required=True),
        "reorder_cost_cents": Field("int", min_value=0, max_value=MAX_CENTS),
    })
    product = inventory_service.update_inventory_settings(
        product_id,
        data["low_stock_threshold"],
        data["reorder_quantity"],
        data["auto_reorder"],
        data.get("reorder_cost_cents"),
    )
    return jsonify({"message": "Inventory settings updated successfully", "product": product.to_dict()})


@inventory_bp.put("/products/<int:product_id>/adjust-stock")
@require_auth
@require_permission("MANAGE_INVENTORY")
@handle_service_errors("adjust stock")
def adjust_stock_route(product_id: int):
    data = validate_payload(request.get_json(silent=True), {
        "adjustment_type": Field("str", required=True, choices=inventory_service.ADJUSTMENT_TYPES),
        "quantity": Field("int", required=True, min_value=0, max_value=MAX_QUANTITY),
        "reason": Field("str", required=True, max_length=255),
    })
    product, old_quantity = inventory_service.adjust_stock(
        product_id,
        data["adjustment_type"],
        data["quantity"],
        data["reason"],
        g.current_user.id,
    )
    return jsonify({
        "message": "Stock adjusted successfully",
        "product": product.to_dict(),
        "old_quantity": old_quantity,
        "new_quantity": product.quantity,
    })


@inventory_bp.get("/low-stock-products")
@require_auth
@require_permission("VIEW_INVENTORY")
def low_stock_products_route():
    query = Product.low_stock_query().order_by(Product.quantity.asc(), Product.id.asc())
    return jsonify(paginate(query))


@inventory_bp.post("/send-low-stock-notifications")
@require_auth
@require_permission("MANAGE_INVENTORY")
@handle_service_errors("send low stock notifications")
def send_low_stock_notifications_route():
    count = inventory_service.send_low_stock_notifications()
    return jsonify({"message": f"Low stock notifications sent for {count} products", "count": count})
