# Overview: Flask API routes for order operations; parses input and returns JSON responses.

"""
Order Routes

SECURITY:
- Customers (SHOP) place, list, cancel, return and track their own orders
- Staff/admin (VIEW_ORDERS) read every order
- Status and payment updates require PROCESS_ORDERS
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import handle_service_errors, require_any_permission, require_auth, require_permission
from ..models.orders import ORDER_RETURN_REQUESTED, ORDER_STATUSES, PAYMENT_STATUSES
from ..pagination import paginate
from ..request_args import date_range_args
from ..services import order_service, payment_service
from ..validation import Field, validate_payload


orders_bp = Blueprint("orders", __name__, url_prefix="/api")


STAFF_SETTABLE_STATUSES = tuple(s for s in ORDER_STATUSES if s != ORDER_RETURN_REQUESTED)


@orders_bp.get("/orders")
@require_auth
@require_any_permission("SHOP", "VIEW_ORDERS")
@handle_service_errors("list orders")
def list_orders_route():
    """
    Query parameters:
    - start_date / end_date: both required to filter by creation date
    - order_number: partial match
    """
    start, end = date_range_args()
    query = order_service.list_orders(
        g.current_user,
        start=start,
        end=end,
        order_number=request.args.get("order_number"),
    )
    return jsonify(paginate(query))


@orders_bp.post("/orders")
@require_auth
@require_permission("SHOP")
@handle_service_errors("place order")
def place_order_route():
    """
    Check out the caller's cart.

    Returns:
        201: {order, transaction}
        400: cart empty or not enough stock
        404: payment method missing
    """
    data = validate_payload(request.get_json(silent=True), {
        "payment_method_id": Field("int", required=True),
        "notes": Field("str", max_length=1000),
    })
    order, transaction = order_service.place_order(
        g.current_user.id,
        data["payment_method_id"],
        data.get("notes"),
    )
    return jsonify({
        "message": "Order placed successfully",
        "order": order.to_dict(),
        "transaction": transaction.to_dict(),
    }), 201


@orders_bp.get("/orders/history")
@require_auth
@require_permission("SHOP")
def order_history_route():
    return jsonify(paginate(order_service.order_history(g.current_user.id)))


@orders_bp.get("/orders/<int:order_id>")
@require_auth
@require_any_permission("SHOP", "VIEW_ORDERS")
@handle_service_errors("load order")
def get_order_route(order_id: int):
    order = order_service.get_order_for_actor(order_id, g.current_user)
    return jsonify(order.to_dict())


@orders_bp.post("/orders/<int:order_id>/cancel")
@require_auth
@require_any_permission("SHOP", "PROCESS_ORDERS")
@handle_service_errors("cancel order")
def cancel_order_route(order_id: int):
    order = order_service.cancel_order(order_id, g.current_user)
    return jsonify({"message": "Order cancelled successfully", "order": order.to_dict()})


@orders_bp.post("/orders/<int:order_id>/return")
@require_auth
@require_permission("SHOP")
@handle_service_errors("request return")
def return_order_route(order_id: int):
    data = validate_payload(request.get_json(silent=True), {
        "reason": Field("str", required=True, max_length=500),
    })
    order = order_service.request_return(order_id, g.current_user, data["reason"])
    return jsonify({"message": "Return request submitted successfully", "order": order.to_dict()})


@orders_bp.post("/orders/<int:order_id>/track")
@require_auth
@require_permission("SHOP")
@handle_service_errors("track order")
def track_order_route(order_id: int):
    order = order_service.get_order_for_actor(order_id, g.current_user, owner_only=True)
    return jsonify({"tracking_info": order_service.tracking_info(order)})


@orders_bp.get("/payment-methods")
@require_auth
def order_payment_methods_route():
    return jsonify([m.to_dict() for m in payment_service.active_payment_methods()])


@orders_bp.put("/orders/<int:order_id>/status")
@require_auth
@require_permission("PROCESS_ORDERS")
@handle_service_errors("update order status")
def update_order_status_route(order_id: int):
    data = validate_payload(request.get_json(silent=True), {
        "order_status": Field("str", required=True, choices=STAFF_SETTABLE_STATUSES),
    })
    order = order_service.update_order_status(order_id, data["order_status"], g.current_user.id)
    return jsonify({"message": "Order status updated successfully", "order": order.to_dict()})


@orders_bp.put("/orders/<int:order_id>/payment")
@require_auth
@require_permission("PROCESS_ORDERS")
@handle_service_errors("update payment status")
def update_payment_status_route(order_id: int):
    data = validate_payload(request.get_json(silent=True), {
        "payment_status": Field("str", required=True, choices=PAYMENT_STATUSES),
    })
    order = order_service.update_payment_status(order_id, data["payment_status"])
    return jsonify({"message": "Payment status updated successfully", "order": order.to_dict()})
