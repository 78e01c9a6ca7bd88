# Overview: Flask API routes for simulated payment processing; parses input and returns JSON responses.

"""
Payment Routes

No real gateway is involved. The callback and mock-complete endpoints let
the order owner (or order-processing staff) drive a Pending transaction to
Completed or Failed.
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import handle_service_errors, require_any_permission, require_auth, require_permission
from ..pagination import paginate
from ..services import payment_service
from ..validation import Field, validate_payload


payments_bp = Blueprint("payments", __name__, url_prefix="/api")


@payments_bp.post("/orders/<int:order_id>/payment/initiate")
@require_auth
@require_permission("SHOP")
@handle_service_errors("initiate payment")
def initiate_payment_route(order_id: int):
    data = validate_payload(request.get_json(silent=True), {
        "payment_method_id": Field("int", required=True),
    })
    transaction, gateway = payment_service.initiate_payment(order_id, g.current_user, data["payment_method_id"])
    return jsonify({
        "message": "Payment initiated successfully",
        "transaction_id": transaction.transaction_id,
        "payment_url": gateway["payment_url"],
        "gateway_reference": gateway["gateway_reference"],
        "expires_at": gateway["expires_at"],
        "transaction": transaction.to_dict(),
    })


@payments_bp.post("/payment/callback")
@require_auth
@require_any_permission("SHOP", "PROCESS_ORDERS")
@handle_service_errors("handle payment callback")
def payment_callback_route():
    data = validate_payload(request.get_json(silent=True), {
        "transaction_id": Field("str", required=True),
        "status": Field("str", required=True, choices=payment_service.CALLBACK_STATUSES),
        "gateway_reference": Field("str", max_length=255),
        "gateway_response": Field("dict"),
    })
    transaction, order = payment_service.handle_callback(
        data["transaction_id"],
        data["status"],
        gateway_reference=data.get("gateway_reference"),
        gateway_response=data.get("gateway_response"),
        actor=g.current_user,
    )
    return jsonify({
        "message": "Payment callback processed successfully",
        "transaction": transaction.to_dict(),
        "order": order.to_dict(include_items=False),
    })


@payments_bp.get("/orders/<int:order_id>/payment/status")
@require_auth
@require_permission("SHOP")
@handle_service_errors("load payment status")
def payment_status_route(order_id: int):
    return jsonify(payment_service.payment_status(order_id, g.current_user))


@payments_bp.post("/orders/<int:order_id>/payment/retry")
@require_auth
@require_permission("SHOP")
@handle_service_errors("retry payment")
def retry_payment_route(order_id: int):
    transaction, gateway = payment_service.retry_payment(order_id, g.current_user)
    return jsonify({
        "message": "Payment retry initiated",
        "transaction_id": transaction.transaction_id,
        "payment_url": gateway["payment_url"],
        "transaction": transaction.to_dict(),
    })


@payments_bp.post("/payment/mock/<transaction_id>/complete")
@require_auth
@require_any_permission("SHOP", "PROCESS_ORDERS")
@handle_service_errors("complete mock payment")
def mock_payment_complete_route(transaction_id: str):
    data = validate_payload(request.get_json(silent=True), {"success": Field("bool")})
    transaction, order = payment_service.mock_complete(
        transaction_id, data.get("success") is not False, actor=g.current_user
    )
    return jsonify({
        "message": "Mock payment processed",
        "transaction": transaction.to_dict(),
        "order": order.to_dict(include_items=False),
    })


@payments_bp.get("/payment/methods")
@require_auth
def payment_methods_route():
    return jsonify([m.to_dict() for m in payment_service.active_payment_methods()])


@payments_bp.get("/payment/transactions")
@require_auth
@require_permission("SHOP")
def payment_transactions_route():
    return jsonify(paginate(payment_service.transaction_history(g.current_user.id)))
