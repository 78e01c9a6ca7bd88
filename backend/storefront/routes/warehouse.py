# Overview: Flask API routes for the warehouse manager's reorder queue and dashboard.

from flask import Blueprint, g, jsonify, request

from ..decorators import handle_service_errors, require_auth, require_permission
from ..models.inventory import REORDER_STATUSES
from ..pagination import paginate
from ..request_args import date_range_args
from ..services import reorder_service
from ..validation import MAX_QUANTITY, Field, ValidationError, validate_payload


warehouse_bp = Blueprint("warehouse", __name__, url_prefix="/api/warehouse")


@warehouse_bp.get("/reorders/pending")
@require_auth
@require_permission("WAREHOUSE_APPROVE")
@handle_service_errors("list pending reorders")
def pending_reorders_route():
    """Query parameters: product_name, start_date, end_date."""
    start, end = date_range_args()
    query = reorder_service.pending_reorders(request.args.get("product_name"), start, end)
    return jsonify(paginate(query))


@warehouse_bp.get("/reorders/history")
@require_auth
@require_permission("WAREHOUSE_APPROVE")
@handle_service_errors("list reorder history")
def reorder_history_route():
    status = request.args.get("status")
    if status and status not in REORDER_STATUSES:
        raise ValidationError({"status": ["The selected status is invalid."]})
    start, end = date_range_args()
    return jsonify(paginate(reorder_service.reorder_history(status, start, end)))


@warehouse_bp.get("/reorders/<int:reorder_id>")
@require_auth
@require_permission("WAREHOUSE_APPROVE")
@handle_service_errors("load reorder request")
def get_reorder_route(reorder_id: int):
    return jsonify(reorder_service.get_reorder_request(reorder_id).to_dict())


@warehouse_bp.post("/reorders/<int:reorder_id>/approve")
@require_auth
@require_permission("WAREHOUSE_APPROVE")
@handle_service_errors("approve reorder")
def approve_reorder_route(reorder_id: int):
    data = validate_payload(request.get_json(silent=True), {
        "quantity_approved": Field("int", required=True, min_value=1, max_value=MAX_QUANTITY),
        "warehouse_notes": Field("str", max_length=1000),
    })
    reorder = reorder_service.warehouse_approve(
        reorder_id,
        g.current_user.id,
        data["quantity_approved"],
        data.get("warehouse_notes"),
    )
    return jsonify({"message": "Reorder request approved successfully", "reorder_request": reorder.to_dict()})


@warehouse_bp.post("/reorders/<int:reorder_id>/reject")
@require_auth
@require_permission("WAREHOUSE_APPROVE")
@handle_service_errors("reject reorder")
def reject_reorder_route(reorder_id: int):
    data = validate_payload(request.get_json(silent=True), {
        "warehouse_notes": Field("str", required=True, max_length=1000),
    })
    reorder = reorder_service.warehouse_reject(reorder_id, g.current_user.id, data["warehouse_notes"])
    return jsonify({"message": "Reorder request rejected", "reorder_request": reorder.to_dict()})


@warehouse_bp.get("/dashboard")
@require_auth
@require_permission("VIEW_WAREHOUSE_DASHBOARD")
def warehouse_reorder_dashboard_route():
    return jsonify(reorder_service.warehouse_reorder_dashboard())
