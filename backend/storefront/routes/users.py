# Overview: Flask API routes for customer administration and suspension.

from flask import Blueprint, g, jsonify, request

from ..decorators import handle_service_errors, require_auth, require_permission
from ..pagination import paginate
from ..request_args import bool_arg, date_range_args
from ..services import user_service
from ..validation import Field, require_int_list, validate_payload


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


SUSPEND_RULES = {
    "reason": Field("str", required=True, max_length=500),
    "notes": Field("str", max_length=1000),
}


@users_bp.get("")
@require_auth
@require_permission("MANAGE_USERS")
@handle_service_errors("list users")
def list_users_route():
    """Query parameters: search, is_active, start_date, end_date, page, per_page."""
    start, end = date_range_args()
    query = user_service.list_customers(
        search=request.args.get("search"),
        is_active=bool_arg("is_active"),
        start=start,
        end=end,
    )
    return jsonify(paginate(query))


@users_bp.get("/dashboard")
@require_auth
@require_permission("MANAGE_USERS")
def users_dashboard_route():
    return jsonify(user_service.user_dashboard())


@users_bp.get("/<int:user_id>")
@require_auth
@require_permission("MANAGE_USERS")
@handle_service_errors("load user")
def get_user_route(user_id: int):
    user = user_service.get_customer(user_id)
    return jsonify({"user": user.to_dict(), "stats": user_service.user_stats(user)})


@users_bp.post("/<int:user_id>/suspend")
@require_auth
@require_permission("MANAGE_USERS")
@handle_service_errors("suspend user")
def suspend_user_route(user_id: int):
    data = validate_payload(request.get_json(silent=True), SUSPEND_RULES)
    user = user_service.suspend_user(user_id, data["reason"], g.current_user.id, data.get("notes"))
    return jsonify({"message": "User suspended successfully", "user": user.to_dict()})


@users_bp.post("/<int:user_id>/reactivate")
@require_auth
@require_permission("MANAGE_USERS")
@handle_service_errors("reactivate user")
def reactivate_user_route(user_id: int):
    data = validate_payload(request.get_json(silent=True), {"notes": Field("str", max_length=1000)})
    user = user_service.reactivate_user(user_id, g.current_user.id, data.get("notes"))
    return jsonify({"message": "User reactivated successfully", "user": user.to_dict()})


@users_bp.get("/<int:user_id>/suspension-history")
@require_auth
@require_permission("MANAGE_USERS")
@handle_service_errors("load suspension history")
def suspension_history_route(user_id: int):
    return jsonify({"history": user_service.suspension_history(user_id)})


@users_bp.post("/bulk-suspend")
@require_auth
@require_permission("MANAGE_USERS")
@handle_service_errors("bulk suspend users")
def bulk_suspend_route():
    payload = request.get_json(silent=True) or {}
    user_ids = require_int_list(payload, "user_ids")
    data = validate_payload(payload, SUSPEND_RULES)
    count = user_service.bulk_suspend(user_ids, data["reason"], g.current_user.id, data.get("notes"))
    return jsonify({"message": f"{count} users suspended successfully", "suspended_count": count})


@users_bp.post("/bulk-reactivate")
@require_auth
@require_permission("MANAGE_USERS")
@handle_service_errors("bulk reactivate users")
def bulk_reactivate_route():
    payload = request.get_json(silent=True) or {}
    user_ids = require_int_list(payload, "user_ids")
    data = validate_payload(payload, {"notes": Field("str", max_length=1000)})
    count = user_service.bulk_reactivate(user_ids, g.current_user.id, data.get("notes"))
    return jsonify({"message": f"{count} users reactivated successfully", "reactivated_count": count})
