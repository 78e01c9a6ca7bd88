# Overview: Flask API routes for staff administration and the staff order-review workflow.

"""
Staff Routes

SECURITY:
- /api/staff CRUD requires MANAGE_STAFF (admin)
- Review queue and approve/reject require PROCESS_ORDERS
- Dashboard and income analytics require VIEW_STAFF_DASHBOARD and always
  describe the calling staff member
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import handle_service_errors, require_auth, require_permission
from ..pagination import paginate
from ..request_args import bool_arg, date_range_args, int_arg
from ..services import order_service, staff_service
from ..validation import Field, validate_payload


staff_bp = Blueprint("staff", __name__, url_prefix="/api/staff")


STAFF_RULES = {
    "name": Field("str", required=True, max_length=255),
    "email": Field("str", required=True, max_length=255),
    "password": Field("str", required=True, confirmed=True),
    "phone": Field("str", max_length=32),
    "department": Field("str", max_length=100),
    "employee_id": Field("str", max_length=50),
    "hire_date": Field("date"),
}

STAFF_UPDATE_RULES = {
    "name": Field("str", required=True, max_length=255),
    "email": Field("str", required=True, max_length=255),
    "password": Field("str", confirmed=True),
    "phone": Field("str", max_length=32),
    "department": Field("str", max_length=100),
    "employee_id": Field("str", max_length=50),
    "hire_date": Field("date"),
    "is_active": Field("bool", nullable=False),
}


# =============================================================================
# STAFF ADMINISTRATION
# =============================================================================

@staff_bp.get("")
@require_auth
@require_permission("MANAGE_STAFF")
def list_staff_route():
    """Query parameters: search, department, is_active, page, per_page."""
    query = staff_service.list_staff(
        search=request.args.get("search"),
        department=request.args.get("department"),
        is_active=bool_arg("is_active"),
    )
    result = paginate(query)
    result["departments"] = staff_service.departments()
    return jsonify(result)


@staff_bp.post("")
@require_auth
@require_permission("MANAGE_STAFF")
@handle_service_errors("create staff member")
def create_staff_route():
    data = validate_payload(request.get_json(silent=True), STAFF_RULES)
    staff = staff_service.create_staff(data)
    return jsonify({"message": "Staff member created successfully", "staff": staff.to_dict()}), 201


@staff_bp.get("/<int:staff_id>")
@require_auth
@require_permission("MANAGE_STAFF")
@handle_service_errors("load staff member")
def get_staff_route(staff_id: int):
    staff = staff_service.get_staff(staff_id)
    return jsonify({"staff": staff.to_dict(), "stats": staff_service.staff_stats(staff.id)})


@staff_bp.put("/<int:staff_id>")
@require_auth
@require_permission("MANAGE_STAFF")
@handle_service_errors("update staff member")
def update_staff_route(staff_id: int):
    data = validate_payload(request.get_json(silent=True), STAFF_UPDATE_RULES, partial=True)
    staff = staff_service.update_staff(staff_id, data)
    return jsonify({"message": "Staff member updated successfully", "staff": staff.to_dict()})


@staff_bp.delete("/<int:staff_id>")
@require_auth
@require_permission("MANAGE_STAFF")
@handle_service_errors("delete staff member")
def delete_staff_route(staff_id: int):
    if staff_service.delete_staff(staff_id):
        return jsonify({"message": "Staff member deleted successfully"})
    return jsonify({"message": "Staff member has processed orders and was deactivated instead of deleted"})


# =============================================================================
# ORDER REVIEW
# =============================================================================

@staff_bp.get("/dashboard")
@require_auth
@require_permission("VIEW_STAFF_DASHBOARD")
@handle_service_errors("load staff dashboard")
def staff_dashboard_route():
    start, end = date_range_args()
    return jsonify(staff_service.staff_dashboard(g.current_user.id, start, end, int_arg("payment_method_id")))


@staff_bp.get("/orders/pending")
@require_auth
@require_permission("PROCESS_ORDERS")
@handle_service_errors("list orders to review")
def orders_to_review_route():
    """Orders with approval_status pending, oldest first. Filters: search, payment_method_id, dates."""
    start, end = date_range_args()
    query = order_service.pending_review_query(
        search=request.args.get("search"),
        payment_method_id=int_arg("payment_method_id"),
        start=start,
        end=end,
    )
    return jsonify(paginate(query))


@staff_bp.post("/orders/<int:order_id>/approve")
@require_auth
@require_permission("PROCESS_ORDERS")
@handle_service_errors("approve order")
def approve_order_route(order_id: int):
    data = validate_payload(request.get_json(silent=True), {"notes": Field("str", max_length=1000)})
    order = order_service.approve_order(order_id, g.current_user.id, data.get("notes"))
    return jsonify({"message": "Order approved successfully", "order": order.to_dict()})


@staff_bp.post("/orders/<int:order_id>/reject")
@require_auth
@require_permission("PROCESS_ORDERS")
@handle_service_errors("reject order")
def reject_order_route(order_id: int):
    data = validate_payload(request.get_json(silent=True), {
        "notes": Field("str", required=True, max_length=1000),
    })
    order = order_service.reject_order(order_id, g.current_user.id, data["notes"])
    return jsonify({"message": "Order rejected successfully", "order": order.to_dict()})


@staff_bp.get("/income-analytics")
@require_auth
@require_permission("VIEW_STAFF_DASHBOARD")
@handle_service_errors("load staff income analytics")
def staff_income_analytics_route():
    start, end = date_range_args()
    return jsonify(staff_service.staff_income_analytics(g.current_user.id, start, end, int_arg("payment_method_id")))
