# Overview: Flask API routes for the transaction ledger; admin-wide and per-customer views.

"""
Transaction Routes

- /api/transactions/*       MANAGE_TRANSACTIONS, every customer's rows
- /api/user/transactions/*  SHOP, scoped to the caller
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import handle_service_errors, require_auth, require_permission
from ..models.orders import TXN_STATUSES, TXN_TYPES
from ..pagination import paginate
from ..request_args import date_range_args
from ..services import transaction_service
from ..validation import MAX_CENTS, Field, validate_payload


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api")


TRANSACTION_RULES = {
    "order_id": Field("int", required=True),
    "amount_cents": Field("int", required=True, min_value=0, max_value=MAX_CENTS),
    "transaction_type": Field("str", required=True, choices=TXN_TYPES),
    "status": Field("str", required=True, choices=TXN_STATUSES),
    "transaction_id": Field("str", max_length=255),
    "notes": Field("str"),
}

TRANSACTION_UPDATE_RULES = {
    "amount_cents": Field("int", min_value=0, max_value=MAX_CENTS, nullable=False),
    "transaction_type": Field("str", choices=TXN_TYPES, nullable=False),
    "status": Field("str", choices=TXN_STATUSES, nullable=False),
    "transaction_id": Field("str", max_length=255),
    "notes": Field("str"),
}


def _ticket_from_body() -> str:
    data = validate_payload(request.get_json(silent=True), {
        "ticket_number": Field("str", required=True, max_length=16),
    })
    return data["ticket_number"]


# =============================================================================
# ADMIN LEDGER
# =============================================================================

@transactions_bp.get("/transactions")
@require_auth
@require_permission("MANAGE_TRANSACTIONS")
@handle_service_errors("list transactions")
def list_transactions_route():
    """
    Query parameters: start_date, end_date, username, user_email,
    ticket_number, transaction_type, status, page, per_page.
    """
    start, end = date_range_args()
    query = transaction_service.list_transactions(
        start=start,
        end=end,
        username=request.args.get("username"),
        user_email=request.args.get("user_email"),
        ticket_number=request.args.get("ticket_number"),
        transaction_type=request.args.get("transaction_type"),
        status=request.args.get("status"),
    )
    return jsonify(paginate(query))


@transactions_bp.get("/transactions/summary")
@require_auth
@require_permission("MANAGE_TRANSACTIONS")
@handle_service_errors("summarize transactions")
def transactions_summary_route():
    start, end = date_range_args()
    return jsonify(transaction_service.summary(start=start, end=end))


@transactions_bp.get("/transactions/<int:transaction_pk>")
@require_auth
@require_permission("MANAGE_TRANSACTIONS")
@handle_service_errors("load transaction")
def get_transaction_route(transaction_pk: int):
    return jsonify(transaction_service.get_transaction(transaction_pk).to_dict())


@transactions_bp.post("/transactions")
@require_auth
@require_permission("MANAGE_TRANSACTIONS")
@handle_service_errors("create transaction")
def create_transaction_route():
    data = validate_payload(request.get_json(silent=True), TRANSACTION_RULES)
    transaction = transaction_service.create_transaction(
        data["order_id"],
        data["amount_cents"],
        data["transaction_type"],
        data["status"],
        transaction_id=data.get("transaction_id"),
        notes=data.get("notes"),
    )
    return jsonify({"message": "Transaction created successfully", "transaction": transaction.to_dict()}), 201


@transactions_bp.put("/transactions/<int:transaction_pk>")
@require_auth
@require_permission("MANAGE_TRANSACTIONS")
@handle_service_errors("update transaction")
def update_transaction_route(transaction_pk: int):
    data = validate_payload(request.get_json(silent=True), TRANSACTION_UPDATE_RULES, partial=True)
    transaction = transaction_service.update_transaction(transaction_pk, data)
    return jsonify({"message": "Transaction updated successfully", "transaction": transaction.to_dict()})


@transactions_bp.post("/transactions/search-by-ticket")
@require_auth
@require_permission("MANAGE_TRANSACTIONS")
@handle_service_errors("search transaction by ticket")
def search_transaction_route():
    return jsonify(transaction_service.find_by_ticket(_ticket_from_body()).to_dict())


# =============================================================================
# CUSTOMER LEDGER
# =============================================================================

@transactions_bp.get("/user/transactions")
@require_auth
@require_permission("SHOP")
@handle_service_errors("list own transactions")
def list_user_transactions_route():
    start, end = date_range_args()
    query = transaction_service.list_transactions(
        user_id=g.current_user.id,
        start=start,
        end=end,
        ticket_number=request.args.get("ticket_number"),
        transaction_type=request.args.get("transaction_type"),
        status=request.args.get("status"),
    )
    return jsonify(paginate(query))


@transactions_bp.get("/user/transactions/summary")
@require_auth
@require_permission("SHOP")
@handle_service_errors("summarize own transactions")
def user_transactions_summary_route():
    start, end = date_range_args()
    return jsonify(transaction_service.summary(user_id=g.current_user.id, start=start, end=end))


@transactions_bp.get("/user/transactions/<int:transaction_pk>")
@require_auth
@require_permission("SHOP")
@handle_service_errors("load own transaction")
def get_user_transaction_route(transaction_pk: int):
    return jsonify(transaction_service.get_transaction(transaction_pk, user_id=g.current_user.id).to_dict())


@transactions_bp.post("/user/transactions/search-by-ticket")
@require_auth
@require_permission("SHOP")
@handle_service_errors("search own transaction by ticket")
def search_user_transaction_route():
    transaction = transaction_service.find_by_ticket(_ticket_from_body(), user_id=g.current_user.id)
    return jsonify(transaction.to_dict())
