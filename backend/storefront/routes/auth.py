# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- Registration creates a customer with an empty cart and returns a token
- Login refuses suspended accounts (403)
- Password changes revoke every session of the user
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import handle_service_errors, require_auth
from ..services import auth_service, session_service
from ..validation import Field, validate_payload


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


REGISTER_RULES = {
    "name": Field("str", required=True, max_length=255),
    "email": Field("str", required=True, max_length=255),
    "password": Field("str", required=True, confirmed=True),
    "phone": Field("str", max_length=32),
    "address": Field("str", max_length=255),
    "city": Field("str", max_length=100),
    "state": Field("str", max_length=100),
    "zip_code": Field("str", max_length=20),
    "country": Field("str", max_length=100),
}

PROFILE_RULES = {
    "name": Field("str", required=True, max_length=255),
    "email": Field("str", required=True, max_length=255),
    "phone": Field("str", max_length=32),
    "address": Field("str", max_length=255),
    "city": Field("str", max_length=100),
    "state": Field("str", max_length=100),
    "zip_code": Field("str", max_length=20),
    "country": Field("str", max_length=100),
}

PASSWORD_RULES = {
    "current_password": Field("str", required=True),
    "password": Field("str", required=True, confirmed=True),
}


@auth_bp.post("/register")
@handle_service_errors("register user")
def register_route():
    """
    Register a customer.

    Returns:
        201: {user, token}
        422: validation errors (duplicate email, weak password, confirmation mismatch)
    """
    data = validate_payload(request.get_json(silent=True), REGISTER_RULES)
    name = data.pop("name")
    email = data.pop("email")
    password = data.pop("password")

    user, token = auth_service.register(name, email, password, **data)
    return jsonify({"user": user.to_dict(), "token": token, "token_type": "Bearer"}), 201


@auth_bp.post("/login")
@handle_service_errors("log in")
def login_route():
    """
    Authenticate and create a session token.

    Returns:
        200: {user, token}
        401: invalid credentials
        403: account suspended
    """
    data = validate_payload(request.get_json(silent=True), {
        "email": Field("str", required=True),
        "password": Field("str", required=True),
    })

    user, token = auth_service.login(
        data["email"],
        data["password"],
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return jsonify({"user": user.to_dict(), "token": token, "token_type": "Bearer"})


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.token)
    return jsonify({"message": "Logged out successfully"})


@auth_bp.get("/user")
@require_auth
def current_user_route():
    return jsonify({"user": g.current_user.to_dict()})


@auth_bp.put("/profile")
@require_auth
@handle_service_errors("update profile")
def update_profile_route():
    data = validate_payload(request.get_json(silent=True), PROFILE_RULES, partial=True)
    user = auth_service.update_profile(g.current_user, data)
    return jsonify({"message": "Profile updated successfully", "user": user.to_dict()})


@auth_bp.put("/password")
@require_auth
@handle_service_errors("change password")
def update_password_route():
    """Change password. Every session, including the current one, is revoked."""
    data = validate_payload(request.get_json(silent=True), PASSWORD_RULES)
    auth_service.change_password(g.current_user, data["current_password"], data["password"])
    return jsonify({"message": "Password updated successfully. Please log in again."})


@auth_bp.put("/preferences")
@require_auth
@handle_service_errors("update preferences")
def update_preferences_route():
    data = validate_payload(request.get_json(silent=True), {"preferences": Field("dict", required=True)})
    preferences = auth_service.update_preferences(g.current_user, data["preferences"])
    return jsonify({"message": "Preferences updated successfully", "preferences": preferences})
