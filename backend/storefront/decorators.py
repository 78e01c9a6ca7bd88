# Overview: Request and permission decorators for API routes.

from functools import wraps

from flask import current_app, g, jsonify, request

from .errors import ServiceError
from .extensions import db
from .permissions import has_permission
from .services import session_service
from .validation import ValidationError


def _is_authenticated() -> bool:
    return hasattr(g, "current_user")


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid bearer session.

    Sets g.current_user and g.token.

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired or idle-timed-out token
    - User account suspended
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"message": "Unauthenticated."}), 401

        user = session_service.validate_session(token)
        if not user:
            return jsonify({"message": "Unauthenticated."}), 401

        g.current_user = user
        g.token = token
        return f(*args, **kwargs)

    return decorated_function


def _deny(user, permission_codes):
    current_app.logger.warning(
        "Permission denied: user_id=%s role=%s path=%s required=%s",
        user.id,
        user.role,
        request.path,
        ",".join(permission_codes),
    )
    return jsonify({"message": "Unauthorized. Insufficient permissions."}), 403


def require_permission(permission_code: str):
    """Require a permission granted to the current user's role. Use after @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"message": "Unauthenticated."}), 401

            user = g.current_user
            if not has_permission(user.role, permission_code):
                return _deny(user, [permission_code])

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_any_permission(*permission_codes):
    """Require any of the specified permissions."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"message": "Unauthenticated."}), 401

            user = g.current_user
            if not any(has_permission(user.role, code) for code in permission_codes):
                return _deny(user, permission_codes)

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def handle_service_errors(action: str):
    """
    Translate service exceptions into JSON responses.

    - ValidationError -> 422 {"errors": {...}}
    - ServiceError subclasses -> their status_code with {"message": ...}
    - anything else is logged with a traceback and returned as 500
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except ValidationError as e:
                return jsonify({"message": "The given data was invalid.", "errors": e.errors}), 422
            except ServiceError as e:
                return jsonify({"message": str(e)}), e.status_code
            except Exception:
                db.session.rollback()
                current_app.logger.exception("Failed to %s", action)
                return jsonify({"message": "Internal server error"}), 500

        return decorated_function
    return decorator
