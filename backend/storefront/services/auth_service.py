# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Uses bcrypt for password hashing. Registration always creates a customer;
privileged accounts come from staff administration or the CLI.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Suspended users cannot authenticate
- Session tokens managed separately (see session_service.py)
"""

import bcrypt

from ..errors import ServiceError
from ..extensions import db
from ..models import Cart, User
from ..models.users import DEFAULT_PREFERENCES
from ..permissions import Role
from ..time_utils import utcnow
from ..validation import ValidationError
from . import session_service


MIN_PASSWORD_LENGTH = 8


class AuthError(ServiceError):
    """Raised for login/credential failures."""
    status_code = 401


class AccountSuspendedError(ServiceError):
    status_code = 403


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""

    def __init__(self, message: str, field: str = "password"):
        super().__init__({field: [message]})


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"The password field must be at least {MIN_PASSWORD_LENGTH} characters."
        )


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def email_taken(email: str, exclude_user_id: int | None = None) -> bool:
    query = User.query.filter(db.func.lower(User.email) == email.lower())
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    return db.session.query(query.exists()).scalar()


def create_user(
    name: str,
    email: str,
    password: str,
    role: Role | str = Role.CUSTOMER,
    **profile
) -> User:
    """
    Create a user with a bcrypt password hash.

    Customers also get an empty cart.

    Raises:
        ValidationError: email already registered, weak password or unknown role
    """
    try:
        role_value = Role(role).value
    except ValueError:
        raise ValidationError({"role": ["The selected role is invalid."]})

    if email_taken(email):
        raise ValidationError({"email": ["The email has already been taken."]})

    user = User(
        name=name,
        email=email.strip().lower(),
        password_hash=hash_password(password),
        role=role_value,
        **profile
    )
    db.session.add(user)
    db.session.flush()

    if role_value == Role.CUSTOMER.value:
        db.session.add(Cart(user_id=user.id))

    db.session.commit()
    return user


def register(name: str, email: str, password: str, **profile) -> tuple[User, str]:
    user = create_user(name, email, password, Role.CUSTOMER, **profile)
    _, token = session_service.create_session(user.id)
    return user, token


def authenticate(email: str, password: str) -> User:
    """
    Check credentials and stamp last_login_at.

    Raises:
        AuthError: unknown email or wrong password
        AccountSuspendedError: credentials valid but the account is suspended
    """
    user = User.query.filter(db.func.lower(User.email) == (email or "").strip().lower()).first()

    if not user or not verify_password(password or "", user.password_hash):
        raise AuthError("Invalid credentials")

    if not user.is_active:
        raise AccountSuspendedError("Your account has been suspended")

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def login(email: str, password: str, user_agent: str | None = None, ip_address: str | None = None) -> tuple[User, str]:
    user = authenticate(email, password)
    _, token = session_service.create_session(user.id, user_agent=user_agent, ip_address=ip_address)
    return user, token


PROFILE_FIELDS = ("name", "email", "phone", "address", "city", "state", "zip_code", "country")


def update_profile(user: User, changes: dict) -> User:
    if "email" in changes and email_taken(changes["email"], exclude_user_id=user.id):
        raise ValidationError({"email": ["The email has already been taken."]})

    for field in PROFILE_FIELDS:
        if field in changes:
            value = changes[field]
            if field == "email":
                value = value.strip().lower()
            setattr(user, field, value)

    db.session.commit()
    return user


def change_password(user: User, current_password: str, new_password: str) -> None:
    """Change password and revoke all of the user's sessions."""
    if not verify_password(current_password or "", user.password_hash):
        raise ValidationError({"current_password": ["The current password is incorrect."]})

    user.password_hash = hash_password(new_password)
    session_service.revoke_all_user_sessions(user.id, reason="Password changed", commit=False)
    db.session.commit()


def update_preferences(user: User, prefs: dict) -> dict:
    """Merge known preference keys onto the defaults; unknown keys are dropped."""
    merged = user.get_preferences()
    for key, value in prefs.items():
        if key in DEFAULT_PREFERENCES:
            merged[key] = value
    user.set_preferences(merged)
    db.session.commit()
    return merged
