from __future__ import annotations

import json

from ..extensions import db
from ..permissions import Role
from ..time_utils import to_utc_z, utcnow


DEFAULT_PREFERENCES = {
    "email_notifications": True,
    "order_updates": True,
    "newsletter": False,
    "theme": "light",
}


class User(db.Model):
    """
    Accounts for every actor: customers, staff, warehouse managers and admins.

    role is one value of the closed Role enumeration; capability checks go
    through permissions.ROLE_PERMISSIONS, never through string comparisons
    scattered across handlers.

    Suspension is modelled as is_active=False plus the reason/actor/timestamp
    columns below. Full history lives in UserSuspension.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_role_active", "role", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(32), nullable=False, default=Role.CUSTOMER.value, index=True)

    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(100), nullable=True)
    state = db.Column(db.String(100), nullable=True)
    zip_code = db.Column(db.String(20), nullable=True)
    country = db.Column(db.String(100), nullable=True)
    preferences = db.Column(db.Text, nullable=True)

    # Staff-only columns
    department = db.Column(db.String(100), nullable=True)
    employee_id = db.Column(db.String(50), nullable=True, unique=True)
    hire_date = db.Column(db.Date, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    suspension_reason = db.Column(db.String(500), nullable=True)
    suspension_notes = db.Column(db.Text, nullable=True)
    suspended_at = db.Column(db.DateTime, nullable=True)
    suspended_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    reactivated_at = db.Column(db.DateTime, nullable=True)
    reactivated_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    reactivation_notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    last_login_at = db.Column(db.DateTime, nullable=True)

    suspended_by_user = db.relationship("User", foreign_keys=[suspended_by], remote_side=[id])
    reactivated_by_user = db.relationship("User", foreign_keys=[reactivated_by], remote_side=[id])

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"

    @property
    def role_enum(self) -> Role:
        return Role(self.role)

    def has_role(self, *roles: Role | str) -> bool:
        return self.role in {r.value if isinstance(r, Role) else r for r in roles}

    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    def is_suspended(self) -> bool:
        return not self.is_active

    def get_preferences(self) -> dict:
        stored = {}
        if self.preferences:
            try:
                stored = json.loads(self.preferences)
            except ValueError:
                stored = {}
        return {**DEFAULT_PREFERENCES, **stored}

    def set_preferences(self, prefs: dict) -> None:
        self.preferences = json.dumps(prefs, sort_keys=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "phone": self.phone,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "country": self.country,
            "preferences": self.get_preferences(),
            "department": self.department,
            "employee_id": self.employee_id,
            "hire_date": to_utc_z(self.hire_date),
            "is_active": self.is_active,
            "suspension_reason": self.suspension_reason,
            "suspended_at": to_utc_z(self.suspended_at),
            "reactivated_at": to_utc_z(self.reactivated_at),
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at),
        }


class UserSuspension(db.Model):
    """One suspension or reactivation event for a user."""
    __tablename__ = "user_suspensions"
    __table_args__ = (
        db.Index("ix_user_suspensions_user", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    action = db.Column(db.String(16), nullable=False)  # suspend | reactivate
    reason = db.Column(db.String(500), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    performed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    user = db.relationship("User", foreign_keys=[user_id], backref=db.backref("suspension_history", lazy="dynamic"))
    performer = db.relationship("User", foreign_keys=[performed_by])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "action": self.action,
            "reason": self.reason,
            "notes": self.notes,
            "performed_by": self.performed_by,
            "performed_by_name": self.performer.name if self.performer else None,
            "created_at": to_utc_z(self.created_at),
        }


class SessionToken(db.Model):
    """
    Server-side bearer sessions.

    Only the SHA-256 hash of the token is stored; the plaintext is returned
    once at login.
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_revoked", "user_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    last_used_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime, nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(255), nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)

    user = db.relationship("User", backref=db.backref("sessions", lazy="dynamic"))
