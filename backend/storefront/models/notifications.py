from __future__ import annotations

import json

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Notification(db.Model):
    """In-app notification row written by notification_service.notify."""
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_user_read", "user_id", "read_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    type = db.Column(db.String(64), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    data = db.Column(db.Text, nullable=True)
    read_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    user = db.relationship("User", backref=db.backref("notifications", lazy="dynamic"))

    def get_data(self) -> dict:
        if not self.data:
            return {}
        try:
            return json.loads(self.data)
        except ValueError:
            return {}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "data": self.get_data(),
            "read": self.read_at is not None,
            "read_at": to_utc_z(self.read_at),
            "created_at": to_utc_z(self.created_at),
        }
