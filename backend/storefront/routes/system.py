# Overview: System health and version endpoints.

"""
Health check for the database and session table, plus a version endpoint
for deployment debugging.
"""

import sys
import time

from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import PaymentMethod, SessionToken, User
from ..time_utils import to_utc_z, utcnow


system_bp = Blueprint("system", __name__)

API_VERSION = "1.0.0"


def check_database_health() -> dict:
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        payment_method_count = db.session.query(PaymentMethod).count()
        elapsed_ms = (time.time() - start_time) * 1000

        status = "healthy" if payment_method_count else "degraded"
        result = {
            "status": status,
            "latency_ms": round(elapsed_ms, 2),
            "details": {"users": user_count, "payment_methods": payment_method_count},
        }
        if not payment_method_count:
            result["warning"] = "No payment methods configured; run `flask system init`"
        return result
    except SQLAlchemyError:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "latency_ms": round(elapsed_ms, 2), "error": "Database error"}


def check_session_service_health() -> dict:
    start_time = time.time()
    try:
        now = utcnow()
        active_sessions = db.session.query(SessionToken).filter_by(is_revoked=False).count()
        expired_sessions = db.session.query(SessionToken).filter(
            SessionToken.expires_at < now,
            SessionToken.is_revoked.is_(False),
        ).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"active_sessions": active_sessions, "expired_pending_cleanup": expired_sessions},
        }
    except SQLAlchemyError:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Session service health check failed")
        return {"status": "unhealthy", "latency_ms": round(elapsed_ms, 2), "error": "Session service error"}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: a dependency is unhealthy
    """
    start_time = time.time()
    checks = {
        "database": check_database_health(),
        "session_service": check_session_service_health(),
    }

    statuses = {check["status"] for check in checks.values()}
    if "unhealthy" in statuses:
        overall, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall, http_status = "degraded", 200
    else:
        overall, http_status = "healthy", 200

    return {
        "status": overall,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": checks,
    }, http_status


@system_bp.get("/version")
def version():
    return {
        "api_version": API_VERSION,
        "environment": "development" if current_app.debug else "production",
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }
