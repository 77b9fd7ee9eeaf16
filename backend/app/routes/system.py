# backend/app/routes/system.py
"""
Service banner and health check.
"""

import time

from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from app.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Round-trip a SELECT 1 and report latency."""
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/")
def index():
    return {"ok": True, "service": "listo-backend"}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: database reachable
    - 503: database unreachable
    """
    database_health = check_database_health()
    healthy = database_health["status"] == "healthy"

    response = {
        "ok": healthy,
        "status": database_health["status"],
        "timestamp": to_utc_z(utcnow()),
        "variants": bool(current_app.config.get("FEATURE_VARIANTS")),
        "visibilityFlags": bool(current_app.config.get("FEATURE_VISIBILITY_FLAGS")),
        "checks": {"database": database_health},
    }
    return response, 200 if healthy else 503
