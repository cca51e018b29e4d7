# backend/mercado/routes/system.py
"""
Health endpoint: is the ledger reachable, and can tokens be resolved?
"""

import time
from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product, Sale, SessionToken
from mercado.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def _timed_check(name: str, check) -> dict:
    """Run check() and report its latency; a database error marks it unhealthy."""
    started = time.perf_counter()
    try:
        details = check()
        status = {"status": "healthy", "details": details}
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Health check '%s' failed", name)
        status = {"status": "unhealthy", "error": f"{name} unavailable"}
    status["latency_ms"] = round((time.perf_counter() - started) * 1000, 2)
    return status


def _count_ledger() -> dict:
    return {
        "products": db.session.query(Product).count(),
        "sales": db.session.query(Sale).count(),
    }


def _count_active_sessions() -> dict:
    active = db.session.query(SessionToken).filter(
        SessionToken.is_revoked.is_(False),
        SessionToken.expires_at > utcnow(),
    ).count()
    return {"active_sessions": active}


@system_bp.get("/health")
def health():
    """200 when every check passes, 503 otherwise."""
    checks = {
        "database": _timed_check("database", _count_ledger),
        "sessions": _timed_check("sessions", _count_active_sessions),
    }
    healthy = all(check["status"] == "healthy" for check in checks.values())

    body = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "checks": checks,
    }
    return body, 200 if healthy else 503
