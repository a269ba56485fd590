# backend/sealtrack/routes/system.py
"""
System health endpoint.

Checks the relational database (identities, sessions) and the document
store the seal collections live in.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Identity, SessionToken
from ..services import get_document_store
from ..services.entities import SEALS, STATIONS, USERS
from sealtrack.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def _timed(check) -> dict:
    start_time = time.time()
    try:
        details = check()
        status = "healthy"
        error = None
    except Exception:
        current_app.logger.exception("Health check %s failed", check.__name__)
        details, status, error = None, "unhealthy", "Check failed"
    result = {"status": status, "latency_ms": round((time.time() - start_time) * 1000, 2)}
    if details is not None:
        result["details"] = details
    if error:
        result["error"] = error
    return result


def check_database() -> dict:
    now = utcnow()
    return {
        "identities": db.session.query(Identity).count(),
        "active_sessions": db.session.query(SessionToken).filter(
            SessionToken.is_revoked.is_(False),
            SessionToken.expires_at >= now,
        ).count(),
    }


def check_document_store() -> dict:
    store = get_document_store()
    return {
        "backend": type(store).__name__,
        "seals": len(store.list(SEALS)),
        "stations": len(store.list(STATIONS)),
        "users": len(store.list(USERS)),
        "live_subscriptions": sum(store.subscriber_count(c) for c in (SEALS, STATIONS, USERS)),
    }


@system_bp.get("/health")
def health():
    """
    200 when every check is healthy, 503 otherwise.
    """
    start_time = time.time()
    checks = {
        "database": _timed(check_database),
        "document_store": _timed(check_document_store),
    }
    healthy = all(c["status"] == "healthy" for c in checks.values())

    response = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": checks,
    }
    return response, 200 if healthy else 503
