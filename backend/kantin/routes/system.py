# backend/kantin/routes/system.py
"""
System health endpoint.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Product, SessionToken, Transaction, TransactionSequence
from kantin.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        product_count = db.session.query(Product).count()
        transaction_count = db.session.query(Transaction).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "products": product_count,
                "transactions": transaction_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_sequence_health() -> dict:
    """
    The counter must be ahead of every code already in the ledger; if it is
    not, the next checkout would collide on transaksi_id.
    """
    start_time = time.time()
    try:
        prefix = current_app.config.get("TRANSACTION_CODE_PREFIX", "TRX")
        seq = db.session.query(TransactionSequence).filter_by(prefix=prefix).first()
        entries = db.session.query(Transaction).count()

        elapsed_ms = (time.time() - start_time) * 1000

        if seq is None:
            return {
                "status": "healthy",
                "latency_ms": round(elapsed_ms, 2),
                "details": {"prefix": prefix, "next_number": None, "seeded": False},
            }

        status = "healthy" if seq.next_number > entries else "degraded"
        result = {
            "status": status,
            "latency_ms": round(elapsed_ms, 2),
            "details": {"prefix": prefix, "next_number": seq.next_number, "seeded": True},
        }
        if status == "degraded":
            result["warning"] = "Transaction counter is behind the ledger"
        return result
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Sequence health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Sequence error"
        }


def check_session_service_health() -> dict:
    start_time = time.time()
    try:
        active_sessions = db.session.query(SessionToken).filter_by(is_revoked=False).count()
        expired_sessions = db.session.query(SessionToken).filter(
            SessionToken.expires_at < utcnow(),
            SessionToken.is_revoked.is_(False)
        ).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "active_sessions": active_sessions,
                "expired_pending_cleanup": expired_sessions,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Session service health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Session service error"
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    checks = {
        "database": check_database_health(),
        "transaction_sequence": check_sequence_health(),
        "session_service": check_session_service_health(),
    }

    statuses = [c["status"] for c in checks.values()]
    if "unhealthy" in statuses:
        overall_status, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": checks,
    }

    return response, http_status
