# backend/laundry/routes/system.py
"""
System health endpoint.

Checks the database and reports the ledger's sequence counters so a
deployment can be sanity-checked at a glance.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Order, Invoice
from ..services import sequence_service
from laundry.time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        order_count = db.session.query(Order).count()
        invoice_count = db.session.query(Invoice).count()
        sequences = {seq.name: seq.value for seq in sequence_service.list_sequences()}

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "orders": order_count,
                "invoices": invoice_count,
                "sequences": sequences,
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


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: database reachable
    - 503: database unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    http_status = 200 if database_health["status"] == "healthy" else 503

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": database_health["status"],
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
        }
    }

    return response, http_status
