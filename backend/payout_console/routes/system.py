# backend/payout_console/routes/system.py
"""
Liveness endpoint.

Reports database reachability with latency; 503 when the ledger cannot
be read, since every console operation depends on it.
"""

import time
from flask import Blueprint, current_app

from ..extensions import db
from ..models import Brand, SaleRecord
from ..models.sales import PAYOUT_PENDING
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        brand_count = db.session.query(Brand).count()
        sale_count = db.session.query(SaleRecord).count()
        pending_count = db.session.query(SaleRecord).filter_by(payout_status=PAYOUT_PENDING).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "brands": brand_count,
                "sales": sale_count,
                "pending_sales": pending_count,
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
    database_health = check_database_health()
    healthy = database_health["status"] == "healthy"
    response = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database_health},
    }
    return response, 200 if healthy else 503
