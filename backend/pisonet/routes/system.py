# backend/pisonet/routes/system.py
"""
System health and version endpoints.

Provides health checks for the database, the daily aggregation output and
the shared-secret configuration, plus version information for deployment
debugging.
"""

import time
from flask import Blueprint, current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Branch, Unit, SaleEvent, BranchDailyAggregate
from pisonet.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        branch_count = db.session.query(Branch).count()
        unit_count = db.session.query(Unit).count()
        sale_count = db.session.query(SaleEvent).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "branches": branch_count,
                "units": unit_count,
                "sales": sale_count,
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


def check_aggregation_health() -> dict:
    """Report the most recent aggregated business date."""
    start_time = time.time()
    try:
        latest = db.session.query(func.max(BranchDailyAggregate.date_id)).scalar()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"latest_aggregate_date": latest},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Aggregation health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_secrets_configured() -> dict:
    """Degraded when a machine endpoint has no secret (it rejects every call)."""
    missing = [
        name for name in ("HARVEST_API_KEY", "CRON_SECRET")
        if not current_app.config.get(name)
    ]
    if missing:
        return {"status": "degraded", "details": {"missing": missing}}
    return {"status": "healthy"}


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: All systems healthy (or degraded but operational)
    - 503: One or more systems unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    aggregation_health = check_aggregation_health()
    secrets_health = check_secrets_configured()

    all_checks = [database_health, aggregation_health, secrets_health]
    unhealthy_count = sum(1 for check in all_checks if check["status"] == "unhealthy")
    degraded_count = sum(1 for check in all_checks if check["status"] == "degraded")

    if unhealthy_count > 0:
        overall_status = "unhealthy"
        http_status = 503
    elif degraded_count > 0:
        overall_status = "degraded"
        http_status = 200  # Degraded is still operational
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "aggregation": aggregation_health,
            "secrets": secrets_health,
        }
    }

    return response, http_status


@system_bp.get("/version")
def version():
    """
    Version endpoint for deployment debugging.

    Does NOT expose secrets, database credentials or internal paths.
    """
    import sys

    env = "production" if not current_app.debug else "development"

    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "business_utc_offset_minutes": current_app.config["BUSINESS_UTC_OFFSET_MINUTES"],
        "server_time": utcnow().isoformat() + "Z",
    }
