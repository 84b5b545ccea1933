# backend/app/routes/system.py
"""
System health and version endpoints.

Provides health checks for the storefront's dependencies and version
information for deployment debugging.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import AppSetting, CoalInventoryTransaction, CoalInventorySummary
from ..services.business_hours_service import REMOTE_SETTINGS_KEY, get_business_hours_service
from app.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        settings_count = db.session.query(AppSetting).count()
        transaction_count = db.session.query(CoalInventoryTransaction).count()
        summary_rows = db.session.query(CoalInventorySummary).count()

        elapsed_ms = (time.time() - start_time) * 1000

        details = {
            "settings": settings_count,
            "coal_transactions": transaction_count,
            "coal_summary_rows": summary_rows,
        }
        # More than one summary row means the single-row upsert was bypassed
        if summary_rows > 1:
            return {
                "status": "degraded",
                "latency_ms": round(elapsed_ms, 2),
                "warning": "Multiple coal inventory summary rows",
                "details": details,
            }

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_business_hours_health() -> dict:
    """
    Report where the business hours gate currently gets its schedule from.

    The gate never fails, so this is informational: "degraded" when the
    cached schedule is not the one in the database.
    """
    start_time = time.time()
    service = get_business_hours_service()
    try:
        stored = service.remote_store.get(REMOTE_SETTINGS_KEY)
    except Exception:
        current_app.logger.exception("Business hours store check failed")
        stored = None
        status = "degraded"
    else:
        status = "healthy"

    settings = service.get_business_hours()
    if stored is None or stored != settings.to_dict():
        status = "degraded"

    elapsed_ms = (time.time() - start_time) * 1000
    return {
        "status": status,
        "latency_ms": round(elapsed_ms, 2),
        "details": {
            "enabled": settings.is_enabled,
            "operating_timezone": settings.operating_timezone,
            "stored_in_database": stored is not None,
        },
    }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded
    - 503: database unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    business_hours_health = check_business_hours_health()

    all_checks = [database_health, business_hours_health]
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
            "business_hours": business_hours_health,
        }
    }

    return response, http_status


@system_bp.get("/version")
def version():
    """
    Version endpoint for deployment debugging.

    Does NOT expose secret keys, database credentials or internal paths.
    """
    import sys

    env = "production" if not current_app.debug else "development"

    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }
