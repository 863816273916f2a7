# Overview: System health and version endpoints.

"""
System health and version endpoints.

Health reports database reachability plus a few operational counters that
the nightly jobs act on (expired-but-active batches, recurring expenses due).
"""

import sys
import time
from datetime import timedelta

from flask import Blueprint, current_app

from ..extensions import db
from ..models import Stall, InventoryBatch
from ..domain import inventory as inventory_rules
from ..services import expense_service
from ..services.repository import RecordRepository
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)

API_VERSION = "1.0.0"


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        stall_count = db.session.query(Stall).filter(Stall.is_active.is_(True)).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"active_stalls": stall_count},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


def check_jobs_health() -> dict:
    """
    Degraded when the scheduled jobs are behind: active batches past expiry,
    or recurring expenses whose due date has passed.
    """
    start_time = time.time()
    try:
        now = utcnow()
        stale_batches = sum(
            1 for batch in RecordRepository(InventoryBatch).records()
            if inventory_rules.days_until(batch.expiry_date, now) < 0
        )
        # due before today: the nightly run should already have advanced them
        overdue_recurring = len(expense_service.due_recurring(now.date() - timedelta(days=1)))
        elapsed_ms = (time.time() - start_time) * 1000

        details = {
            "expired_batches_pending_refresh": stale_batches,
            "recurring_expenses_overdue": overdue_recurring,
        }
        if stale_batches or overdue_recurring:
            return {
                "status": "degraded",
                "latency_ms": round(elapsed_ms, 2),
                "warning": "Scheduled jobs have pending work",
                "details": details,
            }
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2), "details": details}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Jobs health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Jobs check error",
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    jobs_health = check_jobs_health()

    all_checks = [database_health, jobs_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    return {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "jobs": jobs_health,
        },
    }, http_status


@system_bp.get("/version")
def version():
    """Non-sensitive deployment information."""
    env = "production" if not current_app.debug else "development"
    return {
        "api_version": API_VERSION,
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }
