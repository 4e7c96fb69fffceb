from __future__ import annotations

import logging
import time

from ..constants import BUCKETS, COMPLAINT_PENDING, HEALTH_SERVICES, ROLE_FACULTY, ROLE_STUDENT
from .auth_service import get_auth_provider
from .db_service import execute, fetch_all, fetch_one, fetch_scalar, insert_row, new_id, now_iso
from .errors import PortalError, ValidationError
from .storage_service import get_object_store

logger = logging.getLogger(__name__)

STATUS_ACTIVE = "active"
STATUS_ERROR = "error"


def _check_database() -> None:
    fetch_all("SELECT id FROM profiles LIMIT 1")


def _check_auth() -> None:
    get_auth_provider().ping()


def _check_storage() -> None:
    store = get_object_store()
    for bucket in BUCKETS:
        store.list(bucket)


SERVICE_CHECKS = {
    "database": _check_database,
    "auth": _check_auth,
    "storage": _check_storage,
}


def record_health(service_name: str, status: str, response_time: int, error_message: str | None) -> dict:
    """Upsert the ``backend_health`` row for ``service_name``."""
    now = now_iso()
    execute(
        """
        INSERT INTO backend_health (id, service_name, status, response_time, error_message, last_check, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(service_name) DO UPDATE SET
            status = excluded.status,
            response_time = excluded.response_time,
            error_message = excluded.error_message,
            last_check = excluded.last_check
        """,
        (new_id(), service_name, status, response_time, error_message, now, now),
    )
    return fetch_one("SELECT * FROM backend_health WHERE service_name = ?", (service_name,))


def check_service(service_name: str) -> dict:
    check = SERVICE_CHECKS.get(service_name)
    if check is None:
        raise ValidationError(f"Unknown service: {service_name}")

    started = time.perf_counter()
    status, error = STATUS_ACTIVE, None
    try:
        check()
    except (PortalError, OSError) as exc:
        status, error = STATUS_ERROR, str(exc)
        logger.warning("Health check failed for %s: %s", service_name, exc)
    response_time = int((time.perf_counter() - started) * 1000)

    record_health(service_name, status, response_time, error)
    return {
        "service_name": service_name,
        "status": status,
        "response_time": response_time,
        "error_message": error,
    }


def check_all_services() -> dict:
    results = [check_service(name) for name in HEALTH_SERVICES]
    healthy = sum(1 for r in results if r["status"] == STATUS_ACTIVE)
    return {
        "results": results,
        "uptime": healthy / len(results) * 100,
        "failed": [r["service_name"] for r in results if r["status"] != STATUS_ACTIVE],
    }


def list_health() -> list[dict]:
    return fetch_all("SELECT * FROM backend_health ORDER BY service_name ASC")


# ==========================================================
# ACTIVITY / ADMIN STATS
# ==========================================================
def log_activity(
    user_id: str,
    action: str,
    details: str | None = None,
    target_id: str | None = None,
    target_type: str | None = None,
) -> dict:
    return insert_row(
        "activity_logs",
        {
            "user_id": user_id,
            "action": action,
            "details": details,
            "target_id": target_id,
            "target_type": target_type,
        },
        timestamps=("created_at",),
    )


def recent_activity(limit: int = 10) -> list[dict]:
    rows = fetch_all(
        """
        SELECT a.*, p.full_name AS user_full_name
        FROM activity_logs a
        LEFT JOIN profiles p ON p.user_id = a.user_id
        ORDER BY a.created_at DESC, a.rowid DESC
        LIMIT ?
        """,
        (int(limit),),
    )
    for r in rows:
        r["user_name"] = r.pop("user_full_name") or r["user_id"]
    return rows


def admin_stats() -> dict:
    row = fetch_one(
        """
        SELECT
            (SELECT COUNT(*) FROM profiles) AS total_users,
            (SELECT COUNT(*) FROM profiles WHERE role = ?) AS students,
            (SELECT COUNT(*) FROM profiles WHERE role = ?) AS faculty,
            (SELECT COUNT(*) FROM departments) AS departments,
            (SELECT COUNT(*) FROM hostel_complaints WHERE status = ?) AS pending_complaints
        """,
        (ROLE_STUDENT, ROLE_FACULTY, COMPLAINT_PENDING),
    )
    return {k: int(v or 0) for k, v in (row or {}).items()}


def count_rows(table: str) -> int:
    return int(fetch_scalar(f"SELECT COUNT(*) FROM {table}") or 0)
