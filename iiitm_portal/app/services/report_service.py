"""Report configs, their aggregated series and cached snapshots.

Each generator fetches its source rows wholesale and aggregates them in
Python. A generated series is stored in ``reports_data`` and reused until its
``expires_at`` has passed.
"""
from __future__ import annotations

import json
import logging
from collections import OrderedDict
from datetime import datetime, timedelta, timezone

from ..constants import (
    CHART_TYPES,
    COMPLAINT_PENDING,
    COMPLAINT_RESOLVED,
    QUERY_STATUSES,
    REPORT_TYPES,
    ROLE_STUDENT,
)
from .db_service import fetch_all, fetch_one, insert_row, now_iso
from .errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

RECENT_WINDOW = timedelta(days=30)


def _since(window: timedelta = RECENT_WINDOW) -> str:
    return now_iso(datetime.now(timezone.utc) - window)


# ==========================================================
# AGGREGATIONS
# ==========================================================
def enrollment_stats(profiles: list[dict]) -> list[dict]:
    counts: dict[str, int] = OrderedDict()
    for p in profiles:
        dept = p.get("department") or "Unassigned"
        counts[dept] = counts.get(dept, 0) + 1
    return [{"department": d, "students": n} for d, n in counts.items()]


def faculty_workload(assignments: list[dict], names: dict[str, str]) -> list[dict]:
    counts: dict[str, int] = OrderedDict()
    for a in assignments:
        name = names.get(a["faculty_id"]) or "Unknown"
        counts[name] = counts.get(name, 0) + 1
    return [{"faculty": f, "courses": n} for f, n in counts.items()]


def query_analytics(queries: list[dict]) -> list[dict]:
    months: dict[str, dict] = OrderedDict()
    for q in queries:
        month = datetime.fromisoformat(q["created_at"]).strftime("%b")
        if month not in months:
            months[month] = {"month": month, **{s.lower(): 0 for s in QUERY_STATUSES}}
        key = (q.get("status") or "").lower()
        months[month][key] = months[month].get(key, 0) + 1
    return list(months.values())


def hostel_analytics(complaints: list[dict]) -> list[dict]:
    types: dict[str, dict] = OrderedDict()
    for c in complaints:
        entry = types.setdefault(c["issue_type"], {"type": c["issue_type"], "total": 0, "pending": 0, "resolved": 0})
        entry["total"] += 1
        if c["status"] == COMPLAINT_PENDING:
            entry["pending"] += 1
        elif c["status"] == COMPLAINT_RESOLVED:
            entry["resolved"] += 1
    return list(types.values())


def course_assignment_stats(assignments: list[dict]) -> list[dict]:
    counts: dict[str, int] = OrderedDict()
    for a in assignments:
        key = f"{a['semester']} {a['year']}"
        counts[key] = counts.get(key, 0) + 1
    return [{"semester": k, "assignments": n} for k, n in counts.items()]


def _generate_enrollment_stats() -> list[dict]:
    rows = fetch_all("SELECT department FROM profiles WHERE role = ? ORDER BY created_at", (ROLE_STUDENT,))
    return enrollment_stats(rows)


def _generate_faculty_workload() -> list[dict]:
    rows = fetch_all("SELECT faculty_id, course_id FROM course_assignments ORDER BY created_at")
    names = {
        r["user_id"]: r["full_name"]
        for r in fetch_all("SELECT user_id, full_name FROM profiles WHERE user_id IN (SELECT faculty_id FROM course_assignments)")
    }
    return faculty_workload(rows, names)


def _generate_query_analytics() -> list[dict]:
    rows = fetch_all(
        "SELECT status, created_at FROM academic_queries WHERE created_at >= ? ORDER BY created_at",
        (_since(),),
    )
    return query_analytics(rows)


def _generate_hostel_analytics() -> list[dict]:
    rows = fetch_all(
        "SELECT issue_type, status FROM hostel_complaints WHERE created_at >= ? ORDER BY created_at",
        (_since(),),
    )
    return hostel_analytics(rows)


def _generate_course_assignments() -> list[dict]:
    rows = fetch_all("SELECT semester, year FROM course_assignments ORDER BY year DESC")
    return course_assignment_stats(rows)


GENERATORS = {
    "enrollment_stats": _generate_enrollment_stats,
    "faculty_workload": _generate_faculty_workload,
    "query_analytics": _generate_query_analytics,
    "hostel_analytics": _generate_hostel_analytics,
    "course_assignments": _generate_course_assignments,
}


def generate(report_type: str) -> list[dict]:
    generator = GENERATORS.get(report_type)
    return generator() if generator else []


# ==========================================================
# CONFIGS / SNAPSHOTS / VIEWS
# ==========================================================
def _decode_config(row: dict) -> dict:
    row["config"] = json.loads(row["config"]) if row.get("config") else {}
    row["is_active"] = bool(row.get("is_active"))
    return row


def list_report_configs(active_only: bool = True) -> list[dict]:
    sql = "SELECT * FROM reports_config"
    if active_only:
        sql += " WHERE is_active = 1"
    sql += " ORDER BY name ASC"
    return [_decode_config(r) for r in fetch_all(sql)]


def get_report_config(config_id: str) -> dict:
    row = fetch_one("SELECT * FROM reports_config WHERE id = ?", (config_id,))
    if row is None:
        raise NotFoundError("Report not found.")
    return _decode_config(row)


def create_report_config(
    name: str,
    report_type: str,
    created_by: str,
    description: str | None = None,
    chart_type: str = "bar",
) -> dict:
    name = (name or "").strip()
    if not name or not report_type:
        raise ValidationError("Report name and type are required.")
    if report_type not in REPORT_TYPES:
        raise ValidationError(f"Unknown report type: {report_type}")
    if chart_type not in CHART_TYPES:
        raise ValidationError(f"Unknown chart type: {chart_type}")
    row = insert_row(
        "reports_config",
        {
            "name": name,
            "description": (description or "").strip() or None,
            "report_type": report_type,
            "config": json.dumps({"chart_type": chart_type}),
            "is_active": 1,
            "created_by": created_by,
        },
    )
    return _decode_config(row)


def latest_snapshot(config_id: str) -> dict | None:
    row = fetch_one(
        """
        SELECT * FROM reports_data
        WHERE report_config_id = ? AND (expires_at IS NULL OR expires_at > ?)
        ORDER BY generated_at DESC, rowid DESC
        LIMIT 1
        """,
        (config_id, now_iso()),
    )
    if row is not None:
        row["data"] = json.loads(row["data"])
    return row


def report_data(config: dict, user_id: str, ttl_minutes: int = 15) -> list[dict]:
    """Series for ``config``, from a fresh snapshot or newly generated."""
    snapshot = latest_snapshot(config["id"])
    if snapshot is not None:
        return snapshot["data"]
    data = generate(config["report_type"])
    insert_row(
        "reports_data",
        {
            "report_config_id": config["id"],
            "data": json.dumps(data),
            "generated_by": user_id,
            "expires_at": now_iso(datetime.now(timezone.utc) + timedelta(minutes=ttl_minutes)),
        },
        timestamps=("generated_at",),
    )
    logger.debug("Generated %s for %s", config["report_type"], config["id"])
    return data


def log_view(config_id: str, user_id: str) -> dict:
    return insert_row(
        "report_views",
        {"report_config_id": config_id, "viewed_by": user_id},
        timestamps=("viewed_at",),
    )


def load_reports(user_id: str, ttl_minutes: int = 15) -> list[dict]:
    """Active configs with their series; every config shown is logged as viewed."""
    reports = []
    for config in list_report_configs():
        data = report_data(config, user_id, ttl_minutes)
        log_view(config["id"], user_id)
        columns = list(data[0].keys()) if data else []
        reports.append({"config": config, "data": data, "columns": columns})
    return reports
