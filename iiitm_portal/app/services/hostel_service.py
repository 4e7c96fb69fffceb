from __future__ import annotations

import logging

from ..constants import COMPLAINT_PENDING, COMPLAINT_STATUSES, ROLE_HOSTEL_WARDEN
from .db_service import fetch_all, fetch_one, insert_row, update_row
from .errors import NotFoundError, PermissionDenied, ValidationError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("hostel_block", "room_number", "issue_type", "description")


def create_complaint(student_id: str, fields: dict) -> dict:
    clean = {k: (fields.get(k) or "").strip() for k in REQUIRED_FIELDS}
    if not student_id or any(not v for v in clean.values()):
        raise ValidationError("Please fill in all required fields.")
    return insert_row(
        "hostel_complaints",
        {"student_id": student_id, **clean, "status": COMPLAINT_PENDING},
    )


def list_complaints(student_id: str | None = None, status: str | None = None) -> list[dict]:
    where = []
    params: list = []
    if student_id:
        where.append("student_id = ?")
        params.append(student_id)
    if status and status != "all":
        where.append("status = ?")
        params.append(status)
    sql = "SELECT * FROM hostel_complaints"
    if where:
        sql += " WHERE " + " AND ".join(where)
    sql += " ORDER BY created_at DESC, rowid DESC"
    return fetch_all(sql, params)


def get_complaint(complaint_id: str) -> dict:
    row = fetch_one("SELECT * FROM hostel_complaints WHERE id = ?", (complaint_id,))
    if row is None:
        raise NotFoundError("Complaint not found.")
    return row


def update_complaint_status(
    complaint_id: str,
    status: str,
    actor_role: str,
    remarks: str | None = None,
) -> dict:
    """Any status may follow any other; only the Hostel Warden may change it."""
    if actor_role != ROLE_HOSTEL_WARDEN:
        raise PermissionDenied("Only the hostel warden can update complaints.")
    if status not in COMPLAINT_STATUSES:
        raise ValidationError(f"Unknown status: {status}")
    changes = {"status": status}
    if remarks is not None:
        changes["warden_remarks"] = remarks.strip() or None
    row = update_row("hostel_complaints", complaint_id, changes)
    logger.info("Complaint %s set to %s", complaint_id, status)
    return row


def count_by_status() -> dict[str, int]:
    rows = fetch_all("SELECT status, COUNT(*) AS total FROM hostel_complaints GROUP BY status")
    counts = {s: 0 for s in COMPLAINT_STATUSES}
    counts.update({r["status"]: int(r["total"]) for r in rows})
    return counts
