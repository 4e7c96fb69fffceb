from __future__ import annotations

from ..constants import DAY_NAMES
from .db_service import delete_row, fetch_all, insert_row
from .errors import ValidationError


def list_timetable(batch_id: str, day_of_week: int | None = None) -> list[dict]:
    sql = """
        SELECT t.*, b.name AS batch_name, p.full_name AS faculty_full_name
        FROM timetables t
        LEFT JOIN batches b ON b.id = t.batch_id
        LEFT JOIN profiles p ON p.user_id = t.faculty_id
        WHERE t.batch_id = ?
    """
    params: list = [batch_id]
    if day_of_week is not None:
        sql += " AND t.day_of_week = ?"
        params.append(int(day_of_week))
    sql += " ORDER BY t.day_of_week ASC, t.time_slot ASC"
    rows = fetch_all(sql, params)
    for r in rows:
        r["batch"] = {"name": r.pop("batch_name")}
        name = r.pop("faculty_full_name")
        r["faculty"] = {"full_name": name} if name else None
        r["day_name"] = DAY_NAMES[r["day_of_week"]]
    return rows


def create_entry(fields: dict) -> dict:
    batch_id = (fields.get("batch_id") or "").strip()
    time_slot = (fields.get("time_slot") or "").strip()
    subject = (fields.get("subject") or "").strip()
    raw_day = fields.get("day_of_week")
    if not batch_id or not time_slot or not subject or raw_day in (None, ""):
        raise ValidationError("Please fill in all required fields.")
    try:
        day = int(raw_day)
    except (TypeError, ValueError):
        raise ValidationError("Day of week must be a number.") from None
    if not 0 <= day <= 6:
        raise ValidationError("Day of week must be between 0 (Sunday) and 6 (Saturday).")
    return insert_row(
        "timetables",
        {
            "batch_id": batch_id,
            "day_of_week": day,
            "time_slot": time_slot,
            "subject": subject,
            "faculty_id": (fields.get("faculty_id") or "").strip() or None,
            "room": (fields.get("room") or "").strip() or None,
        },
    )


def delete_entry(entry_id: str) -> None:
    delete_row("timetables", entry_id)
