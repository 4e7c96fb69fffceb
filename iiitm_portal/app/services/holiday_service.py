from __future__ import annotations

from datetime import date

from ..constants import HOLIDAY_TYPES
from .db_service import delete_row, fetch_all, insert_row
from .errors import ValidationError


def list_holidays(upcoming_only: bool = False) -> list[dict]:
    if upcoming_only:
        return fetch_all(
            "SELECT * FROM holidays WHERE date >= ? ORDER BY date ASC",
            (date.today().isoformat(),),
        )
    return fetch_all("SELECT * FROM holidays ORDER BY date ASC")


def create_holiday(name: str, day: str, holiday_type: str) -> dict:
    name = (name or "").strip()
    day = (day or "").strip()
    if not name or not day or not holiday_type:
        raise ValidationError("Please fill in all required fields.")
    if holiday_type not in HOLIDAY_TYPES:
        raise ValidationError(f"Unknown holiday type: {holiday_type}")
    try:
        date.fromisoformat(day)
    except ValueError:
        raise ValidationError("Date must be in YYYY-MM-DD format.") from None
    return insert_row("holidays", {"name": name, "date": day, "type": holiday_type})


def delete_holiday(holiday_id: str) -> None:
    delete_row("holidays", holiday_id)
