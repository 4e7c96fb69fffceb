from __future__ import annotations

import json
from datetime import date, timedelta

from ..constants import MEAL_TYPES
from .db_service import delete_row, fetch_all, insert_row
from .errors import ValidationError

# Chronological order of meals within a day.
_MEAL_ORDER = {m: i for i, m in enumerate(MEAL_TYPES)}


def parse_items(raw: str | list | None) -> list[str]:
    if isinstance(raw, list):
        parts = raw
    else:
        parts = (raw or "").split(",")
    return [p.strip() for p in parts if p and p.strip()]


def _decode(row: dict) -> dict:
    row["items"] = json.loads(row["items"]) if row.get("items") else []
    return row


def _meal_key(row: dict) -> tuple:
    return (_MEAL_ORDER.get(row["meal_type"], len(_MEAL_ORDER)), row["meal_type"])


def list_menus() -> list[dict]:
    rows = fetch_all("SELECT * FROM mess_menus ORDER BY date DESC, meal_type ASC")
    return [_decode(r) for r in rows]


def menus_for_date(day: str) -> list[dict]:
    rows = [_decode(r) for r in fetch_all("SELECT * FROM mess_menus WHERE date = ?", (day,))]
    return sorted(rows, key=_meal_key)


def menus_for_week(start: date | None = None) -> dict[str, list[dict]]:
    first = start or date.today()
    last = first + timedelta(days=6)
    rows = [
        _decode(r)
        for r in fetch_all(
            "SELECT * FROM mess_menus WHERE date BETWEEN ? AND ? ORDER BY date ASC",
            (first.isoformat(), last.isoformat()),
        )
    ]
    week: dict[str, list[dict]] = {(first + timedelta(days=i)).isoformat(): [] for i in range(7)}
    for r in rows:
        week.setdefault(r["date"], []).append(r)
    for menus in week.values():
        menus.sort(key=_meal_key)
    return week


def create_menu(day: str, meal_type: str, items: str | list, created_by: str) -> dict:
    day = (day or "").strip()
    meal_type = (meal_type or "").strip()
    parsed = parse_items(items)
    if not day or not meal_type or not parsed:
        raise ValidationError("Date, meal type and at least one item are required.")
    try:
        date.fromisoformat(day)
    except ValueError:
        raise ValidationError("Date must be in YYYY-MM-DD format.") from None
    row = insert_row(
        "mess_menus",
        {"date": day, "meal_type": meal_type, "items": json.dumps(parsed), "created_by": created_by},
    )
    return _decode(row)


def delete_menu(menu_id: str) -> None:
    delete_row("mess_menus", menu_id)
