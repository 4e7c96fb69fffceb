from __future__ import annotations

import json

from ..constants import ROLES
from .db_service import delete_row, fetch_all, insert_row
from .errors import ValidationError


def _decode(row: dict) -> dict:
    row["target_roles"] = json.loads(row["target_roles"]) if row.get("target_roles") else []
    row["is_urgent"] = bool(row.get("is_urgent"))
    row["author"] = {"full_name": row.pop("author_full_name", None)}
    return row


def visible_to(announcement: dict, role: str | None) -> bool:
    """An empty ``target_roles`` list means the announcement is for everyone."""
    targets = announcement.get("target_roles") or []
    return not targets or role in targets


def list_announcements(role: str | None = None, limit: int | None = None) -> list[dict]:
    sql = """
        SELECT a.*, p.full_name AS author_full_name
        FROM announcements a
        LEFT JOIN profiles p ON p.user_id = a.author_id
        ORDER BY a.created_at DESC, a.rowid DESC
    """
    rows = [_decode(r) for r in fetch_all(sql)]
    if role is not None:
        rows = [r for r in rows if visible_to(r, role)]
    return rows[:limit] if limit else rows


def create_announcement(
    title: str,
    content: str,
    author_id: str,
    target_roles: list[str] | None = None,
    is_urgent: bool = False,
) -> dict:
    title = (title or "").strip()
    content = (content or "").strip()
    if not title or not content:
        raise ValidationError("Title and content are required.")
    targets = [r for r in (target_roles or []) if r]
    unknown = [r for r in targets if r not in ROLES]
    if unknown:
        raise ValidationError(f"Unknown role: {unknown[0]}")
    row = insert_row(
        "announcements",
        {
            "title": title,
            "content": content,
            "author_id": author_id,
            "target_roles": json.dumps(targets),
            "is_urgent": 1 if is_urgent else 0,
        },
    )
    return _decode(row)


def delete_announcement(announcement_id: str) -> None:
    delete_row("announcements", announcement_id)
