from __future__ import annotations

import re

from ..constants import ROLE_ADMIN, ROLE_FACULTY, ROLES
from .db_service import fetch_all, fetch_one, insert_row, update_row
from .errors import NotFoundError, PermissionDenied, ValidationError

EDITABLE_FIELDS = ("full_name", "department", "batch", "phone", "roll_number", "bio", "avatar_url")
PREFERENCE_FIELDS = ("email_notifications", "push_notifications", "sms_notifications")


def _clean_phone(phone: str | None) -> str | None:
    digits = re.sub(r"\D+", "", phone or "")
    if not digits:
        return None
    if not re.fullmatch(r"\d{10}", digits[-10:]):
        raise ValidationError("Please enter a valid 10-digit phone number.")
    return digits[-10:]


def get_profile(user_id: str) -> dict | None:
    return fetch_one("SELECT * FROM profiles WHERE user_id = ?", (user_id,))


def list_profiles(role: str | None = None, search: str | None = None) -> list[dict]:
    where = []
    params: list = []
    if role:
        where.append("p.role = ?")
        params.append(role)
    if search:
        where.append("(p.full_name LIKE ? OR p.role LIKE ? OR p.department LIKE ? OR u.email LIKE ?)")
        like = f"%{search.strip()}%"
        params.extend([like, like, like, like])
    sql = "SELECT p.*, u.email AS email FROM profiles p LEFT JOIN auth_users u ON u.id = p.user_id"
    if where:
        sql += " WHERE " + " AND ".join(where)
    sql += " ORDER BY p.created_at DESC"
    return fetch_all(sql, params)


def list_faculty() -> list[dict]:
    return fetch_all(
        "SELECT user_id, full_name FROM profiles WHERE role = ? ORDER BY full_name",
        (ROLE_FACULTY,),
    )


def create_profile(
    user_id: str,
    full_name: str,
    role: str,
    department: str | None = None,
    batch: str | None = None,
    phone: str | None = None,
    roll_number: str | None = None,
) -> dict:
    full_name = (full_name or "").strip()
    if not full_name or not role:
        raise ValidationError("Please fill in all required fields.")
    if role not in ROLES:
        raise ValidationError(f"Unknown role: {role}")
    return insert_row(
        "profiles",
        {
            "user_id": user_id,
            "full_name": full_name,
            "role": role,
            "department": (department or "").strip() or None,
            "batch": (batch or "").strip() or None,
            "phone": _clean_phone(phone),
            "roll_number": (roll_number or "").strip() or None,
        },
    )


def update_profile(user_id: str, fields: dict, actor_user_id: str, actor_role: str) -> dict:
    """Profiles are mutated by their owner or by an Admin; only an Admin may change a role."""
    if actor_user_id != user_id and actor_role != ROLE_ADMIN:
        raise PermissionDenied("You can only edit your own profile.")

    allowed = list(EDITABLE_FIELDS)
    if actor_role == ROLE_ADMIN:
        allowed.append("role")
    changes = {k: v for k, v in fields.items() if k in allowed}
    if "full_name" in changes and not (changes["full_name"] or "").strip():
        raise ValidationError("Full name is required.")
    if "role" in changes and changes["role"] not in ROLES:
        raise ValidationError(f"Unknown role: {changes['role']}")
    if "phone" in changes:
        changes["phone"] = _clean_phone(changes["phone"])
    if not changes:
        raise ValidationError("Nothing to update.")
    return update_row("profiles", user_id, changes, key="user_id")


def get_notification_preferences(user_id: str) -> dict:
    row = fetch_one("SELECT * FROM notification_preferences WHERE user_id = ?", (user_id,))
    if row is None:
        return {"user_id": user_id, "email_notifications": 1, "push_notifications": 1, "sms_notifications": 0}
    return row


def update_notification_preferences(user_id: str, prefs: dict) -> dict:
    values = {k: 1 if prefs.get(k) else 0 for k in PREFERENCE_FIELDS}
    try:
        return update_row("notification_preferences", user_id, values, key="user_id")
    except NotFoundError:
        return insert_row("notification_preferences", {"user_id": user_id, **values})
