from __future__ import annotations

import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Sequence

from flask import Flask, current_app, g

from ..config import DB_PATH
from .errors import DataAccessError, NotFoundError, PortalError

logger = logging.getLogger(__name__)


def new_id() -> str:
    return uuid.uuid4().hex


def now_iso(at: datetime | None = None) -> str:
    moment = at or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).replace(tzinfo=None).isoformat(timespec="microseconds")


def connect(db_path: Path | str) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def get_db() -> sqlite3.Connection:
    if "db" not in g:
        g.db = connect(current_app.config.get("DATABASE") or DB_PATH)
    return g.db


def close_db(exception: Exception | None = None) -> None:
    conn = g.pop("db", None)
    if conn is not None:
        conn.close()


def init_app(app: Flask) -> None:
    app.teardown_appcontext(close_db)


def _wrap(exc: sqlite3.Error, sql: str) -> DataAccessError:
    if isinstance(exc, sqlite3.IntegrityError):
        logger.warning("Constraint violation: %s (%s)", exc, sql.split()[0])
        return DataAccessError(f"Constraint violation: {exc}")
    logger.exception("Store request failed: %s", sql.strip().splitlines()[0])
    return DataAccessError(f"Store request failed: {exc}")


def fetch_all(sql: str, params: Sequence[Any] = ()) -> list[dict]:
    try:
        rows = get_db().execute(sql, tuple(params)).fetchall()
    except sqlite3.Error as exc:
        raise _wrap(exc, sql) from exc
    return [dict(r) for r in rows]


def fetch_one(sql: str, params: Sequence[Any] = ()) -> dict | None:
    try:
        row = get_db().execute(sql, tuple(params)).fetchone()
    except sqlite3.Error as exc:
        raise _wrap(exc, sql) from exc
    return dict(row) if row is not None else None


def fetch_scalar(sql: str, params: Sequence[Any] = ()) -> Any:
    try:
        row = get_db().execute(sql, tuple(params)).fetchone()
    except sqlite3.Error as exc:
        raise _wrap(exc, sql) from exc
    return row[0] if row is not None else None


def execute(sql: str, params: Sequence[Any] = ()) -> int:
    db = get_db()
    try:
        cur = db.execute(sql, tuple(params))
        db.commit()
    except sqlite3.Error as exc:
        db.rollback()
        raise _wrap(exc, sql) from exc
    return cur.rowcount


def insert_row(
    table: str,
    fields: dict[str, Any],
    timestamps: Iterable[str] = ("created_at", "updated_at"),
    commit: bool = True,
) -> dict:
    payload = {"id": new_id(), **fields}
    now = now_iso()
    for col in timestamps:
        payload.setdefault(col, now)
    keys = list(payload.keys())
    placeholders = ", ".join(["?"] * len(keys))
    sql = f"INSERT INTO {table} ({', '.join(keys)}) VALUES ({placeholders}) RETURNING *"
    db = get_db()
    try:
        row = db.execute(sql, [payload[k] for k in keys]).fetchone()
        if commit:
            db.commit()
    except sqlite3.Error as exc:
        db.rollback()
        raise _wrap(exc, sql) from exc
    return dict(row)


def update_row(
    table: str,
    row_id: str,
    fields: dict[str, Any],
    key: str = "id",
    touch: bool = True,
    commit: bool = True,
) -> dict:
    payload = dict(fields)
    if touch:
        payload["updated_at"] = now_iso()
    if not payload:
        raise DataAccessError("Nothing to update.")
    assignments = ", ".join(f"{k} = ?" for k in payload)
    sql = f"UPDATE {table} SET {assignments} WHERE {key} = ? RETURNING *"
    db = get_db()
    try:
        row = db.execute(sql, [*payload.values(), row_id]).fetchone()
        if commit:
            db.commit()
    except sqlite3.Error as exc:
        db.rollback()
        raise _wrap(exc, sql) from exc
    if row is None:
        raise NotFoundError(f"No {table} row with {key} = {row_id}.")
    return dict(row)


@contextmanager
def transaction():
    """Group writes made with ``commit=False`` into one commit; any failure rolls all of them back."""
    db = get_db()
    try:
        yield db
        db.commit()
    except sqlite3.Error as exc:
        db.rollback()
        raise _wrap(exc, "COMMIT") from exc
    except PortalError:
        db.rollback()
        raise


def delete_row(table: str, row_id: str, key: str = "id") -> None:
    if execute(f"DELETE FROM {table} WHERE {key} = ?", (row_id,)) == 0:
        raise NotFoundError(f"No {table} row with {key} = {row_id}.")


SCHEMA = """
CREATE TABLE IF NOT EXISTS auth_users (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending',
    email_confirmed_at TEXT,
    confirmation_token TEXT,
    redirect_to TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS auth_sessions (
    token TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    created_at TEXT NOT NULL,
    expires_at TEXT NOT NULL,
    FOREIGN KEY(user_id) REFERENCES auth_users(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS profiles (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL UNIQUE,
    full_name TEXT NOT NULL,
    role TEXT NOT NULL,
    department TEXT,
    batch TEXT,
    phone TEXT,
    roll_number TEXT,
    bio TEXT,
    avatar_url TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS notification_preferences (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL UNIQUE,
    email_notifications INTEGER DEFAULT 1,
    push_notifications INTEGER DEFAULT 1,
    sms_notifications INTEGER DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS departments (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    code TEXT NOT NULL,
    type TEXT NOT NULL DEFAULT 'academic',
    hod_id TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE(code, type)
);

CREATE TABLE IF NOT EXISTS batches (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    year INTEGER NOT NULL,
    department_id TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY(department_id) REFERENCES departments(id) ON DELETE SET NULL
);

CREATE TABLE IF NOT EXISTS sections (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    batch_id TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY(batch_id) REFERENCES batches(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS courses (
    id TEXT PRIMARY KEY,
    code TEXT NOT NULL,
    name TEXT NOT NULL,
    credits INTEGER NOT NULL DEFAULT 3,
    department_id TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY(department_id) REFERENCES departments(id) ON DELETE SET NULL
);

CREATE TABLE IF NOT EXISTS course_assignments (
    id TEXT PRIMARY KEY,
    course_id TEXT NOT NULL,
    faculty_id TEXT NOT NULL,
    batch_id TEXT NOT NULL,
    semester TEXT NOT NULL,
    year INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY(course_id) REFERENCES courses(id) ON DELETE CASCADE,
    FOREIGN KEY(batch_id) REFERENCES batches(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS academic_queries (
    id TEXT PRIMARY KEY,
    query_id TEXT,
    subject TEXT NOT NULL,
    message TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'Open',
    student_id TEXT NOT NULL,
    faculty_id TEXT NOT NULL,
    course_id TEXT,
    parent_id TEXT,
    attachments TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY(parent_id) REFERENCES academic_queries(id) ON DELETE CASCADE,
    FOREIGN KEY(course_id) REFERENCES courses(id) ON DELETE SET NULL
);

CREATE TABLE IF NOT EXISTS hostel_complaints (
    id TEXT PRIMARY KEY,
    student_id TEXT NOT NULL,
    hostel_block TEXT NOT NULL,
    room_number TEXT NOT NULL,
    issue_type TEXT NOT NULL,
    description TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'Pending',
    warden_remarks TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS mess_menus (
    id TEXT PRIMARY KEY,
    date TEXT NOT NULL,
    meal_type TEXT NOT NULL,
    items TEXT NOT NULL,
    created_by TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS timetables (
    id TEXT PRIMARY KEY,
    batch_id TEXT NOT NULL,
    day_of_week INTEGER NOT NULL CHECK (day_of_week BETWEEN 0 AND 6),
    time_slot TEXT NOT NULL,
    subject TEXT NOT NULL,
    faculty_id TEXT,
    room TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY(batch_id) REFERENCES batches(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS announcements (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    is_urgent INTEGER NOT NULL DEFAULT 0,
    target_roles TEXT NOT NULL DEFAULT '[]',
    author_id TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS holidays (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    date TEXT NOT NULL,
    type TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS file_uploads (
    id TEXT PRIMARY KEY,
    filename TEXT NOT NULL,
    original_name TEXT NOT NULL,
    file_path TEXT NOT NULL,
    file_size INTEGER NOT NULL,
    mime_type TEXT NOT NULL,
    bucket_name TEXT NOT NULL,
    uploaded_by TEXT NOT NULL,
    category TEXT,
    related_id TEXT,
    related_type TEXT,
    is_deleted INTEGER NOT NULL DEFAULT 0,
    uploaded_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS reports_config (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT,
    report_type TEXT NOT NULL,
    config TEXT NOT NULL DEFAULT '{}',
    is_active INTEGER NOT NULL DEFAULT 1,
    created_by TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS reports_data (
    id TEXT PRIMARY KEY,
    report_config_id TEXT NOT NULL,
    data TEXT NOT NULL,
    generated_by TEXT NOT NULL,
    generated_at TEXT NOT NULL,
    expires_at TEXT,
    FOREIGN KEY(report_config_id) REFERENCES reports_config(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS report_views (
    id TEXT PRIMARY KEY,
    report_config_id TEXT NOT NULL,
    viewed_by TEXT NOT NULL,
    viewed_at TEXT NOT NULL,
    view_duration INTEGER,
    FOREIGN KEY(report_config_id) REFERENCES reports_config(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS backend_health (
    id TEXT PRIMARY KEY,
    service_name TEXT NOT NULL UNIQUE,
    status TEXT NOT NULL DEFAULT 'active',
    response_time INTEGER,
    error_message TEXT,
    last_check TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS activity_logs (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    action TEXT NOT NULL,
    details TEXT,
    target_id TEXT,
    target_type TEXT,
    created_at TEXT NOT NULL
);
"""


def init_db(db_path: Path | str | None = None) -> None:
    path = db_path or DB_PATH
    db = connect(path)
    try:
        db.executescript(SCHEMA)
        db.commit()
    finally:
        db.close()
    logger.info("Database schema ready at %s", path)
