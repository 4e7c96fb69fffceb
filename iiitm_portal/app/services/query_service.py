"""Academic queries: root rows, single-level replies and the status machine.

Root rows have ``parent_id IS NULL``. Replies carry the root's id as
``parent_id`` and never have replies of their own.
"""
from __future__ import annotations

import json
import logging
import secrets
from collections import defaultdict
from datetime import datetime, timezone

from ..constants import (
    QUERY_OPEN,
    QUERY_REPLIED,
    QUERY_RESOLVED,
    QUERY_RESPONDED,
    QUERY_STATUSES,
    ROLE_FACULTY,
    ROLE_STUDENT,
)
from .db_service import fetch_all, fetch_one, insert_row, transaction, update_row
from .errors import NotFoundError, PermissionDenied, TransitionError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    QUERY_OPEN: {QUERY_REPLIED, QUERY_RESPONDED, QUERY_RESOLVED},
    QUERY_REPLIED: {QUERY_REPLIED, QUERY_RESPONDED, QUERY_RESOLVED},
    QUERY_RESPONDED: {QUERY_REPLIED, QUERY_RESPONDED, QUERY_RESOLVED},
    QUERY_RESOLVED: set(),
}

REPLY_STATUS_BY_ROLE = {
    ROLE_STUDENT: QUERY_REPLIED,
    ROLE_FACULTY: QUERY_RESPONDED,
}

_SELECT = """
    SELECT q.*, sp.full_name AS student_full_name, fp.full_name AS faculty_full_name
    FROM academic_queries q
    LEFT JOIN profiles sp ON sp.user_id = q.student_id
    LEFT JOIN profiles fp ON fp.user_id = q.faculty_id
"""


def check_transition(current: str, target: str) -> None:
    if target not in ALLOWED_TRANSITIONS.get(current, set()):
        raise TransitionError(f"Cannot move a query from {current} to {target}.")


def generate_query_id(now: datetime | None = None) -> str:
    moment = now or datetime.now(timezone.utc)
    return f"AQ{moment.year}-{secrets.randbelow(10**6):06d}"


def _decode(row: dict) -> dict:
    row["attachments"] = json.loads(row["attachments"]) if row.get("attachments") else []
    row["student"] = {"full_name": row.pop("student_full_name", None)}
    row["faculty"] = {"full_name": row.pop("faculty_full_name", None)}
    return row


def _get_root(root_id: str) -> dict:
    row = fetch_one("SELECT * FROM academic_queries WHERE id = ?", (root_id,))
    if row is None:
        raise NotFoundError("Query not found.")
    if row["parent_id"] is not None:
        raise ValidationError("Replies can only be added to the original query.")
    return row


def create_query(
    student_id: str,
    faculty_id: str,
    subject: str,
    message: str,
    course_id: str | None = None,
    attachments: list[str] | None = None,
) -> dict:
    subject = (subject or "").strip()
    message = (message or "").strip()
    if not student_id or not faculty_id or not subject or not message:
        raise ValidationError("Please fill in all required fields.")
    row = insert_row(
        "academic_queries",
        {
            "query_id": generate_query_id(),
            "subject": subject,
            "message": message,
            "student_id": student_id,
            "faculty_id": faculty_id,
            "course_id": course_id or None,
            "parent_id": None,
            "status": QUERY_OPEN,
            "attachments": json.dumps(attachments or []),
        },
    )
    logger.info("Query %s opened by %s", row["query_id"], student_id)
    return _decode({**row, "student_full_name": None, "faculty_full_name": None})


def list_queries(
    student_id: str | None = None,
    faculty_id: str | None = None,
    status: str | None = None,
) -> list[dict]:
    where = ["q.parent_id IS NULL"]
    params: list = []
    if student_id:
        where.append("q.student_id = ?")
        params.append(student_id)
    if faculty_id:
        where.append("q.faculty_id = ?")
        params.append(faculty_id)
    if status and status != "all":
        if status not in QUERY_STATUSES:
            raise ValidationError(f"Unknown status: {status}")
        where.append("q.status = ?")
        params.append(status)
    sql = _SELECT + " WHERE " + " AND ".join(where) + " ORDER BY q.created_at DESC, q.rowid DESC"
    return [_decode(r) for r in fetch_all(sql, params)]


def list_threads(
    student_id: str | None = None,
    faculty_id: str | None = None,
    status: str | None = None,
) -> list[dict]:
    """Roots matching the filters, each with its replies, fetched in one statement."""
    where = ["root.parent_id IS NULL"]
    params: list = []
    if student_id:
        where.append("root.student_id = ?")
        params.append(student_id)
    if faculty_id:
        where.append("root.faculty_id = ?")
        params.append(faculty_id)
    if status and status != "all":
        where.append("root.status = ?")
        params.append(status)
    sql = (
        _SELECT
        + " JOIN academic_queries root ON root.id = COALESCE(q.parent_id, q.id) WHERE "
        + " AND ".join(where)
        + " ORDER BY q.created_at ASC, q.rowid ASC"
    )
    rows = [_decode(r) for r in fetch_all(sql, params)]

    roots = [r for r in rows if r["parent_id"] is None]
    replies = defaultdict(list)
    for r in rows:
        if r["parent_id"] is not None:
            replies[r["parent_id"]].append(r)
    roots.sort(key=lambda r: r["created_at"], reverse=True)
    return [{"query": root, "replies": replies.get(root["id"], [])} for root in roots]


def get_thread(root_id: str) -> dict:
    rows = [
        _decode(r)
        for r in fetch_all(
            _SELECT + " WHERE q.id = ? OR q.parent_id = ? ORDER BY q.created_at ASC, q.rowid ASC",
            (root_id, root_id),
        )
    ]
    root = next((r for r in rows if r["id"] == root_id), None)
    if root is None:
        raise NotFoundError("Query not found.")
    return {"query": root, "replies": [r for r in rows if r["parent_id"] == root_id]}


def _check_participant(root: dict, role: str, user_id: str | None) -> None:
    if user_id is None:
        return
    owner = root["student_id"] if role == ROLE_STUDENT else root["faculty_id"]
    if owner != user_id:
        raise PermissionDenied("You are not a participant in this query.")


def add_reply(root_id: str, author_role: str, message: str, author_id: str | None = None) -> dict:
    target = REPLY_STATUS_BY_ROLE.get(author_role)
    if target is None:
        raise PermissionDenied("Only students and faculty can reply to queries.")
    message = (message or "").strip()
    if not message:
        raise ValidationError("Reply message is required.")

    root = _get_root(root_id)
    _check_participant(root, author_role, author_id)
    check_transition(root["status"], target)

    with transaction():
        reply = insert_row(
            "academic_queries",
            {
                "subject": f"Re: {root['subject']}",
                "message": message,
                "student_id": root["student_id"],
                "faculty_id": root["faculty_id"],
                "course_id": root["course_id"],
                "parent_id": root["id"],
                "status": target,
                "attachments": json.dumps([]),
            },
            commit=False,
        )
        update_row("academic_queries", root["id"], {"status": target}, commit=False)
    return _decode({**reply, "student_full_name": None, "faculty_full_name": None})


def resolve_query(root_id: str, actor_role: str, actor_id: str | None = None) -> dict:
    if actor_role != ROLE_STUDENT:
        raise PermissionDenied("Only the student can mark a query as resolved.")
    root = _get_root(root_id)
    _check_participant(root, actor_role, actor_id)
    check_transition(root["status"], QUERY_RESOLVED)
    logger.info("Query %s resolved", root.get("query_id") or root_id)
    return update_row("academic_queries", root["id"], {"status": QUERY_RESOLVED})
