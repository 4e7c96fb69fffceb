"""Departments, batches, sections, courses and course assignments."""
from __future__ import annotations

from ..constants import DEPARTMENT_TYPES
from .db_service import delete_row, fetch_all, fetch_one, insert_row, update_row
from .errors import NotFoundError, ValidationError


def _required(fields: dict, *names: str) -> None:
    missing = [n for n in names if fields.get(n) in (None, "")]
    if missing:
        raise ValidationError("Please fill in all required fields.")


def _to_int(value, label: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a number.") from None


def _nest(row: dict, name: str, *cols: str) -> dict:
    nested = {c: row.pop(f"{name}_{c}", None) for c in cols}
    row[name] = nested if any(v is not None for v in nested.values()) else None
    return row


# ==========================================================
# DEPARTMENTS
# ==========================================================
def list_departments(dept_type: str | None = None) -> list[dict]:
    sql = """
        SELECT d.*, p.full_name AS hod_full_name
        FROM departments d
        LEFT JOIN profiles p ON p.user_id = d.hod_id
    """
    params: list = []
    if dept_type:
        sql += " WHERE d.type = ?"
        params.append(dept_type)
    sql += " ORDER BY d.name ASC"
    return [_nest(r, "hod", "full_name") for r in fetch_all(sql, params)]


def get_department(department_id: str) -> dict:
    row = fetch_one("SELECT * FROM departments WHERE id = ?", (department_id,))
    if row is None:
        raise NotFoundError("Department not found.")
    return row


def _department_fields(fields: dict) -> dict:
    clean = {
        "name": (fields.get("name") or "").strip(),
        "code": (fields.get("code") or "").strip().upper(),
        "type": (fields.get("type") or "academic").strip().lower(),
        "hod_id": (fields.get("hod_id") or "").strip() or None,
    }
    _required(clean, "name", "code")
    if clean["type"] not in DEPARTMENT_TYPES:
        raise ValidationError("Department type must be academic or faculty.")
    return clean


def create_department(fields: dict) -> dict:
    return insert_row("departments", _department_fields(fields))


def update_department(department_id: str, fields: dict) -> dict:
    return update_row("departments", department_id, _department_fields(fields))


def delete_department(department_id: str) -> None:
    delete_row("departments", department_id)


# ==========================================================
# BATCHES / SECTIONS
# ==========================================================
def list_batches() -> list[dict]:
    rows = fetch_all(
        """
        SELECT b.*, d.name AS department_name, d.code AS department_code
        FROM batches b
        LEFT JOIN departments d ON d.id = b.department_id
        ORDER BY b.year DESC, b.name ASC
        """
    )
    return [_nest(r, "department", "name", "code") for r in rows]


def _batch_fields(fields: dict) -> dict:
    clean = {
        "name": (fields.get("name") or "").strip(),
        "year": fields.get("year"),
        "department_id": (fields.get("department_id") or "").strip() or None,
    }
    _required(clean, "name", "year")
    clean["year"] = _to_int(clean["year"], "Year")
    return clean


def create_batch(fields: dict) -> dict:
    return insert_row("batches", _batch_fields(fields))


def update_batch(batch_id: str, fields: dict) -> dict:
    return update_row("batches", batch_id, _batch_fields(fields))


def delete_batch(batch_id: str) -> None:
    delete_row("batches", batch_id)


def list_sections(batch_id: str | None = None) -> list[dict]:
    if batch_id:
        return fetch_all("SELECT * FROM sections WHERE batch_id = ? ORDER BY name", (batch_id,))
    return fetch_all("SELECT * FROM sections ORDER BY name")


def create_section(name: str, batch_id: str) -> dict:
    name = (name or "").strip()
    if not name or not batch_id:
        raise ValidationError("Section name and batch are required.")
    return insert_row("sections", {"name": name, "batch_id": batch_id})


def delete_section(section_id: str) -> None:
    delete_row("sections", section_id)


# ==========================================================
# COURSES
# ==========================================================
def list_courses() -> list[dict]:
    rows = fetch_all(
        """
        SELECT c.*, d.name AS department_name
        FROM courses c
        LEFT JOIN departments d ON d.id = c.department_id
        ORDER BY c.code ASC
        """
    )
    return [_nest(r, "department", "name") for r in rows]


def _course_fields(fields: dict) -> dict:
    clean = {
        "code": (fields.get("code") or "").strip().upper(),
        "name": (fields.get("name") or "").strip(),
        "credits": fields.get("credits") or 3,
        "department_id": (fields.get("department_id") or "").strip() or None,
    }
    _required(clean, "code", "name")
    clean["credits"] = _to_int(clean["credits"], "Credits")
    return clean


def create_course(fields: dict) -> dict:
    return insert_row("courses", _course_fields(fields))


def update_course(course_id: str, fields: dict) -> dict:
    return update_row("courses", course_id, _course_fields(fields))


def delete_course(course_id: str) -> None:
    delete_row("courses", course_id)


# ==========================================================
# COURSE ASSIGNMENTS
# ==========================================================
def list_course_assignments(faculty_id: str | None = None) -> list[dict]:
    sql = """
        SELECT ca.*,
               c.code AS course_code, c.name AS course_name,
               p.full_name AS faculty_full_name,
               b.name AS batch_name
        FROM course_assignments ca
        LEFT JOIN courses c ON c.id = ca.course_id
        LEFT JOIN profiles p ON p.user_id = ca.faculty_id
        LEFT JOIN batches b ON b.id = ca.batch_id
    """
    params: list = []
    if faculty_id:
        sql += " WHERE ca.faculty_id = ?"
        params.append(faculty_id)
    sql += " ORDER BY ca.year DESC, ca.semester ASC"
    rows = fetch_all(sql, params)
    for r in rows:
        _nest(r, "course", "code", "name")
        _nest(r, "faculty", "full_name")
        _nest(r, "batch", "name")
    return rows


def create_course_assignment(fields: dict) -> dict:
    clean = {
        "course_id": (fields.get("course_id") or "").strip(),
        "faculty_id": (fields.get("faculty_id") or "").strip(),
        "batch_id": (fields.get("batch_id") or "").strip(),
        "semester": (fields.get("semester") or "").strip(),
        "year": fields.get("year"),
    }
    _required(clean, "course_id", "faculty_id", "batch_id", "semester", "year")
    clean["year"] = _to_int(clean["year"], "Year")
    return insert_row("course_assignments", clean)


def delete_course_assignment(assignment_id: str) -> None:
    delete_row("course_assignments", assignment_id)
