from __future__ import annotations

from datetime import date

from ..constants import COMPLAINT_PENDING, QUERY_OPEN, QUERY_REPLIED, QUERY_RESOLVED
from . import authorization as authz
from .academic_service import list_course_assignments
from .announcement_service import list_announcements
from .db_service import fetch_one
from .health_service import admin_stats, count_rows, recent_activity
from .hostel_service import count_by_status, list_complaints
from .mess_service import menus_for_date
from .query_service import list_queries
from .session_store import CurrentUser
from .timetable_service import list_timetable


def today_day_of_week(today: date | None = None) -> int:
    """Day index with Sunday as 0."""
    return ((today or date.today()).weekday() + 1) % 7


def _batch_for(profile_batch: str | None) -> dict | None:
    if not profile_batch:
        return None
    return fetch_one("SELECT * FROM batches WHERE id = ? OR name = ?", (profile_batch, profile_batch))


def _today_classes(user: CurrentUser, profile: dict | None) -> list[dict]:
    batch = _batch_for((profile or {}).get("batch"))
    if batch is None:
        return []
    return list_timetable(batch["id"], today_day_of_week())


def _my_queries(user: CurrentUser, profile: dict | None) -> list[dict]:
    return [q for q in list_queries(student_id=user.user_id) if q["status"] != QUERY_RESOLVED]


def _pending_queries(user: CurrentUser, profile: dict | None) -> list[dict]:
    return [q for q in list_queries(faculty_id=user.user_id) if q["status"] in (QUERY_OPEN, QUERY_REPLIED)]


def _my_complaints(user: CurrentUser, profile: dict | None) -> list[dict]:
    return list_complaints(student_id=user.user_id)[:5]


def _my_courses(user: CurrentUser, profile: dict | None) -> list[dict]:
    return list_course_assignments(faculty_id=user.user_id)


def _academic_counts(user: CurrentUser, profile: dict | None) -> dict:
    return {
        "courses": count_rows("courses"),
        "assignments": count_rows("course_assignments"),
        "timetable_entries": count_rows("timetables"),
        "batches": count_rows("batches"),
    }


def _institution_stats(user: CurrentUser, profile: dict | None) -> dict:
    return {**admin_stats(), "courses": count_rows("courses"), "batches": count_rows("batches")}


def _complaint_summary(user: CurrentUser, profile: dict | None) -> dict:
    return {
        "counts": count_by_status(),
        "latest_pending": list_complaints(status=COMPLAINT_PENDING)[:5],
    }


def _today_menu(user: CurrentUser, profile: dict | None) -> list[dict]:
    return menus_for_date(date.today().isoformat())


def _announcements(user: CurrentUser, profile: dict | None) -> list[dict]:
    return list_announcements(role=user.role, limit=5)


def _admin_stats(user: CurrentUser, profile: dict | None) -> dict:
    return admin_stats()


def _recent_activity(user: CurrentUser, profile: dict | None) -> list[dict]:
    return recent_activity(limit=5)


WIDGET_LOADERS = {
    authz.WIDGET_ADMIN_STATS: _admin_stats,
    authz.WIDGET_RECENT_ACTIVITY: _recent_activity,
    authz.WIDGET_ANNOUNCEMENTS: _announcements,
    authz.WIDGET_TODAY_CLASSES: _today_classes,
    authz.WIDGET_MY_COMPLAINTS: _my_complaints,
    authz.WIDGET_MY_QUERIES: _my_queries,
    authz.WIDGET_MY_COURSES: _my_courses,
    authz.WIDGET_PENDING_QUERIES: _pending_queries,
    authz.WIDGET_ACADEMIC_COUNTS: _academic_counts,
    authz.WIDGET_INSTITUTION_STATS: _institution_stats,
    authz.WIDGET_COMPLAINT_SUMMARY: _complaint_summary,
    authz.WIDGET_TODAY_MENU: _today_menu,
}


def load_widgets(user: CurrentUser, profile: dict | None) -> dict:
    """Data for each widget on the role's dashboard, keyed by widget name."""
    return {name: WIDGET_LOADERS[name](user, profile) for name in authz.widgets_for(user.role)}
