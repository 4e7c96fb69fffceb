"""Role capability table.

Every role gets one explicit record of the pages it may open, the mutations it
may perform and the widgets its dashboard shows. There is no inheritance
between roles: each record is spelled out in full.
"""
from __future__ import annotations

from dataclasses import dataclass

from ..constants import (
    ROLE_ACADEMIC_SECTION,
    ROLE_ADMIN,
    ROLE_DIRECTOR,
    ROLE_FACULTY,
    ROLE_HOSTEL_WARDEN,
    ROLE_MESS_SUPERVISOR,
    ROLE_STUDENT,
)

# ==========================================================
# PAGES
# ==========================================================
PAGE_DASHBOARD = "/"
PAGE_PROFILE = "/profile"
PAGE_ADMIN = "/admin"
PAGE_ADMIN_USERS = "/admin/users"
PAGE_ADMIN_USER_CREATE = "/admin/users/create"
PAGE_ADMIN_DEPARTMENTS = "/admin/departments"
PAGE_ADMIN_BATCHES = "/admin/batches"
PAGE_ADMIN_HEALTH = "/admin/health"
PAGE_ACADEMIC_QUERIES = "/academic-queries"
PAGE_COURSE_ASSIGNMENTS = "/course-assignments"
PAGE_TIMETABLE = "/timetable"
PAGE_HOSTEL_COMPLAINTS = "/hostel-complaints"
PAGE_MESS_MENU = "/mess-menu"
PAGE_ANNOUNCEMENTS = "/announcements"
PAGE_HOLIDAYS = "/holidays"
PAGE_FILES = "/files"
PAGE_REPORTS = "/reports"

ADMIN_PAGES = (
    PAGE_ADMIN,
    PAGE_ADMIN_USERS,
    PAGE_ADMIN_USER_CREATE,
    PAGE_ADMIN_DEPARTMENTS,
    PAGE_ADMIN_BATCHES,
    PAGE_ADMIN_HEALTH,
)

PROTECTED_PAGES = (
    PAGE_DASHBOARD,
    PAGE_PROFILE,
    *ADMIN_PAGES,
    PAGE_ACADEMIC_QUERIES,
    PAGE_COURSE_ASSIGNMENTS,
    PAGE_TIMETABLE,
    PAGE_HOSTEL_COMPLAINTS,
    PAGE_MESS_MENU,
    PAGE_ANNOUNCEMENTS,
    PAGE_HOLIDAYS,
    PAGE_FILES,
    PAGE_REPORTS,
)

# ==========================================================
# ACTIONS
# ==========================================================
ANNOUNCEMENT_CREATE = "announcement.create"
ANNOUNCEMENT_DELETE = "announcement.delete"
QUERY_CREATE = "query.create"
QUERY_REPLY = "query.reply"
QUERY_RESOLVE = "query.resolve"
COMPLAINT_CREATE = "complaint.create"
COMPLAINT_UPDATE_STATUS = "complaint.update_status"
MESS_MENU_MANAGE = "mess_menu.manage"
TIMETABLE_MANAGE = "timetable.manage"
COURSE_MANAGE = "course.manage"
COURSE_ASSIGNMENT_MANAGE = "course_assignment.manage"
HOLIDAY_MANAGE = "holiday.manage"
DEPARTMENT_MANAGE = "department.manage"
BATCH_MANAGE = "batch.manage"
USER_CREATE = "user.create"
PROFILE_MANAGE_ANY = "profile.manage_any"
HEALTH_CHECK = "health.check"
MAINTENANCE_SWEEP = "maintenance.sweep"
REPORT_MANAGE = "report.manage"

# ==========================================================
# DASHBOARD WIDGETS
# ==========================================================
WIDGET_ADMIN_STATS = "admin_stats"
WIDGET_RECENT_ACTIVITY = "recent_activity"
WIDGET_ANNOUNCEMENTS = "announcements"
WIDGET_TODAY_CLASSES = "today_classes"
WIDGET_MY_COMPLAINTS = "my_complaints"
WIDGET_MY_QUERIES = "my_queries"
WIDGET_MY_COURSES = "my_courses"
WIDGET_PENDING_QUERIES = "pending_queries"
WIDGET_ACADEMIC_COUNTS = "academic_counts"
WIDGET_INSTITUTION_STATS = "institution_stats"
WIDGET_COMPLAINT_SUMMARY = "complaint_summary"
WIDGET_TODAY_MENU = "today_menu"

# Navigation labels, in display order.
NAV_LABELS = (
    (PAGE_DASHBOARD, "Dashboard"),
    (PAGE_PROFILE, "Profile"),
    (PAGE_ADMIN, "Admin Dashboard"),
    (PAGE_ADMIN_USERS, "Users"),
    (PAGE_ADMIN_USER_CREATE, "Add User"),
    (PAGE_ADMIN_DEPARTMENTS, "Manage Departments"),
    (PAGE_ADMIN_BATCHES, "Batch Management"),
    (PAGE_ADMIN_HEALTH, "Backend Health"),
    (PAGE_REPORTS, "Reports & Analytics"),
    (PAGE_COURSE_ASSIGNMENTS, "Course Assignment"),
    (PAGE_ACADEMIC_QUERIES, "Academic Queries"),
    (PAGE_TIMETABLE, "Timetable"),
    (PAGE_HOSTEL_COMPLAINTS, "Hostel Complaints"),
    (PAGE_MESS_MENU, "Mess Menu"),
    (PAGE_HOLIDAYS, "Holiday Calendar"),
    (PAGE_FILES, "File Manager"),
    (PAGE_ANNOUNCEMENTS, "Announcements"),
)


@dataclass(frozen=True)
class RoleCapabilities:
    pages: frozenset[str]
    actions: frozenset[str]
    widgets: tuple[str, ...]


_COMMON_PAGES = (
    PAGE_DASHBOARD,
    PAGE_PROFILE,
    PAGE_ANNOUNCEMENTS,
    PAGE_MESS_MENU,
    PAGE_TIMETABLE,
    PAGE_HOLIDAYS,
    PAGE_FILES,
    PAGE_ACADEMIC_QUERIES,
)


ROLE_CAPABILITIES: dict[str, RoleCapabilities] = {
    ROLE_ADMIN: RoleCapabilities(
        pages=frozenset(
            {
                *_COMMON_PAGES,
                *ADMIN_PAGES,
                PAGE_REPORTS,
                PAGE_COURSE_ASSIGNMENTS,
                PAGE_HOSTEL_COMPLAINTS,
            }
        ),
        actions=frozenset(
            {
                ANNOUNCEMENT_CREATE,
                ANNOUNCEMENT_DELETE,
                HOLIDAY_MANAGE,
                DEPARTMENT_MANAGE,
                BATCH_MANAGE,
                USER_CREATE,
                PROFILE_MANAGE_ANY,
                HEALTH_CHECK,
                MAINTENANCE_SWEEP,
                REPORT_MANAGE,
            }
        ),
        widgets=(WIDGET_ADMIN_STATS, WIDGET_RECENT_ACTIVITY, WIDGET_ANNOUNCEMENTS),
    ),
    ROLE_FACULTY: RoleCapabilities(
        pages=frozenset({*_COMMON_PAGES, PAGE_REPORTS, PAGE_COURSE_ASSIGNMENTS}),
        actions=frozenset({ANNOUNCEMENT_CREATE, ANNOUNCEMENT_DELETE, QUERY_REPLY}),
        widgets=(WIDGET_MY_COURSES, WIDGET_PENDING_QUERIES, WIDGET_ANNOUNCEMENTS),
    ),
    ROLE_STUDENT: RoleCapabilities(
        pages=frozenset({*_COMMON_PAGES, PAGE_HOSTEL_COMPLAINTS}),
        actions=frozenset({QUERY_CREATE, QUERY_REPLY, QUERY_RESOLVE, COMPLAINT_CREATE}),
        widgets=(WIDGET_TODAY_CLASSES, WIDGET_MY_QUERIES, WIDGET_MY_COMPLAINTS, WIDGET_ANNOUNCEMENTS),
    ),
    ROLE_ACADEMIC_SECTION: RoleCapabilities(
        pages=frozenset({*_COMMON_PAGES, PAGE_REPORTS, PAGE_COURSE_ASSIGNMENTS}),
        actions=frozenset({TIMETABLE_MANAGE, COURSE_MANAGE, COURSE_ASSIGNMENT_MANAGE}),
        widgets=(WIDGET_ACADEMIC_COUNTS, WIDGET_ANNOUNCEMENTS),
    ),
    ROLE_DIRECTOR: RoleCapabilities(
        pages=frozenset({*_COMMON_PAGES, PAGE_COURSE_ASSIGNMENTS}),
        actions=frozenset(),
        widgets=(WIDGET_INSTITUTION_STATS, WIDGET_ANNOUNCEMENTS),
    ),
    ROLE_HOSTEL_WARDEN: RoleCapabilities(
        pages=frozenset({*_COMMON_PAGES, PAGE_HOSTEL_COMPLAINTS}),
        actions=frozenset({COMPLAINT_UPDATE_STATUS}),
        widgets=(WIDGET_COMPLAINT_SUMMARY, WIDGET_ANNOUNCEMENTS),
    ),
    ROLE_MESS_SUPERVISOR: RoleCapabilities(
        pages=frozenset(_COMMON_PAGES),
        actions=frozenset({MESS_MENU_MANAGE}),
        widgets=(WIDGET_TODAY_MENU, WIDGET_ANNOUNCEMENTS),
    ),
}


def capabilities_for(role: str | None) -> RoleCapabilities | None:
    return ROLE_CAPABILITIES.get(role or "")


def can_access(role: str | None, resource: str) -> bool:
    """Return True when ``role`` may open the page or perform the action ``resource``."""
    caps = capabilities_for(role)
    if caps is None:
        return False
    return resource in caps.pages or resource in caps.actions


def nav_items_for(role: str | None) -> list[tuple[str, str]]:
    caps = capabilities_for(role)
    if caps is None:
        return []
    return [(path, label) for path, label in NAV_LABELS if path in caps.pages]


def widgets_for(role: str | None) -> tuple[str, ...]:
    caps = capabilities_for(role)
    return caps.widgets if caps else ()
