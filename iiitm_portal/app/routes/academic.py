from __future__ import annotations

from flask import Blueprint, flash, redirect, render_template, request, url_for

from ..constants import DAY_NAMES, QUERY_STATUSES, ROLE_FACULTY, ROLE_STUDENT, TIME_SLOTS
from ..services import authorization as authz
from ..services.academic_service import (
    create_course,
    create_course_assignment,
    delete_course,
    delete_course_assignment,
    list_batches,
    list_course_assignments,
    list_courses,
    list_departments,
)
from ..services.auth_service import current_user, page_required, render_access_denied
from ..services.errors import PortalError
from ..services.profile_service import get_profile, list_faculty
from ..services.query_service import add_reply, create_query, get_thread, list_threads, resolve_query
from ..services.timetable_service import create_entry, delete_entry, list_timetable

bp = Blueprint("academic", __name__)


def _query_scope(user) -> dict:
    if user.role == ROLE_STUDENT:
        return {"student_id": user.user_id}
    if user.role == ROLE_FACULTY:
        return {"faculty_id": user.user_id}
    return {}


# ==========================================================
# ACADEMIC QUERIES
# ==========================================================
@bp.get("/academic-queries")
@page_required(authz.PAGE_ACADEMIC_QUERIES)
def queries():
    user = current_user()
    status = (request.args.get("status") or "all").strip()
    try:
        threads = list_threads(status=status, **_query_scope(user))
        faculty = list_faculty() if user.role == ROLE_STUDENT else []
        courses = list_courses() if user.role == ROLE_STUDENT else []
    except PortalError as exc:
        flash(exc.message, "danger")
        threads, faculty, courses = [], [], []
    return render_template(
        "academic_queries.html",
        page_title="Academic Queries",
        page_subtitle="Ask and answer course questions",
        active_page="academic_queries",
        threads=threads,
        faculty=faculty,
        courses=courses,
        statuses=QUERY_STATUSES,
        status=status,
    )


@bp.post("/academic-queries/new", endpoint="queries_create")
@page_required(authz.PAGE_ACADEMIC_QUERIES, authz.QUERY_CREATE)
def query_create():
    user = current_user()
    try:
        row = create_query(
            user.user_id,
            (request.form.get("faculty_id") or "").strip(),
            request.form.get("subject"),
            request.form.get("message"),
            course_id=(request.form.get("course_id") or "").strip() or None,
        )
    except PortalError as exc:
        flash(exc.message, "danger")
        return redirect(url_for("academic.queries"))
    flash(f"Query {row['query_id']} submitted successfully!", "success")
    return redirect(url_for("academic.queries"))


@bp.get("/academic-queries/<query_id>")
@page_required(authz.PAGE_ACADEMIC_QUERIES)
def query_thread(query_id: str):
    user = current_user()
    try:
        thread = get_thread(query_id)
    except PortalError as exc:
        flash(exc.message, "danger")
        return redirect(url_for("academic.queries"))
    scope = _query_scope(user)
    root = thread["query"]
    if any(root[k] != v for k, v in scope.items()):
        return render_access_denied()
    return render_template(
        "academic_query_thread.html",
        page_title=root["subject"],
        page_subtitle=root.get("query_id") or "Academic query",
        active_page="academic_queries",
        thread=thread,
    )


@bp.post("/academic-queries/<query_id>/reply")
@page_required(authz.PAGE_ACADEMIC_QUERIES, authz.QUERY_REPLY)
def query_reply(query_id: str):
    user = current_user()
    try:
        add_reply(query_id, user.role, request.form.get("message"), author_id=user.user_id)
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Reply sent.", "success")
    return redirect(url_for("academic.query_thread", query_id=query_id))


@bp.post("/academic-queries/<query_id>/resolve")
@page_required(authz.PAGE_ACADEMIC_QUERIES, authz.QUERY_RESOLVE)
def query_resolve(query_id: str):
    user = current_user()
    try:
        resolve_query(query_id, user.role, actor_id=user.user_id)
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Query marked as resolved.", "success")
    return redirect(url_for("academic.query_thread", query_id=query_id))


# ==========================================================
# COURSES / COURSE ASSIGNMENTS
# ==========================================================
@bp.get("/course-assignments")
@page_required(authz.PAGE_COURSE_ASSIGNMENTS)
def course_assignments():
    user = current_user()
    only_mine = user.role == ROLE_FACULTY
    try:
        assignments = list_course_assignments(faculty_id=user.user_id if only_mine else None)
        courses = list_courses()
        faculty = list_faculty()
        batches = list_batches()
        departments = list_departments()
    except PortalError as exc:
        flash(exc.message, "danger")
        assignments, courses, faculty, batches, departments = [], [], [], [], []
    return render_template(
        "course_assignments.html",
        page_title="Course Assignment",
        page_subtitle="Courses, faculty and batches",
        active_page="course_assignments",
        assignments=assignments,
        courses=courses,
        faculty=faculty,
        batches=batches,
        departments=departments,
    )


@bp.post("/course-assignments/new", endpoint="course_assignments_create")
@page_required(authz.PAGE_COURSE_ASSIGNMENTS, authz.COURSE_ASSIGNMENT_MANAGE)
def course_assignment_create():
    try:
        create_course_assignment(request.form)
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Course assigned successfully!", "success")
    return redirect(url_for("academic.course_assignments"))


@bp.post("/course-assignments/<assignment_id>/delete", endpoint="course_assignments_delete")
@page_required(authz.PAGE_COURSE_ASSIGNMENTS, authz.COURSE_ASSIGNMENT_MANAGE)
def course_assignment_delete(assignment_id: str):
    try:
        delete_course_assignment(assignment_id)
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Assignment removed.", "success")
    return redirect(url_for("academic.course_assignments"))


@bp.post("/courses/new", endpoint="courses_create")
@page_required(authz.PAGE_COURSE_ASSIGNMENTS, authz.COURSE_MANAGE)
def course_create():
    try:
        create_course(request.form)
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Course created successfully!", "success")
    return redirect(url_for("academic.course_assignments"))


@bp.post("/courses/<course_id>/delete", endpoint="courses_delete")
@page_required(authz.PAGE_COURSE_ASSIGNMENTS, authz.COURSE_MANAGE)
def course_delete(course_id: str):
    try:
        delete_course(course_id)
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Course deleted.", "success")
    return redirect(url_for("academic.course_assignments"))


# ==========================================================
# TIMETABLE
# ==========================================================
@bp.get("/timetable")
@page_required(authz.PAGE_TIMETABLE)
def timetable():
    user = current_user()
    try:
        batches = list_batches()
        batch_id = (request.args.get("batch_id") or "").strip()
        if not batch_id:
            own = (get_profile(user.user_id) or {}).get("batch")
            match = next((b for b in batches if own and own in (b["id"], b["name"])), None)
            batch_id = (match or (batches[0] if batches else {})).get("id", "")
        entries = list_timetable(batch_id) if batch_id else []
        faculty = list_faculty()
    except PortalError as exc:
        flash(exc.message, "danger")
        batches, batch_id, entries, faculty = [], "", [], []
    by_day: dict[int, list] = {d: [] for d in range(len(DAY_NAMES))}
    for e in entries:
        by_day[e["day_of_week"]].append(e)
    return render_template(
        "timetable.html",
        page_title="Timetable",
        page_subtitle="Weekly class schedule",
        active_page="timetable",
        batches=batches,
        batch_id=batch_id,
        by_day=by_day,
        day_names=DAY_NAMES,
        time_slots=TIME_SLOTS,
        faculty=faculty,
    )


@bp.post("/timetable/new", endpoint="timetable_create")
@page_required(authz.PAGE_TIMETABLE, authz.TIMETABLE_MANAGE)
def timetable_create():
    try:
        entry = create_entry(request.form)
    except PortalError as exc:
        flash(exc.message, "danger")
        return redirect(url_for("academic.timetable", batch_id=request.form.get("batch_id") or None))
    flash("Timetable entry added.", "success")
    return redirect(url_for("academic.timetable", batch_id=entry["batch_id"]))


@bp.post("/timetable/<entry_id>/delete", endpoint="timetable_delete")
@page_required(authz.PAGE_TIMETABLE, authz.TIMETABLE_MANAGE)
def timetable_delete(entry_id: str):
    try:
        delete_entry(entry_id)
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Timetable entry removed.", "success")
    return redirect(url_for("academic.timetable", batch_id=request.form.get("batch_id") or None))
