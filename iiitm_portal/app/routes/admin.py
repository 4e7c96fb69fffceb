from __future__ import annotations

from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for

from ..constants import DEPARTMENT_TYPES, ROLES
from ..services import authorization as authz
from ..services.academic_service import (
    create_batch,
    create_department,
    create_section,
    delete_batch,
    delete_department,
    delete_section,
    list_batches,
    list_departments,
    list_sections,
    update_batch,
    update_department,
)
from ..services.auth_service import current_user, get_auth_provider, page_required
from ..services.errors import PortalError
from ..services.file_service import sweep_orphaned_objects
from ..services.health_service import (
    admin_stats,
    check_all_services,
    list_health,
    log_activity,
    recent_activity,
)
from ..services.profile_service import list_faculty, list_profiles, update_profile
from ..services.session_store import create_account

bp = Blueprint("admin", __name__, url_prefix="/admin")


@bp.get("")
@page_required(authz.PAGE_ADMIN)
def dashboard():
    try:
        stats = admin_stats()
        activities = recent_activity(limit=10)
        health = list_health()
    except PortalError as exc:
        flash(exc.message, "danger")
        stats, activities, health = {}, [], []
    return render_template(
        "admin_dashboard.html",
        page_title="Admin Dashboard",
        page_subtitle="Institution overview",
        active_page="admin",
        stats=stats,
        activities=activities,
        health=health,
    )


# ==========================================================
# USERS
# ==========================================================
@bp.get("/users")
@page_required(authz.PAGE_ADMIN_USERS)
def users():
    filters = {
        "q": (request.args.get("q") or "").strip(),
        "role": (request.args.get("role") or "").strip(),
    }
    try:
        rows = list_profiles(role=filters["role"] or None, search=filters["q"] or None)
    except PortalError as exc:
        flash(exc.message, "danger")
        rows = []
    return render_template(
        "admin_users.html",
        page_title="Users",
        page_subtitle="All portal accounts",
        active_page="admin_users",
        users=rows,
        filters=filters,
    )


@bp.post("/users/<user_id>/role")
@page_required(authz.PAGE_ADMIN_USERS, authz.PROFILE_MANAGE_ANY)
def user_role_update(user_id: str):
    user = current_user()
    role = (request.form.get("role") or "").strip()
    try:
        updated = update_profile(user_id, {"role": role}, actor_user_id=user.user_id, actor_role=user.role)
        log_activity(user.user_id, "Role Changed", f"{updated['full_name']} is now {role}", user_id, "profile")
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Role updated.", "success")
    return redirect(url_for("admin.users"))


def _render_user_create(error: str | None = None, form: dict | None = None, status: int = 200):
    try:
        departments = list_departments()
        batches = list_batches()
    except PortalError as exc:
        flash(exc.message, "danger")
        departments, batches = [], []
    return (
        render_template(
            "admin_user_create.html",
            page_title="Add User",
            page_subtitle="Create an account with role-specific details",
            active_page="admin_user_create",
            roles=ROLES,
            departments=departments,
            batches=batches,
            form=form or {},
            error=error,
        ),
        status,
    )


@bp.get("/users/create")
@page_required(authz.PAGE_ADMIN_USER_CREATE)
def user_create():
    return _render_user_create()


@bp.post("/users/create")
@page_required(authz.PAGE_ADMIN_USER_CREATE, authz.USER_CREATE)
def user_create_post():
    fields = ("email", "full_name", "role", "phone", "department", "batch", "roll_number")
    form = {k: (request.form.get(k) or "").strip() for k in fields}
    password = request.form.get("password") or ""
    admin = current_user()
    try:
        account = create_account(
            get_auth_provider(),
            form["email"],
            password,
            form["full_name"],
            form["role"],
            phone=form["phone"] or None,
            department=form["department"] or None,
            batch=form["batch"] or None,
            roll_number=form["roll_number"] or None,
            redirect_to=current_app.config["SITE_URL"],
        )
        log_activity(
            admin.user_id,
            "User Created",
            f"Created {account['role']} account for {account['full_name']}",
            account["user_id"],
            "profile",
        )
    except PortalError as exc:
        return _render_user_create(error=exc.message, form=form)
    flash("User created successfully!", "success")
    return redirect(url_for("admin.users"))


# ==========================================================
# DEPARTMENTS
# ==========================================================
def _render_departments(error: str | None = None):
    dept_type = (request.args.get("type") or "").strip() or None
    try:
        departments = list_departments(dept_type)
        faculty = list_faculty()
    except PortalError as exc:
        error = error or exc.message
        departments, faculty = [], []
    return render_template(
        "admin_departments.html",
        page_title="Manage Departments",
        page_subtitle="Academic and faculty departments",
        active_page="admin_departments",
        departments=departments,
        faculty=faculty,
        department_types=DEPARTMENT_TYPES,
        error=error,
    )


@bp.get("/departments")
@page_required(authz.PAGE_ADMIN_DEPARTMENTS)
def departments():
    return _render_departments()


@bp.post("/departments/new", endpoint="departments_create")
@page_required(authz.PAGE_ADMIN_DEPARTMENTS, authz.DEPARTMENT_MANAGE)
def department_create():
    try:
        dept = create_department(request.form)
        log_activity(current_user().user_id, "Department Created", dept["name"], dept["id"], "department")
    except PortalError as exc:
        return _render_departments(error=exc.message)
    flash("Department created successfully!", "success")
    return redirect(url_for("admin.departments"))


@bp.post("/departments/<department_id>/update")
@page_required(authz.PAGE_ADMIN_DEPARTMENTS, authz.DEPARTMENT_MANAGE)
def department_update(department_id: str):
    try:
        update_department(department_id, request.form)
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Department updated successfully!", "success")
    return redirect(url_for("admin.departments"))


@bp.post("/departments/<department_id>/delete", endpoint="departments_delete")
@page_required(authz.PAGE_ADMIN_DEPARTMENTS, authz.DEPARTMENT_MANAGE)
def department_delete(department_id: str):
    try:
        delete_department(department_id)
        log_activity(current_user().user_id, "Department Deleted", None, department_id, "department")
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Department deleted successfully!", "success")
    return redirect(url_for("admin.departments"))


# ==========================================================
# BATCHES / SECTIONS
# ==========================================================
@bp.get("/batches")
@page_required(authz.PAGE_ADMIN_BATCHES)
def batches():
    try:
        rows = list_batches()
        sections = list_sections()
        depts = list_departments("academic")
    except PortalError as exc:
        flash(exc.message, "danger")
        rows, sections, depts = [], [], []
    by_batch: dict[str, list] = {}
    for s in sections:
        by_batch.setdefault(s["batch_id"], []).append(s)
    return render_template(
        "admin_batches.html",
        page_title="Batch Management",
        page_subtitle="Batches and their sections",
        active_page="admin_batches",
        batches=rows,
        sections=by_batch,
        departments=depts,
    )


@bp.post("/batches/new", endpoint="batches_create")
@page_required(authz.PAGE_ADMIN_BATCHES, authz.BATCH_MANAGE)
def batch_create():
    try:
        create_batch(request.form)
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Batch created successfully!", "success")
    return redirect(url_for("admin.batches"))


@bp.post("/batches/<batch_id>/update")
@page_required(authz.PAGE_ADMIN_BATCHES, authz.BATCH_MANAGE)
def batch_update(batch_id: str):
    try:
        update_batch(batch_id, request.form)
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Batch updated successfully!", "success")
    return redirect(url_for("admin.batches"))


@bp.post("/batches/<batch_id>/delete", endpoint="batches_delete")
@page_required(authz.PAGE_ADMIN_BATCHES, authz.BATCH_MANAGE)
def batch_delete(batch_id: str):
    try:
        delete_batch(batch_id)
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Batch deleted successfully!", "success")
    return redirect(url_for("admin.batches"))


@bp.post("/batches/<batch_id>/sections/new", endpoint="sections_create")
@page_required(authz.PAGE_ADMIN_BATCHES, authz.BATCH_MANAGE)
def section_create(batch_id: str):
    try:
        create_section(request.form.get("name"), batch_id)
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Section added.", "success")
    return redirect(url_for("admin.batches"))


@bp.post("/sections/<section_id>/delete", endpoint="sections_delete")
@page_required(authz.PAGE_ADMIN_BATCHES, authz.BATCH_MANAGE)
def section_delete(section_id: str):
    try:
        delete_section(section_id)
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Section removed.", "success")
    return redirect(url_for("admin.batches"))


# ==========================================================
# BACKEND HEALTH / MAINTENANCE
# ==========================================================
@bp.get("/health")
@page_required(authz.PAGE_ADMIN_HEALTH)
def health():
    try:
        rows = list_health()
    except PortalError as exc:
        flash(exc.message, "danger")
        rows = []
    healthy = sum(1 for r in rows if r["status"] == "active")
    return render_template(
        "admin_health.html",
        page_title="Backend Health",
        page_subtitle="Database, auth and storage status",
        active_page="admin_health",
        health=rows,
        uptime=(healthy / len(rows) * 100) if rows else None,
    )


@bp.post("/health/check")
@page_required(authz.PAGE_ADMIN_HEALTH, authz.HEALTH_CHECK)
def health_check():
    try:
        outcome = check_all_services()
        log_activity(current_user().user_id, "Health Check", f"Uptime {outcome['uptime']:.1f}%")
    except PortalError as exc:
        flash(exc.message, "danger")
        return redirect(url_for("admin.health"))
    if outcome["failed"]:
        flash(f"{len(outcome['failed'])} service(s) are down!", "danger")
    else:
        flash("All services are healthy", "success")
    return redirect(url_for("admin.health"))


@bp.post("/health/sweep-accounts")
@page_required(authz.PAGE_ADMIN_HEALTH, authz.MAINTENANCE_SWEEP)
def sweep_accounts():
    try:
        removed = get_auth_provider().sweep_pending_accounts(current_app.config["PENDING_ACCOUNT_MAX_AGE_MINUTES"])
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash(f"Removed {removed} incomplete account(s).", "success")
    return redirect(url_for("admin.health"))


@bp.post("/health/sweep-orphans")
@page_required(authz.PAGE_ADMIN_HEALTH, authz.MAINTENANCE_SWEEP)
def sweep_orphans():
    try:
        removed = sweep_orphaned_objects()
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash(f"Removed {removed} orphaned file(s).", "success")
    return redirect(url_for("admin.health"))
