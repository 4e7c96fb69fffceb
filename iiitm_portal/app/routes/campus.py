from __future__ import annotations

from datetime import date

from flask import Blueprint, flash, redirect, render_template, request, url_for

from ..constants import COMPLAINT_STATUSES, HOLIDAY_TYPES, ISSUE_TYPES, MEAL_TYPES, ROLE_STUDENT, ROLES
from ..services import authorization as authz
from ..services.announcement_service import create_announcement, delete_announcement, list_announcements
from ..services.auth_service import current_user, page_required
from ..services.errors import PortalError
from ..services.holiday_service import create_holiday, delete_holiday, list_holidays
from ..services.hostel_service import create_complaint, list_complaints, update_complaint_status
from ..services.mess_service import create_menu, delete_menu, list_menus, menus_for_week

bp = Blueprint("campus", __name__)


# ==========================================================
# HOSTEL COMPLAINTS
# ==========================================================
@bp.get("/hostel-complaints")
@page_required(authz.PAGE_HOSTEL_COMPLAINTS)
def complaints():
    user = current_user()
    status = (request.args.get("status") or "all").strip()
    try:
        student_id = user.user_id if user.role == ROLE_STUDENT else None
        rows = list_complaints(student_id=student_id, status=status)
    except PortalError as exc:
        flash(exc.message, "danger")
        rows = []
    return render_template(
        "hostel_complaints.html",
        page_title="Hostel Complaints",
        page_subtitle="Report and track hostel issues",
        active_page="hostel_complaints",
        complaints=rows,
        statuses=COMPLAINT_STATUSES,
        issue_types=ISSUE_TYPES,
        status=status,
    )


@bp.post("/hostel-complaints/new", endpoint="complaints_create")
@page_required(authz.PAGE_HOSTEL_COMPLAINTS, authz.COMPLAINT_CREATE)
def complaint_create():
    try:
        create_complaint(current_user().user_id, request.form)
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Complaint submitted successfully!", "success")
    return redirect(url_for("campus.complaints"))


@bp.post("/hostel-complaints/<complaint_id>/status", endpoint="complaints_update")
@page_required(authz.PAGE_HOSTEL_COMPLAINTS, authz.COMPLAINT_UPDATE_STATUS)
def complaint_update(complaint_id: str):
    remarks = request.form.get("warden_remarks")
    try:
        update_complaint_status(
            complaint_id,
            (request.form.get("status") or "").strip(),
            current_user().role,
            remarks=remarks,
        )
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Complaint status updated successfully!", "success")
    return redirect(url_for("campus.complaints"))


# ==========================================================
# MESS MENU
# ==========================================================
@bp.get("/mess-menu")
@page_required(authz.PAGE_MESS_MENU)
def mess_menu():
    try:
        week = menus_for_week()
        menus = list_menus() if authz.can_access(current_user().role, authz.MESS_MENU_MANAGE) else []
    except PortalError as exc:
        flash(exc.message, "danger")
        week, menus = {}, []
    return render_template(
        "mess_menu.html",
        page_title="Mess Menu",
        page_subtitle="This week's meals",
        active_page="mess_menu",
        week=week,
        menus=menus,
        meal_types=MEAL_TYPES,
        today=date.today().isoformat(),
    )


@bp.post("/mess-menu/new", endpoint="mess_menu_create")
@page_required(authz.PAGE_MESS_MENU, authz.MESS_MENU_MANAGE)
def mess_menu_create():
    try:
        create_menu(
            request.form.get("date"),
            request.form.get("meal_type"),
            request.form.get("items"),
            current_user().user_id,
        )
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Menu item added successfully!", "success")
    return redirect(url_for("campus.mess_menu"))


@bp.post("/mess-menu/<menu_id>/delete", endpoint="mess_menu_delete")
@page_required(authz.PAGE_MESS_MENU, authz.MESS_MENU_MANAGE)
def mess_menu_delete(menu_id: str):
    try:
        delete_menu(menu_id)
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Menu item deleted.", "success")
    return redirect(url_for("campus.mess_menu"))


# ==========================================================
# ANNOUNCEMENTS
# ==========================================================
@bp.get("/announcements")
@page_required(authz.PAGE_ANNOUNCEMENTS)
def announcements():
    try:
        rows = list_announcements(role=current_user().role)
    except PortalError as exc:
        flash(exc.message, "danger")
        rows = []
    return render_template(
        "announcements.html",
        page_title="Announcements",
        page_subtitle="Notices for you",
        active_page="announcements",
        announcements=rows,
        all_roles=ROLES,
    )


@bp.post("/announcements/new", endpoint="announcements_create")
@page_required(authz.PAGE_ANNOUNCEMENTS, authz.ANNOUNCEMENT_CREATE)
def announcement_create():
    try:
        create_announcement(
            request.form.get("title"),
            request.form.get("content"),
            current_user().user_id,
            target_roles=request.form.getlist("target_roles"),
            is_urgent=request.form.get("is_urgent") == "on",
        )
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Announcement published.", "success")
    return redirect(url_for("campus.announcements"))


@bp.post("/announcements/<announcement_id>/delete", endpoint="announcements_delete")
@page_required(authz.PAGE_ANNOUNCEMENTS, authz.ANNOUNCEMENT_DELETE)
def announcement_delete(announcement_id: str):
    try:
        delete_announcement(announcement_id)
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Announcement deleted.", "success")
    return redirect(url_for("campus.announcements"))


# ==========================================================
# HOLIDAYS
# ==========================================================
@bp.get("/holidays")
@page_required(authz.PAGE_HOLIDAYS)
def holidays():
    try:
        rows = list_holidays()
    except PortalError as exc:
        flash(exc.message, "danger")
        rows = []
    today = date.today().isoformat()
    return render_template(
        "holidays.html",
        page_title="Holiday Calendar",
        page_subtitle="Institute holidays",
        active_page="holidays",
        holidays=rows,
        upcoming=[h for h in rows if h["date"] >= today],
        holiday_types=HOLIDAY_TYPES,
    )


@bp.post("/holidays/new", endpoint="holidays_create")
@page_required(authz.PAGE_HOLIDAYS, authz.HOLIDAY_MANAGE)
def holiday_create():
    try:
        create_holiday(request.form.get("name"), request.form.get("date"), request.form.get("type"))
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Holiday added.", "success")
    return redirect(url_for("campus.holidays"))


@bp.post("/holidays/<holiday_id>/delete", endpoint="holidays_delete")
@page_required(authz.PAGE_HOLIDAYS, authz.HOLIDAY_MANAGE)
def holiday_delete(holiday_id: str):
    try:
        delete_holiday(holiday_id)
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Holiday removed.", "success")
    return redirect(url_for("campus.holidays"))
