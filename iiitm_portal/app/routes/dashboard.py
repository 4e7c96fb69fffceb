from __future__ import annotations

from flask import Blueprint, flash, redirect, render_template, request, url_for

from ..constants import BUCKET_PROFILE_PICTURES
from ..services import authorization as authz
from ..services.auth_service import current_user, page_required
from ..services.dashboard_service import load_widgets
from ..services.errors import PortalError
from ..services.file_service import IMAGE_TYPES, upload
from ..services.profile_service import (
    EDITABLE_FIELDS,
    PREFERENCE_FIELDS,
    get_notification_preferences,
    get_profile,
    update_notification_preferences,
    update_profile,
)

bp = Blueprint("dashboard", __name__)

AVATAR_MAX_MB = 5


@bp.get("/")
@page_required(authz.PAGE_DASHBOARD)
def index():
    user = current_user()
    try:
        profile = get_profile(user.user_id)
        widgets = load_widgets(user, profile)
    except PortalError as exc:
        flash(exc.message, "danger")
        profile, widgets = None, {}
    return render_template(
        "dashboard.html",
        page_title=f"Welcome, {user.full_name or user.email}",
        page_subtitle=f"{user.role} Dashboard",
        active_page="dashboard",
        profile=profile,
        widgets=widgets,
    )


@bp.get("/profile")
@page_required(authz.PAGE_PROFILE)
def profile():
    user = current_user()
    try:
        profile = get_profile(user.user_id) or {}
        preferences = get_notification_preferences(user.user_id)
    except PortalError as exc:
        flash(exc.message, "danger")
        profile, preferences = {}, {}
    return render_template(
        "profile.html",
        page_title="Profile",
        page_subtitle="Your account details",
        active_page="profile",
        profile=profile,
        preferences=preferences,
        error=None,
    )


@bp.post("/profile")
@page_required(authz.PAGE_PROFILE)
def profile_post():
    user = current_user()
    fields = {k: request.form.get(k) for k in EDITABLE_FIELDS if k in request.form and k != "avatar_url"}
    try:
        update_profile(user.user_id, fields, actor_user_id=user.user_id, actor_role=user.role)
    except PortalError as exc:
        return render_template(
            "profile.html",
            page_title="Profile",
            page_subtitle="Your account details",
            active_page="profile",
            profile={**(get_profile(user.user_id) or {}), **fields},
            preferences=get_notification_preferences(user.user_id),
            error=exc.message,
        )
    flash("Profile updated successfully!", "success")
    return redirect(url_for("dashboard.profile"))


@bp.post("/profile/preferences")
@page_required(authz.PAGE_PROFILE)
def preferences_post():
    user = current_user()
    prefs = {k: request.form.get(k) == "on" for k in PREFERENCE_FIELDS}
    try:
        update_notification_preferences(user.user_id, prefs)
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Notification preferences saved.", "success")
    return redirect(url_for("dashboard.profile"))


@bp.post("/profile/avatar")
@page_required(authz.PAGE_PROFILE)
def avatar_post():
    user = current_user()
    try:
        stored = upload(
            request.files.get("avatar"),
            BUCKET_PROFILE_PICTURES,
            user.user_id,
            max_size_mb=AVATAR_MAX_MB,
            category="avatar",
            allowed_types=IMAGE_TYPES,
        )
        update_profile(user.user_id, {"avatar_url": stored["public_url"]}, actor_user_id=user.user_id, actor_role=user.role)
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Profile picture updated.", "success")
    return redirect(url_for("dashboard.profile"))
