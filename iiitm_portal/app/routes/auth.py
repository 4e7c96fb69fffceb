from __future__ import annotations

import logging

from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for

from ..constants import ROLES
from ..services.auth_service import (
    current_user,
    get_auth_provider,
    get_safe_next_url,
    get_session_store,
    remember_session,
)
from ..services.errors import PortalError

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__, url_prefix="/auth")


def _render_auth(error: str | None = None, mode: str = "signin", form: dict | None = None, status: int = 200):
    return (
        render_template(
            "auth.html",
            page_title="IIIT Manipur Portal",
            page_subtitle="Sign in to your account",
            error=error,
            mode=mode,
            form=form or {},
            roles=ROLES,
        ),
        status,
    )


@bp.get("")
def login():
    if current_user().authenticated:
        return redirect(url_for("dashboard.index"))
    return _render_auth(mode=request.args.get("mode") or "signin")


@bp.post("/sign-in")
def login_post():
    email = (request.form.get("email") or "").strip()
    password = request.form.get("password") or ""

    store = get_session_store()
    try:
        store.sign_in(email, password)
    except PortalError as exc:
        return _render_auth(error=exc.message, form={"email": email})

    remember_session(store)
    flash("Welcome back!", "success")
    return redirect(get_safe_next_url("dashboard.index"))


@bp.post("/sign-up")
def signup_post():
    form = {k: (request.form.get(k) or "").strip() for k in ("email", "full_name", "role", "phone", "department", "batch")}
    password = request.form.get("password") or ""

    store = get_session_store()
    try:
        account = store.sign_up(
            form["email"],
            password,
            form["full_name"],
            form["role"],
            phone=form["phone"] or None,
            department=form["department"] or None,
            batch=form["batch"] or None,
            redirect_to=current_app.config["SITE_URL"],
        )
    except PortalError as exc:
        return _render_auth(error=exc.message, mode="signup", form=form)

    if current_app.config["AUTH_REQUIRE_EMAIL_CONFIRMATION"]:
        confirm_url = url_for("auth.confirm", token=account["confirmation_token"], _external=True)
        logger.info("Confirmation link for %s: %s", account["email"], confirm_url)
        flash("Account created! Please check your email to verify your account.", "success")
        return redirect(url_for("auth.login"))

    try:
        store.sign_in(form["email"], password)
    except PortalError as exc:
        flash(exc.message, "danger")
        return redirect(url_for("auth.login"))
    remember_session(store)
    flash("Account created successfully!", "success")
    return redirect(url_for("dashboard.index"))


@bp.get("/confirm")
def confirm():
    token = (request.args.get("token") or "").strip()
    try:
        get_auth_provider().confirm_email(token)
    except PortalError as exc:
        flash(exc.message, "danger")
        return redirect(url_for("auth.login"))
    flash("Email confirmed. You can now sign in.", "success")
    return redirect(url_for("auth.login"))


@bp.get("/logout")
def logout():
    store = get_session_store()
    store.sign_out()
    remember_session(store)
    return redirect(url_for("auth.login"))
