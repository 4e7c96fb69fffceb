from __future__ import annotations

from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for

from ..constants import CHART_TYPES, REPORT_TYPES
from ..services import authorization as authz
from ..services.auth_service import current_user, page_required
from ..services.errors import PortalError
from ..services.report_service import create_report_config, load_reports

bp = Blueprint("reports", __name__)


@bp.get("/reports")
@page_required(authz.PAGE_REPORTS)
def index():
    user = current_user()
    try:
        reports = load_reports(user.user_id, current_app.config["REPORT_TTL_MINUTES"])
    except PortalError as exc:
        flash(exc.message, "danger")
        reports = []
    return render_template(
        "reports.html",
        page_title="Reports & Analytics",
        page_subtitle="Institution metrics",
        active_page="reports",
        reports=reports,
        total_points=sum(len(r["data"]) for r in reports),
        report_types=REPORT_TYPES,
        chart_types=CHART_TYPES,
    )


@bp.post("/reports/new", endpoint="reports_create")
@page_required(authz.PAGE_REPORTS, authz.REPORT_MANAGE)
def report_create():
    try:
        create_report_config(
            request.form.get("name"),
            (request.form.get("report_type") or "").strip(),
            current_user().user_id,
            description=request.form.get("description"),
            chart_type=(request.form.get("chart_type") or "bar").strip(),
        )
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("Report created.", "success")
    return redirect(url_for("reports.index"))
