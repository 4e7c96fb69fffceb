from __future__ import annotations

from datetime import datetime

from flask import Flask, render_template

from .constants import ROLES
from .logging_config import configure_from_config
from .services import authorization
from .services.auth_service import close_session_store, current_user


def fmt_dt(value, fmt: str = "%d %b %Y, %H:%M") -> str:
    if not value:
        return ""
    try:
        return datetime.fromisoformat(str(value)).strftime(fmt)
    except ValueError:
        return str(value)


def init_extensions(app: Flask) -> None:
    configure_from_config(app.config)

    app.teardown_appcontext(close_session_store)
    app.add_template_filter(fmt_dt, "fmt_dt")

    @app.context_processor
    def inject_user():
        user = current_user()
        return {
            "current_user": user,
            "nav_items": authorization.nav_items_for(user.role),
            "can": lambda resource: authorization.can_access(user.role, resource),
            "roles": ROLES,
        }

    @app.errorhandler(404)
    def not_found(error):
        return (
            render_template("not_found.html", page_title="Page Not Found", page_subtitle="404"),
            404,
        )
