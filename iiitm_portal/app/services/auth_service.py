from __future__ import annotations

from functools import wraps

from flask import current_app, g, redirect, render_template, request, session, url_for

from .auth_provider import AuthProvider
from .authorization import can_access
from .session_store import CurrentUser, SessionStore

SESSION_TOKEN_KEY = "auth_token"


def get_auth_provider() -> AuthProvider:
    if "auth_provider" not in g:
        g.auth_provider = AuthProvider(
            session_lifetime_hours=current_app.config["SESSION_LIFETIME_HOURS"],
            require_confirmation=current_app.config["AUTH_REQUIRE_EMAIL_CONFIRMATION"],
            hash_method=current_app.config.get("PASSWORD_HASH_METHOD"),
        )
    return g.auth_provider


def get_session_store() -> SessionStore:
    if "session_store" not in g:
        store = SessionStore(get_auth_provider(), token=session.get(SESSION_TOKEN_KEY))
        g.session_store = store.start()
        if store.current_session() is None:
            session.pop(SESSION_TOKEN_KEY, None)
    return g.session_store


def close_session_store(exception: Exception | None = None) -> None:
    store = g.pop("session_store", None)
    if store is not None:
        store.close()


def remember_session(store: SessionStore) -> None:
    token = store.current_session()
    if token:
        session[SESSION_TOKEN_KEY] = token
    else:
        session.pop(SESSION_TOKEN_KEY, None)


def current_user() -> CurrentUser:
    return get_session_store().current_user()


def get_safe_next_url(default_endpoint: str = "dashboard.index") -> str:
    next_url = (request.args.get("next") or request.form.get("next") or "").strip()
    if next_url.startswith("/") and not next_url.startswith("//"):
        return next_url
    return url_for(default_endpoint)


def render_access_denied():
    return (
        render_template(
            "access_denied.html",
            page_title="Access Denied",
            page_subtitle="Restricted access",
        ),
        403,
    )


def page_required(*resources: str):
    """Redirect anonymous users to /auth and show Access Denied unless every resource is allowed."""

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = current_user()
            if not user.authenticated:
                return redirect(url_for("auth.login", next=request.path))
            if not all(can_access(user.role, r) for r in resources):
                return render_access_denied()
            return fn(*args, **kwargs)

        return wrapper

    return decorator
