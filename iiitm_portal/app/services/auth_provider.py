from __future__ import annotations

import logging
import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from werkzeug.security import check_password_hash, generate_password_hash

from .db_service import execute, fetch_all, fetch_one, fetch_scalar, insert_row, now_iso, update_row
from .errors import AuthError, ValidationError

logger = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"

STATUS_PENDING = "pending"
STATUS_ACTIVE = "active"

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6


@dataclass(frozen=True)
class AuthSession:
    token: str
    user_id: str
    email: str
    expires_at: str


Listener = Callable[[str, "AuthSession | None"], None]


class AuthProvider:
    """Email/password accounts and opaque session tokens.

    Listeners registered with :meth:`on_auth_state_change` are called with
    ``(event, session)`` after every sign-in and sign-out.
    """

    def __init__(
        self,
        session_lifetime_hours: int = 24,
        require_confirmation: bool = False,
        hash_method: str | None = None,
    ):
        self.session_lifetime = timedelta(hours=session_lifetime_hours)
        self.require_confirmation = require_confirmation
        self.hash_method = hash_method
        self._listeners: list[Listener] = []

    def _hash(self, password: str) -> str:
        if self.hash_method:
            return generate_password_hash(password, method=self.hash_method)
        return generate_password_hash(password)

    def on_auth_state_change(self, callback: Listener) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _emit(self, event: str, session: AuthSession | None) -> None:
        for listener in list(self._listeners):
            listener(event, session)

    def sign_up(self, email: str, password: str, redirect_to: str | None = None) -> dict:
        email = (email or "").strip().lower()
        if not EMAIL_RE.match(email):
            raise ValidationError("Please enter a valid email address.")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")

        existing = fetch_one("SELECT id FROM auth_users WHERE email = ?", (email,))
        if existing is not None:
            raise AuthError("User already registered.")

        user = insert_row(
            "auth_users",
            {
                "email": email,
                "password_hash": self._hash(password),
                "status": STATUS_PENDING,
                "confirmation_token": secrets.token_urlsafe(24),
                "redirect_to": redirect_to,
            },
            timestamps=("created_at",),
        )
        logger.info("Auth account created for %s (pending)", email)
        return user

    def activate(self, user_id: str) -> dict:
        return update_row("auth_users", user_id, {"status": STATUS_ACTIVE}, touch=False)

    def delete_user(self, user_id: str) -> None:
        execute("DELETE FROM auth_users WHERE id = ?", (user_id,))

    def confirm_email(self, token: str) -> dict:
        user = fetch_one("SELECT * FROM auth_users WHERE confirmation_token = ?", ((token or "").strip(),))
        if user is None:
            raise AuthError("Invalid or expired confirmation link.")
        return update_row(
            "auth_users",
            user["id"],
            {"email_confirmed_at": now_iso(), "confirmation_token": None},
            touch=False,
        )

    def get_user(self, user_id: str) -> dict | None:
        return fetch_one("SELECT id, email, status, email_confirmed_at, created_at FROM auth_users WHERE id = ?", (user_id,))

    def sign_in(self, email: str, password: str) -> AuthSession:
        email = (email or "").strip().lower()
        if not email or not password:
            raise ValidationError("Please enter email and password.")

        user = fetch_one("SELECT * FROM auth_users WHERE email = ?", (email,))
        if user is None or not check_password_hash(user["password_hash"], password):
            raise AuthError("Invalid login credentials.")
        if user["status"] != STATUS_ACTIVE:
            raise AuthError("Account setup is incomplete. Contact the administrator.")
        if self.require_confirmation and not user["email_confirmed_at"]:
            raise AuthError("Email not confirmed.")

        now = datetime.now(timezone.utc)
        token = secrets.token_urlsafe(32)
        expires_at = now_iso(now + self.session_lifetime)
        execute(
            "INSERT INTO auth_sessions (token, user_id, created_at, expires_at) VALUES (?, ?, ?, ?)",
            (token, user["id"], now_iso(now), expires_at),
        )
        session = AuthSession(token=token, user_id=user["id"], email=user["email"], expires_at=expires_at)
        logger.info("Signed in %s", email)
        self._emit(SIGNED_IN, session)
        return session

    def get_session(self, token: str | None) -> AuthSession | None:
        if not token:
            return None
        row = fetch_one(
            """
            SELECT s.token, s.user_id, s.expires_at, u.email
            FROM auth_sessions s
            JOIN auth_users u ON u.id = s.user_id
            WHERE s.token = ?
            """,
            (token,),
        )
        if row is None:
            return None
        if row["expires_at"] <= now_iso():
            execute("DELETE FROM auth_sessions WHERE token = ?", (token,))
            return None
        return AuthSession(token=row["token"], user_id=row["user_id"], email=row["email"], expires_at=row["expires_at"])

    def sign_out(self, token: str | None) -> None:
        if token:
            execute("DELETE FROM auth_sessions WHERE token = ?", (token,))
        self._emit(SIGNED_OUT, None)

    def sweep_pending_accounts(self, max_age_minutes: int) -> int:
        cutoff = now_iso(datetime.now(timezone.utc) - timedelta(minutes=max_age_minutes))
        stale = fetch_all(
            "SELECT id, email FROM auth_users WHERE status = ? AND created_at < ?",
            (STATUS_PENDING, cutoff),
        )
        for row in stale:
            self.delete_user(row["id"])
            logger.info("Removed pending account %s", row["email"])
        return len(stale)

    def ping(self) -> int:
        return int(fetch_scalar("SELECT COUNT(*) FROM auth_sessions") or 0)
