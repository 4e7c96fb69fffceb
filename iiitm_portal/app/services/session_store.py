"""Current identity for one client.

The store has a single writer, the auth-state listener it registers on the
provider, and many readers (every view). Two paths hydrate it at start-up: the
listener and the initial session check. They are independent; the ``loading``
flag is cleared by whichever of them finishes last and ``hydrations`` counts
every completed write so the ordering is observable.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from ..constants import ROLES
from .auth_provider import AuthProvider, AuthSession
from .errors import PortalError, ValidationError
from .profile_service import create_profile, get_profile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    email: str = ""
    full_name: str = ""
    role: str = ""
    authenticated: bool = False
    user_id: str | None = None


ANONYMOUS = CurrentUser()


class SessionStore:
    def __init__(self, provider: AuthProvider, token: str | None = None):
        self.provider = provider
        self._initial_token = token
        self._session: AuthSession | None = None
        self._user = ANONYMOUS
        self._in_flight = 0
        self._unsubscribe = None
        self.loading = True
        self.hydrations = 0

    def start(self) -> "SessionStore":
        self._unsubscribe = self.provider.on_auth_state_change(self._on_auth_state_change)
        self._begin()
        try:
            self._apply(self.provider.get_session(self._initial_token))
        finally:
            self._end()
        return self

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def current_user(self) -> CurrentUser:
        return self._user

    def current_session(self) -> str | None:
        return self._session.token if self._session else None

    def _begin(self) -> None:
        self._in_flight += 1

    def _end(self) -> None:
        self._in_flight -= 1
        if self._in_flight <= 0:
            self._in_flight = 0
            self.loading = False

    def _on_auth_state_change(self, event: str, session: AuthSession | None) -> None:
        logger.debug("Auth state change: %s", event)
        self._begin()
        try:
            self._apply(session)
        finally:
            self._end()

    def _apply(self, session: AuthSession | None) -> None:
        self._session = session
        if session is None:
            self._user = ANONYMOUS
        else:
            profile = get_profile(session.user_id) or {}
            self._user = CurrentUser(
                email=session.email,
                full_name=profile.get("full_name") or "",
                role=profile.get("role") or "",
                authenticated=True,
                user_id=session.user_id,
            )
        self.hydrations += 1

    def sign_in(self, email: str, password: str) -> CurrentUser:
        self.provider.sign_in(email, password)
        return self._user

    def sign_out(self) -> None:
        self.provider.sign_out(self.current_session())

    def sign_up(
        self,
        email: str,
        password: str,
        full_name: str,
        role: str,
        phone: str | None = None,
        department: str | None = None,
        batch: str | None = None,
        redirect_to: str | None = None,
    ) -> dict:
        return create_account(
            self.provider,
            email,
            password,
            full_name,
            role,
            phone=phone,
            department=department,
            batch=batch,
            redirect_to=redirect_to,
        )


def create_account(
    provider: AuthProvider,
    email: str,
    password: str,
    full_name: str,
    role: str,
    phone: str | None = None,
    department: str | None = None,
    batch: str | None = None,
    roll_number: str | None = None,
    redirect_to: str | None = None,
) -> dict:
    """Create the auth account, then its profile, then activate the account.

    The account stays ``pending`` (and cannot sign in) until the profile
    insert succeeds; stale pending accounts are removed by
    ``AuthProvider.sweep_pending_accounts``.
    """
    if not (full_name or "").strip() or not role:
        raise ValidationError("Please fill in all required fields.")
    if role not in ROLES:
        raise ValidationError(f"Unknown role: {role}")

    user = provider.sign_up(email, password, redirect_to=redirect_to)
    try:
        profile = create_profile(
            user["id"],
            full_name,
            role,
            department=department,
            batch=batch,
            phone=phone,
            roll_number=roll_number,
        )
    except PortalError:
        logger.error("Profile insert failed for %s; account left pending", user["email"])
        raise
    provider.activate(user["id"])
    return {**profile, "email": user["email"], "confirmation_token": user["confirmation_token"]}
