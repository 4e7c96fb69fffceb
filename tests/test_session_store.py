import pytest

from iiitm_portal.app.constants import ROLE_FACULTY, ROLE_STUDENT
from iiitm_portal.app.services import session_store
from iiitm_portal.app.services.auth_provider import STATUS_ACTIVE, STATUS_PENDING, AuthProvider
from iiitm_portal.app.services.auth_service import get_auth_provider
from iiitm_portal.app.services.db_service import execute, fetch_one
from iiitm_portal.app.services.errors import AuthError, DataAccessError, ValidationError
from iiitm_portal.app.services.session_store import ANONYMOUS, SessionStore, create_account

from .conftest import PASSWORD


def test_start_without_token_is_anonymous(ctx):
    store = SessionStore(get_auth_provider()).start()
    assert store.loading is False
    assert store.hydrations == 1
    assert store.current_user() == ANONYMOUS
    assert store.current_session() is None


def test_sign_in_hydrates_through_listener(accounts, ctx):
    store = SessionStore(get_auth_provider()).start()
    user = store.sign_in(accounts[ROLE_STUDENT]["email"], PASSWORD)

    assert store.hydrations == 2
    assert user.authenticated
    assert user.role == ROLE_STUDENT
    assert user.user_id == accounts[ROLE_STUDENT]["user_id"]
    assert store.current_session() is not None


def test_existing_token_restores_identity(accounts, ctx):
    provider = get_auth_provider()
    first = SessionStore(provider).start()
    first.sign_in(accounts[ROLE_FACULTY]["email"], PASSWORD)
    token = first.current_session()
    first.close()

    second = SessionStore(provider, token=token).start()
    assert second.loading is False
    assert second.current_user().role == ROLE_FACULTY


def test_sign_out_resets_to_anonymous(accounts, ctx):
    store = SessionStore(get_auth_provider()).start()
    store.sign_in(accounts[ROLE_STUDENT]["email"], PASSWORD)
    store.sign_out()
    assert store.current_user() == ANONYMOUS
    assert store.current_session() is None


def test_closed_store_stops_listening(accounts, ctx):
    provider = get_auth_provider()
    store = SessionStore(provider).start()
    store.close()
    provider.sign_in(accounts[ROLE_STUDENT]["email"], PASSWORD)
    assert store.current_user() == ANONYMOUS
    assert store.hydrations == 1


def test_expired_session_is_dropped(accounts, ctx):
    provider = get_auth_provider()
    session = provider.sign_in(accounts[ROLE_STUDENT]["email"], PASSWORD)
    execute("UPDATE auth_sessions SET expires_at = ? WHERE token = ?", ("2000-01-01T00:00:00", session.token))

    store = SessionStore(provider, token=session.token).start()
    assert store.current_user() == ANONYMOUS
    assert fetch_one("SELECT token FROM auth_sessions WHERE token = ?", (session.token,)) is None


def test_create_account_activates_after_profile(ctx):
    provider = get_auth_provider()
    account = create_account(provider, "new@iiitm.ac.in", PASSWORD, "New Student", ROLE_STUDENT, batch="CSE 2023")

    assert account["role"] == ROLE_STUDENT
    assert account["email"] == "new@iiitm.ac.in"
    assert provider.get_user(account["user_id"])["status"] == STATUS_ACTIVE


def test_failed_profile_insert_leaves_account_pending(ctx, monkeypatch):
    provider = get_auth_provider()

    def broken_profile(*args, **kwargs):
        raise DataAccessError("Constraint violation")

    monkeypatch.setattr(session_store, "create_profile", broken_profile)
    with pytest.raises(DataAccessError):
        create_account(provider, "half@iiitm.ac.in", PASSWORD, "Half Done", ROLE_STUDENT)

    row = fetch_one("SELECT status FROM auth_users WHERE email = ?", ("half@iiitm.ac.in",))
    assert row["status"] == STATUS_PENDING
    with pytest.raises(AuthError):
        provider.sign_in("half@iiitm.ac.in", PASSWORD)

    execute("UPDATE auth_users SET created_at = ? WHERE email = ?", ("2000-01-01T00:00:00", "half@iiitm.ac.in"))
    assert provider.sweep_pending_accounts(max_age_minutes=60) == 1
    assert fetch_one("SELECT id FROM auth_users WHERE email = ?", ("half@iiitm.ac.in",)) is None


def test_sweep_keeps_fresh_pending_accounts(ctx):
    provider = get_auth_provider()
    provider.sign_up("fresh@iiitm.ac.in", PASSWORD)
    assert provider.sweep_pending_accounts(max_age_minutes=60) == 0


def test_create_account_validates_before_writing(ctx):
    provider = get_auth_provider()
    with pytest.raises(ValidationError):
        create_account(provider, "x@iiitm.ac.in", PASSWORD, "X", "Janitor")
    with pytest.raises(ValidationError):
        create_account(provider, "x@iiitm.ac.in", PASSWORD, "  ", ROLE_STUDENT)
    assert fetch_one("SELECT id FROM auth_users WHERE email = ?", ("x@iiitm.ac.in",)) is None


def test_duplicate_email_is_rejected(accounts, ctx):
    with pytest.raises(AuthError):
        create_account(get_auth_provider(), accounts[ROLE_STUDENT]["email"], PASSWORD, "Again", ROLE_STUDENT)


def test_short_password_is_rejected(ctx):
    with pytest.raises(ValidationError):
        AuthProvider().sign_up("short@iiitm.ac.in", "123")


def test_confirmation_required_blocks_sign_in(ctx):
    provider = AuthProvider(require_confirmation=True, hash_method="pbkdf2:sha256:1000")
    account = create_account(provider, "conf@iiitm.ac.in", PASSWORD, "Confirm Me", ROLE_STUDENT)
    with pytest.raises(AuthError):
        provider.sign_in("conf@iiitm.ac.in", PASSWORD)

    provider.confirm_email(account["confirmation_token"])
    assert provider.sign_in("conf@iiitm.ac.in", PASSWORD).user_id == account["user_id"]


def test_sign_up_route_signs_in(client):
    response = client.post(
        "/auth/sign-up",
        data={
            "email": "route@iiitm.ac.in",
            "password": PASSWORD,
            "full_name": "Route Student",
            "role": ROLE_STUDENT,
        },
    )
    assert response.status_code == 302
    assert client.get("/").status_code == 200
