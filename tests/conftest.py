import pytest

from iiitm_portal.app import create_app
from iiitm_portal.app.constants import (
    ROLE_ACADEMIC_SECTION,
    ROLE_ADMIN,
    ROLE_DIRECTOR,
    ROLE_FACULTY,
    ROLE_HOSTEL_WARDEN,
    ROLE_MESS_SUPERVISOR,
    ROLE_STUDENT,
)
from iiitm_portal.app.services.auth_service import get_auth_provider
from iiitm_portal.app.services.db_service import init_db
from iiitm_portal.app.services.session_store import create_account

PASSWORD = "secret123"

ROLE_EMAILS = {
    ROLE_ADMIN: "admin@iiitm.ac.in",
    ROLE_FACULTY: "faculty@iiitm.ac.in",
    ROLE_STUDENT: "student@iiitm.ac.in",
    ROLE_ACADEMIC_SECTION: "academic@iiitm.ac.in",
    ROLE_DIRECTOR: "director@iiitm.ac.in",
    ROLE_HOSTEL_WARDEN: "warden@iiitm.ac.in",
    ROLE_MESS_SUPERVISOR: "mess@iiitm.ac.in",
}


@pytest.fixture
def app(tmp_path):
    db_path = tmp_path / "portal.db"
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret-key",
            "DATABASE": str(db_path),
            "STORAGE_DIR": str(tmp_path / "storage"),
            "LOG_DIR": None,
            "AUTH_REQUIRE_EMAIL_CONFIRMATION": False,
            "PASSWORD_HASH_METHOD": "pbkdf2:sha256:1000",
            "MAX_UPLOAD_MB": 1,
        }
    )
    init_db(db_path)
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def accounts(app):
    """One active account per role, keyed by role."""
    created = {}
    with app.app_context():
        provider = get_auth_provider()
        for role, email in ROLE_EMAILS.items():
            account = create_account(provider, email, PASSWORD, f"{role} User", role)
            created[role] = {"email": email, "password": PASSWORD, "user_id": account["user_id"]}
    return created


@pytest.fixture
def ctx(app):
    """A request context for calling services directly."""
    with app.test_request_context():
        yield


def login(client, email, password=PASSWORD):
    return client.post("/auth/sign-in", data={"email": email, "password": password})


@pytest.fixture
def login_as(client, accounts):
    def _login(role):
        response = login(client, accounts[role]["email"])
        assert response.status_code == 302
        return accounts[role]

    return _login
