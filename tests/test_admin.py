import pytest

from iiitm_portal.app.constants import ROLE_ADMIN, ROLE_FACULTY, ROLE_STUDENT
from iiitm_portal.app.routes import admin as admin_routes
from iiitm_portal.app.services import academic_service, health_service
from iiitm_portal.app.services.auth_service import get_auth_provider
from iiitm_portal.app.services.db_service import fetch_scalar
from iiitm_portal.app.services.errors import DataAccessError, NotFoundError, ValidationError
from iiitm_portal.app.services.profile_service import get_profile


def test_department_create_and_delete(client, login_as, app):
    login_as(ROLE_ADMIN)
    response = client.post("/admin/departments/new", data={"name": "Physics", "code": "phy", "type": "academic"})
    assert response.status_code == 302

    page = client.get("/admin/departments")
    assert b"Physics" in page.data

    with app.test_request_context():
        [dept] = academic_service.list_departments()
        assert dept["code"] == "PHY"

    response = client.post(f"/admin/departments/{dept['id']}/delete", follow_redirects=True)
    assert b"Department deleted successfully!" in response.data
    assert b"Physics" not in client.get("/admin/departments").data


def test_department_form_errors_rerender(client, login_as):
    login_as(ROLE_ADMIN)
    response = client.post("/admin/departments/new", data={"name": "", "code": ""})
    assert response.status_code == 200
    assert b"Please fill in all required fields." in response.data


def test_duplicate_department_code_is_rejected(ctx):
    academic_service.create_department({"name": "Physics", "code": "PHY"})
    with pytest.raises(DataAccessError):
        academic_service.create_department({"name": "Physics Again", "code": "PHY"})
    with pytest.raises(ValidationError):
        academic_service.create_department({"name": "Bad", "code": "BAD", "type": "hostel"})


def test_batch_with_sections(ctx):
    dept = academic_service.create_department({"name": "Computer Science", "code": "CSE"})
    batch = academic_service.create_batch({"name": "CSE 2024", "year": "2024", "department_id": dept["id"]})
    academic_service.create_section("A", batch["id"])
    academic_service.create_section("B", batch["id"])

    assert batch["year"] == 2024
    assert [s["name"] for s in academic_service.list_sections(batch["id"])] == ["A", "B"]
    with pytest.raises(ValidationError):
        academic_service.create_batch({"name": "Bad", "year": "soon", "department_id": dept["id"]})


def test_delete_missing_department(ctx):
    with pytest.raises(NotFoundError):
        academic_service.delete_department("missing")


def test_admin_creates_user_without_switching_session(client, login_as, app):
    admin = login_as(ROLE_ADMIN)
    response = client.post(
        "/admin/users/create",
        data={
            "email": "newfaculty@iiitm.ac.in",
            "password": "secret123",
            "full_name": "New Faculty",
            "role": ROLE_FACULTY,
        },
    )
    assert response.status_code == 302
    assert client.get("/admin").status_code == 200

    with app.test_request_context():
        assert fetch_scalar("SELECT COUNT(*) FROM profiles WHERE full_name = ?", ("New Faculty",)) == 1
        assert health_service.recent_activity()[0]["user_id"] == admin["user_id"]


def test_admin_changes_role(client, login_as, accounts, app):
    login_as(ROLE_ADMIN)
    student_id = accounts[ROLE_STUDENT]["user_id"]
    client.post(f"/admin/users/{student_id}/role", data={"role": ROLE_FACULTY})
    with app.test_request_context():
        assert get_profile(student_id)["role"] == ROLE_FACULTY


def test_health_record_is_upserted(ctx):
    health_service.check_service("database")
    health_service.check_service("database")
    [row] = health_service.list_health()
    assert row["service_name"] == "database"
    assert row["status"] == health_service.STATUS_ACTIVE


def test_check_all_services(ctx):
    outcome = health_service.check_all_services()
    assert outcome["failed"] == []
    assert outcome["uptime"] == 100
    assert {r["service_name"] for r in outcome["results"]} == {"database", "auth", "storage"}


def test_failed_check_is_recorded(ctx, monkeypatch):
    def broken():
        raise DataAccessError("Store request failed: disk I/O error")

    monkeypatch.setitem(health_service.SERVICE_CHECKS, "storage", broken)
    outcome = health_service.check_all_services()
    assert outcome["failed"] == ["storage"]
    row = next(r for r in health_service.list_health() if r["service_name"] == "storage")
    assert row["status"] == health_service.STATUS_ERROR
    assert "disk I/O error" in row["error_message"]


def test_unknown_service_is_rejected(ctx):
    with pytest.raises(ValidationError):
        health_service.check_service("mail")


def test_admin_stats_counts_roles(accounts, ctx):
    stats = health_service.admin_stats()
    assert stats["total_users"] == 7
    assert stats["students"] == 1
    assert stats["faculty"] == 1


def test_sweep_routes(client, login_as, app):
    login_as(ROLE_ADMIN)
    with app.test_request_context():
        get_auth_provider().sign_up("pending@iiitm.ac.in", "secret123")
    assert client.post("/admin/health/sweep-accounts").status_code == 302
    assert client.post("/admin/health/sweep-orphans").status_code == 302


def test_user_create_form_survives_store_error(client, login_as, monkeypatch):
    def broken_list(*args, **kwargs):
        raise DataAccessError("Store request failed: no such table")

    login_as(ROLE_ADMIN)
    monkeypatch.setattr(admin_routes, "list_departments", broken_list)
    response = client.get("/admin/users/create")
    assert response.status_code == 200
    assert b"no such table" in response.data
