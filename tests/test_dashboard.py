import io
from datetime import date

import pytest

from iiitm_portal.app.constants import ROLES, ROLE_FACULTY, ROLE_STUDENT
from iiitm_portal.app.routes import dashboard as dashboard_routes
from iiitm_portal.app.services import academic_service, authorization as authz, timetable_service
from iiitm_portal.app.services.dashboard_service import load_widgets, today_day_of_week
from iiitm_portal.app.services.errors import DataAccessError, PermissionDenied, ValidationError
from iiitm_portal.app.services.profile_service import get_profile, update_profile
from iiitm_portal.app.services.session_store import CurrentUser


def test_today_day_of_week_counts_from_sunday():
    assert today_day_of_week(date(2026, 1, 4)) == 0  # Sunday
    assert today_day_of_week(date(2026, 1, 10)) == 6  # Saturday


@pytest.mark.parametrize("role", ROLES)
def test_widgets_match_role(accounts, ctx, role):
    user = CurrentUser(email="x@iiitm.ac.in", role=role, authenticated=True, user_id=accounts[role]["user_id"])
    widgets = load_widgets(user, get_profile(user.user_id))
    assert tuple(widgets) == authz.widgets_for(role)


def test_student_sees_todays_classes(accounts, ctx):
    batch = academic_service.create_batch({"name": "CSE 2023", "year": 2023})
    timetable_service.create_entry(
        {"batch_id": batch["id"], "day_of_week": today_day_of_week(), "time_slot": "09:00-10:00", "subject": "DS"}
    )
    student_id = accounts[ROLE_STUDENT]["user_id"]
    profile = update_profile(student_id, {"batch": "CSE 2023"}, student_id, ROLE_STUDENT)

    user = CurrentUser(role=ROLE_STUDENT, authenticated=True, user_id=student_id)
    [entry] = load_widgets(user, profile)[authz.WIDGET_TODAY_CLASSES]
    assert entry["subject"] == "DS"


def test_profile_edits_are_owner_only(accounts, ctx):
    student_id = accounts[ROLE_STUDENT]["user_id"]
    with pytest.raises(PermissionDenied):
        update_profile(student_id, {"full_name": "Hacked"}, accounts[ROLE_FACULTY]["user_id"], ROLE_FACULTY)

    updated = update_profile(student_id, {"phone": "+91 98765-43210", "role": "Admin"}, student_id, ROLE_STUDENT)
    assert updated["phone"] == "9876543210"
    assert updated["role"] == ROLE_STUDENT

    with pytest.raises(ValidationError):
        update_profile(student_id, {"phone": "12345"}, student_id, ROLE_STUDENT)


def test_profile_page_updates(client, login_as, app):
    user = login_as(ROLE_STUDENT)
    response = client.post("/profile", data={"full_name": "Thoibi Devi", "bio": "CSE student"})
    assert response.status_code == 302
    with app.test_request_context():
        assert get_profile(user["user_id"])["full_name"] == "Thoibi Devi"


def test_avatar_upload_sets_public_url(client, login_as, app):
    user = login_as(ROLE_STUDENT)
    png = (io.BytesIO(b"\x89PNG fake"), "me.png", "image/png")
    response = client.post("/profile/avatar", data={"avatar": png}, content_type="multipart/form-data")
    assert response.status_code == 302
    with app.test_request_context():
        avatar_url = get_profile(user["user_id"])["avatar_url"]
    assert avatar_url.startswith("/storage/public/profile-pictures/")
    assert client.get(avatar_url).status_code == 200


def test_unknown_page_renders_not_found(client):
    assert client.get("/no-such-page").status_code == 404


def test_dashboard_store_error_is_flashed(client, login_as, monkeypatch):
    def broken_profile(user_id):
        raise DataAccessError("Store request failed: database is locked")

    login_as(ROLE_STUDENT)
    monkeypatch.setattr(dashboard_routes, "get_profile", broken_profile)
    response = client.get("/")
    assert response.status_code == 200
    assert b"database is locked" in response.data


def test_profile_store_error_is_flashed(client, login_as, monkeypatch):
    def broken_profile(user_id):
        raise DataAccessError("Store request failed: database is locked")

    login_as(ROLE_STUDENT)
    monkeypatch.setattr(dashboard_routes, "get_profile", broken_profile)
    response = client.get("/profile")
    assert response.status_code == 200
    assert b"database is locked" in response.data
