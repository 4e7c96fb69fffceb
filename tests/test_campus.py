from datetime import date, timedelta

import pytest

from iiitm_portal.app.constants import (
    COMPLAINT_IN_PROGRESS,
    COMPLAINT_PENDING,
    COMPLAINT_RESOLVED,
    ROLE_ADMIN,
    ROLE_FACULTY,
    ROLE_HOSTEL_WARDEN,
    ROLE_MESS_SUPERVISOR,
    ROLE_STUDENT,
)
from iiitm_portal.app.services import (
    academic_service,
    announcement_service,
    holiday_service,
    hostel_service,
    mess_service,
    timetable_service,
)
from iiitm_portal.app.services.errors import PermissionDenied, ValidationError

COMPLAINT = {
    "hostel_block": "BH-2",
    "room_number": "117",
    "issue_type": "Plumbing",
    "description": "Tap leaking",
}


def test_complaint_lifecycle(client, login_as, app):
    student = login_as(ROLE_STUDENT)
    assert client.post("/hostel-complaints/new", data=COMPLAINT).status_code == 302
    with app.test_request_context():
        [complaint] = hostel_service.list_complaints(student_id=student["user_id"])
    assert complaint["status"] == COMPLAINT_PENDING

    # a student cannot move the status
    assert client.post(f"/hostel-complaints/{complaint['id']}/status", data={"status": COMPLAINT_RESOLVED}).status_code == 403

    client.get("/auth/logout")
    login_as(ROLE_HOSTEL_WARDEN)
    client.post(
        f"/hostel-complaints/{complaint['id']}/status",
        data={"status": COMPLAINT_RESOLVED, "warden_remarks": "Plumber visited"},
    )
    with app.test_request_context():
        updated = hostel_service.get_complaint(complaint["id"])
    assert updated["status"] == COMPLAINT_RESOLVED
    assert updated["warden_remarks"] == "Plumber visited"


def test_complaint_status_moves_freely(accounts, ctx):
    complaint = hostel_service.create_complaint(accounts[ROLE_STUDENT]["user_id"], COMPLAINT)
    for status in (COMPLAINT_RESOLVED, COMPLAINT_PENDING, COMPLAINT_IN_PROGRESS):
        hostel_service.update_complaint_status(complaint["id"], status, ROLE_HOSTEL_WARDEN)
    assert hostel_service.count_by_status() == {COMPLAINT_PENDING: 0, COMPLAINT_IN_PROGRESS: 1, COMPLAINT_RESOLVED: 0}

    with pytest.raises(PermissionDenied):
        hostel_service.update_complaint_status(complaint["id"], COMPLAINT_RESOLVED, ROLE_ADMIN)
    with pytest.raises(ValidationError):
        hostel_service.update_complaint_status(complaint["id"], "Closed", ROLE_HOSTEL_WARDEN)


def test_complaint_requires_all_fields(accounts, ctx):
    with pytest.raises(ValidationError):
        hostel_service.create_complaint(accounts[ROLE_STUDENT]["user_id"], {**COMPLAINT, "room_number": " "})


def test_announcement_targeting(accounts, ctx):
    author = accounts[ROLE_FACULTY]["user_id"]
    announcement_service.create_announcement("Everyone", "For all", author)
    announcement_service.create_announcement("Students", "Only students", author, target_roles=[ROLE_STUDENT], is_urgent=True)

    student_titles = [a["title"] for a in announcement_service.list_announcements(role=ROLE_STUDENT)]
    warden_titles = [a["title"] for a in announcement_service.list_announcements(role=ROLE_HOSTEL_WARDEN)]
    assert sorted(student_titles) == ["Everyone", "Students"]
    assert warden_titles == ["Everyone"]

    [latest] = announcement_service.list_announcements(limit=1)
    assert latest["title"] == "Students"
    assert latest["is_urgent"] is True
    assert latest["author"]["full_name"] == f"{ROLE_FACULTY} User"


def test_announcement_rejects_unknown_roles(accounts, ctx):
    with pytest.raises(ValidationError):
        announcement_service.create_announcement("T", "C", accounts[ROLE_ADMIN]["user_id"], target_roles=["Alumni"])


def test_mess_items_keep_their_order(accounts, ctx):
    menu = mess_service.create_menu("2026-01-05", "Lunch", "Rice, Dal ,, Salad", accounts[ROLE_MESS_SUPERVISOR]["user_id"])
    assert menu["items"] == ["Rice", "Dal", "Salad"]


def test_menus_sorted_by_meal(accounts, ctx):
    supervisor = accounts[ROLE_MESS_SUPERVISOR]["user_id"]
    for meal in ("Dinner", "Breakfast", "Lunch"):
        mess_service.create_menu("2026-01-05", meal, "Item", supervisor)
    assert [m["meal_type"] for m in mess_service.menus_for_date("2026-01-05")] == ["Breakfast", "Lunch", "Dinner"]


def test_menus_for_week_has_seven_days(accounts, ctx):
    start = date(2026, 1, 5)
    mess_service.create_menu((start + timedelta(days=2)).isoformat(), "Lunch", "Rice", accounts[ROLE_MESS_SUPERVISOR]["user_id"])
    week = mess_service.menus_for_week(start)
    assert len(week) == 7
    assert [len(v) for v in week.values()] == [0, 0, 1, 0, 0, 0, 0]


def test_menu_validation(accounts, ctx):
    supervisor = accounts[ROLE_MESS_SUPERVISOR]["user_id"]
    with pytest.raises(ValidationError):
        mess_service.create_menu("05/01/2026", "Lunch", "Rice", supervisor)
    with pytest.raises(ValidationError):
        mess_service.create_menu("2026-01-05", "Lunch", " , ", supervisor)


def test_mess_menu_is_supervisor_managed(client, login_as):
    login_as(ROLE_STUDENT)
    response = client.post("/mess-menu/new", data={"date": "2026-01-05", "meal_type": "Lunch", "items": "Rice"})
    assert response.status_code == 403


def test_timetable_day_range(accounts, ctx):
    batch = academic_service.create_batch({"name": "CSE 2023", "year": 2023})
    base = {"batch_id": batch["id"], "time_slot": "09:00-10:00", "subject": "Data Structures"}

    for bad in (-1, 7, "mon"):
        with pytest.raises(ValidationError):
            timetable_service.create_entry({**base, "day_of_week": bad})

    timetable_service.create_entry({**base, "day_of_week": 0, "faculty_id": accounts[ROLE_FACULTY]["user_id"]})
    timetable_service.create_entry({**base, "day_of_week": 6, "time_slot": "10:00-11:00"})
    rows = timetable_service.list_timetable(batch["id"])
    assert [r["day_name"] for r in rows] == ["Sunday", "Saturday"]
    assert rows[0]["faculty"]["full_name"] == f"{ROLE_FACULTY} User"
    assert rows[1]["faculty"] is None
    assert [r["day_of_week"] for r in timetable_service.list_timetable(batch["id"], day_of_week=6)] == [6]


def test_holidays(ctx):
    today = date.today()
    holiday_service.create_holiday("Past", (today - timedelta(days=30)).isoformat(), "National")
    holiday_service.create_holiday("Future", (today + timedelta(days=30)).isoformat(), "Festival")

    assert [h["name"] for h in holiday_service.list_holidays()] == ["Past", "Future"]
    assert [h["name"] for h in holiday_service.list_holidays(upcoming_only=True)] == ["Future"]
    with pytest.raises(ValidationError):
        holiday_service.create_holiday("Party", today.isoformat(), "Birthday")
