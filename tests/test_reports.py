import pytest

from iiitm_portal.app.constants import COMPLAINT_PENDING, COMPLAINT_RESOLVED, ROLE_ADMIN, ROLE_FACULTY, ROLE_STUDENT
from iiitm_portal.app.services import report_service
from iiitm_portal.app.services.db_service import execute, fetch_scalar
from iiitm_portal.app.services.errors import ValidationError


def test_enrollment_stats_groups_by_department():
    profiles = [{"department": "CSE"}, {"department": "ECE"}, {"department": "CSE"}, {"department": None}]
    assert report_service.enrollment_stats(profiles) == [
        {"department": "CSE", "students": 2},
        {"department": "ECE", "students": 1},
        {"department": "Unassigned", "students": 1},
    ]


def test_faculty_workload_uses_names():
    assignments = [{"faculty_id": "f1"}, {"faculty_id": "f1"}, {"faculty_id": "f2"}]
    assert report_service.faculty_workload(assignments, {"f1": "Dr. Singh"}) == [
        {"faculty": "Dr. Singh", "courses": 2},
        {"faculty": "Unknown", "courses": 1},
    ]


def test_query_analytics_counts_statuses_per_month():
    queries = [
        {"created_at": "2026-01-10T10:00:00", "status": "Open"},
        {"created_at": "2026-01-12T10:00:00", "status": "Resolved"},
        {"created_at": "2026-02-01T10:00:00", "status": "Open"},
    ]
    jan, feb = report_service.query_analytics(queries)
    assert jan["month"] == "Jan"
    assert (jan["open"], jan["resolved"], jan["replied"]) == (1, 1, 0)
    assert feb["month"] == "Feb"
    assert feb["open"] == 1


def test_hostel_analytics_by_issue_type():
    complaints = [
        {"issue_type": "Electrical", "status": COMPLAINT_PENDING},
        {"issue_type": "Electrical", "status": COMPLAINT_RESOLVED},
        {"issue_type": "Plumbing", "status": "In Progress"},
    ]
    assert report_service.hostel_analytics(complaints) == [
        {"type": "Electrical", "total": 2, "pending": 1, "resolved": 1},
        {"type": "Plumbing", "total": 1, "pending": 0, "resolved": 0},
    ]


def test_course_assignment_stats():
    rows = [{"semester": "Odd", "year": 2025}, {"semester": "Odd", "year": 2025}, {"semester": "Even", "year": 2026}]
    assert report_service.course_assignment_stats(rows) == [
        {"semester": "Odd 2025", "assignments": 2},
        {"semester": "Even 2026", "assignments": 1},
    ]


def test_unknown_report_type_generates_nothing(ctx):
    assert report_service.generate("revenue") == []


def test_report_config_validation(accounts, ctx):
    admin = accounts[ROLE_ADMIN]["user_id"]
    with pytest.raises(ValidationError):
        report_service.create_report_config("Revenue", "revenue", admin)
    with pytest.raises(ValidationError):
        report_service.create_report_config("Enrollment", "enrollment_stats", admin, chart_type="radar")

    config = report_service.create_report_config("Enrollment", "enrollment_stats", admin, chart_type="pie")
    assert config["config"] == {"chart_type": "pie"}
    assert config["is_active"] is True


def test_snapshot_is_reused_until_expiry(accounts, ctx):
    admin = accounts[ROLE_ADMIN]["user_id"]
    config = report_service.create_report_config("Enrollment", "enrollment_stats", admin)

    first = report_service.report_data(config, admin)
    assert first == [{"department": "Unassigned", "students": 1}]
    report_service.report_data(config, admin)
    assert fetch_scalar("SELECT COUNT(*) FROM reports_data") == 1

    execute("UPDATE reports_data SET expires_at = ?", ("2000-01-01T00:00:00",))
    report_service.report_data(config, admin)
    assert fetch_scalar("SELECT COUNT(*) FROM reports_data") == 2


def test_load_reports_logs_views(accounts, ctx):
    admin = accounts[ROLE_ADMIN]["user_id"]
    report_service.create_report_config("Workload", "faculty_workload", admin)
    report_service.create_report_config("Hostel", "hostel_analytics", admin)

    reports = report_service.load_reports(accounts[ROLE_FACULTY]["user_id"])
    assert [r["config"]["name"] for r in reports] == ["Hostel", "Workload"]
    assert all(r["data"] == [] and r["columns"] == [] for r in reports)
    assert fetch_scalar("SELECT COUNT(*) FROM report_views") == 2


def test_reports_page_by_role(client, login_as):
    login_as(ROLE_FACULTY)
    assert client.get("/reports").status_code == 200
    assert client.post("/reports/new", data={"name": "X", "report_type": "enrollment_stats"}).status_code == 403

    client.get("/auth/logout")
    login_as(ROLE_STUDENT)
    assert client.get("/reports").status_code == 403
