import argparse
import os
from datetime import date, timedelta
from pathlib import Path

from iiitm_portal.app import create_app
from iiitm_portal.app.constants import (
    BUCKETS,
    ROLE_ACADEMIC_SECTION,
    ROLE_ADMIN,
    ROLE_DIRECTOR,
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
    query_service,
    report_service,
    timetable_service,
)
from iiitm_portal.app.services.auth_service import get_auth_provider
from iiitm_portal.app.services.db_service import init_db
from iiitm_portal.app.services.session_store import create_account

DEMO_ACCOUNTS = (
    ("admin@iiitm.ac.in", "admin123", "Portal Administrator", ROLE_ADMIN, {}),
    ("faculty@iiitm.ac.in", "faculty123", "Dr. Ranjit Singh", ROLE_FACULTY, {"department": "Computer Science"}),
    (
        "student@iiitm.ac.in",
        "student123",
        "Thoibi Devi",
        ROLE_STUDENT,
        {"department": "Computer Science", "batch": "CSE 2023", "roll_number": "23010101"},
    ),
    ("academic@iiitm.ac.in", "academic123", "Academic Section Office", ROLE_ACADEMIC_SECTION, {}),
    ("director@iiitm.ac.in", "director123", "Prof. Director", ROLE_DIRECTOR, {}),
    ("warden@iiitm.ac.in", "warden123", "Hostel Warden", ROLE_HOSTEL_WARDEN, {}),
    ("mess@iiitm.ac.in", "mess123", "Mess Supervisor", ROLE_MESS_SUPERVISOR, {}),
)

REPORTS = (
    ("Student Enrollment", "enrollment_stats", "pie", "Students per department"),
    ("Faculty Workload", "faculty_workload", "bar", "Course assignments per faculty"),
    ("Query Analytics", "query_analytics", "line", "Academic queries over the last 30 days"),
    ("Hostel Analytics", "hostel_analytics", "bar", "Complaints by issue type"),
    ("Course Assignments", "course_assignments", "bar", "Assignments per semester"),
)


def seed(db_path: Path) -> None:
    app = create_app({"DATABASE": str(db_path)})
    init_db(db_path)

    with app.test_request_context():
        provider = get_auth_provider()
        users = {}
        for email, password, name, role, extra in DEMO_ACCOUNTS:
            account = create_account(provider, email, password, name, role, **extra)
            users[role] = account["user_id"]

        cse = academic_service.create_department(
            {"name": "Computer Science", "code": "CSE", "type": "academic", "hod_id": users[ROLE_FACULTY]}
        )
        ece = academic_service.create_department({"name": "Electronics and Communication", "code": "ECE"})
        batch = academic_service.create_batch({"name": "CSE 2023", "year": 2023, "department_id": cse["id"]})
        academic_service.create_batch({"name": "ECE 2023", "year": 2023, "department_id": ece["id"]})
        academic_service.create_section("A", batch["id"])
        academic_service.create_section("B", batch["id"])

        courses = [
            academic_service.create_course({"code": "CS201", "name": "Data Structures", "credits": 4, "department_id": cse["id"]}),
            academic_service.create_course({"code": "CS202", "name": "Operating Systems", "credits": 3, "department_id": cse["id"]}),
        ]
        for course in courses:
            academic_service.create_course_assignment(
                {
                    "course_id": course["id"],
                    "faculty_id": users[ROLE_FACULTY],
                    "batch_id": batch["id"],
                    "semester": "Odd",
                    "year": 2025,
                }
            )

        for day in range(1, 6):
            timetable_service.create_entry(
                {
                    "batch_id": batch["id"],
                    "day_of_week": day,
                    "time_slot": "09:00-10:00",
                    "subject": courses[day % 2]["name"],
                    "faculty_id": users[ROLE_FACULTY],
                    "room": "LH-1",
                }
            )

        today = date.today()
        for offset in range(3):
            day = (today + timedelta(days=offset)).isoformat()
            mess_service.create_menu(day, "Breakfast", "Poha, Tea, Banana", users[ROLE_MESS_SUPERVISOR])
            mess_service.create_menu(day, "Lunch", "Rice, Dal, Aloo Fry, Salad", users[ROLE_MESS_SUPERVISOR])
            mess_service.create_menu(day, "Dinner", "Roti, Paneer, Rice", users[ROLE_MESS_SUPERVISOR])

        announcement_service.create_announcement(
            "Welcome to the new semester",
            "Classes begin on Monday. Check your timetable.",
            users[ROLE_ADMIN],
        )
        announcement_service.create_announcement(
            "Mid-term schedule",
            "Mid-term examinations start next month.",
            users[ROLE_FACULTY],
            target_roles=[ROLE_STUDENT, ROLE_FACULTY],
            is_urgent=True,
        )

        holiday_service.create_holiday("Republic Day", f"{today.year + 1}-01-26", "National")
        holiday_service.create_holiday("Yaoshang", f"{today.year + 1}-03-14", "Festival")

        hostel_service.create_complaint(
            users[ROLE_STUDENT],
            {"hostel_block": "BH-1", "room_number": "204", "issue_type": "Electrical", "description": "Fan not working"},
        )
        query = query_service.create_query(
            users[ROLE_STUDENT],
            users[ROLE_FACULTY],
            "Assignment 2 deadline",
            "Can the deadline for assignment 2 be extended?",
            course_id=courses[0]["id"],
        )
        query_service.add_reply(query["id"], ROLE_FACULTY, "Yes, by one week.")

        for name, report_type, chart, description in REPORTS:
            report_service.create_report_config(name, report_type, users[ROLE_ADMIN], description, chart)

    storage_dir = Path(app.config["STORAGE_DIR"])
    for bucket in BUCKETS:
        (storage_dir / bucket).mkdir(parents=True, exist_ok=True)


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate a fresh demo portal database")
    parser.add_argument(
        "--db",
        default=str(Path(__file__).with_name("iiitm_portal.db")),
        help="Path to sqlite db file (default: ./iiitm_portal.db)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite existing db file if it exists",
    )
    args = parser.parse_args()

    db_path = Path(args.db).resolve()
    if db_path.exists():
        if not args.force:
            raise SystemExit(f"DB already exists at {db_path}. Re-run with --force to overwrite.")
        os.remove(db_path)

    seed(db_path)
    print(f"Demo database created at: {db_path}")
    print("Login credentials:")
    for email, password, _, role, _ in DEMO_ACCOUNTS:
        print(f"- {role}: {email} / {password}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
