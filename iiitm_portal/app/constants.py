# ==========================================================
# ROLES (must match 'role' column in profiles)
# ==========================================================
ROLE_ADMIN = "Admin"
ROLE_FACULTY = "Faculty"
ROLE_STUDENT = "Student"
ROLE_ACADEMIC_SECTION = "Academic Section"
ROLE_DIRECTOR = "Director"
ROLE_HOSTEL_WARDEN = "Hostel Warden"
ROLE_MESS_SUPERVISOR = "Mess Supervisor"

ROLES = (
    ROLE_ADMIN,
    ROLE_FACULTY,
    ROLE_STUDENT,
    ROLE_ACADEMIC_SECTION,
    ROLE_DIRECTOR,
    ROLE_HOSTEL_WARDEN,
    ROLE_MESS_SUPERVISOR,
)

# ==========================================================
# ACADEMIC QUERY STATUS
# ==========================================================
QUERY_OPEN = "Open"
QUERY_REPLIED = "Replied"
QUERY_RESPONDED = "Responded"
QUERY_RESOLVED = "Resolved"

QUERY_STATUSES = (QUERY_OPEN, QUERY_REPLIED, QUERY_RESPONDED, QUERY_RESOLVED)

# ==========================================================
# HOSTEL COMPLAINT STATUS
# ==========================================================
COMPLAINT_PENDING = "Pending"
COMPLAINT_IN_PROGRESS = "In Progress"
COMPLAINT_RESOLVED = "Resolved"

COMPLAINT_STATUSES = (COMPLAINT_PENDING, COMPLAINT_IN_PROGRESS, COMPLAINT_RESOLVED)

ISSUE_TYPES = ("Electrical", "Plumbing", "Furniture", "Cleaning", "Internet", "Other")

# ==========================================================
# DEPARTMENTS / MESS / TIMETABLE
# ==========================================================
DEPARTMENT_TYPES = ("academic", "faculty")

MEAL_TYPES = ("Breakfast", "Lunch", "Snacks", "Dinner")

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

TIME_SLOTS = (
    "09:00-10:00",
    "10:00-11:00",
    "11:00-12:00",
    "12:00-13:00",
    "14:00-15:00",
    "15:00-16:00",
    "16:00-17:00",
    "17:00-18:00",
)

HOLIDAY_TYPES = ("National", "Festival", "Institute", "Exam Break")

# ==========================================================
# STORAGE BUCKETS
# ==========================================================
BUCKET_DOCUMENTS = "documents"
BUCKET_IMAGES = "images"
BUCKET_ASSIGNMENTS = "assignments"
BUCKET_PROFILE_PICTURES = "profile-pictures"

BUCKETS = (BUCKET_DOCUMENTS, BUCKET_IMAGES, BUCKET_ASSIGNMENTS, BUCKET_PROFILE_PICTURES)
PUBLIC_BUCKETS = frozenset({BUCKET_IMAGES, BUCKET_PROFILE_PICTURES})

# ==========================================================
# REPORTS / HEALTH
# ==========================================================
REPORT_TYPES = (
    "enrollment_stats",
    "faculty_workload",
    "query_analytics",
    "hostel_analytics",
    "course_assignments",
)

CHART_TYPES = ("bar", "pie", "line")

HEALTH_SERVICES = ("database", "auth", "storage")
