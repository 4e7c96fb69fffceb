import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


BASE_DIR = Path(__file__).resolve().parents[2]

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_PATH = Path(os.getenv("DATABASE", str(BASE_DIR / "iiitm_portal.db")))

STORAGE_DIR = Path(os.getenv("STORAGE_DIR", str(BASE_DIR / "storage")))
LOG_DIR = Path(os.getenv("LOG_DIR", str(BASE_DIR / "logs")))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
CONSOLE_LOG_LEVEL = os.getenv("CONSOLE_LOG_LEVEL")
FILE_LOG_LEVEL = os.getenv("FILE_LOG_LEVEL")

SITE_URL = os.getenv("SITE_URL", "http://localhost:8000")

SESSION_LIFETIME_HOURS = int(os.getenv("SESSION_LIFETIME_HOURS", "24"))
SIGNED_URL_EXPIRY = int(os.getenv("SIGNED_URL_EXPIRY", "3600"))
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "10"))
REPORT_TTL_MINUTES = int(os.getenv("REPORT_TTL_MINUTES", "15"))
PENDING_ACCOUNT_MAX_AGE_MINUTES = int(os.getenv("PENDING_ACCOUNT_MAX_AGE_MINUTES", "60"))
AUTH_REQUIRE_EMAIL_CONFIRMATION = os.getenv("AUTH_REQUIRE_EMAIL_CONFIRMATION", "false").lower() == "true"
PASSWORD_HASH_METHOD = os.getenv("PASSWORD_HASH_METHOD") or None


def as_mapping() -> dict:
    return {
        "SECRET_KEY": SECRET_KEY,
        "DATABASE": str(DB_PATH),
        "STORAGE_DIR": str(STORAGE_DIR),
        "LOG_DIR": str(LOG_DIR),
        "LOG_LEVEL": LOG_LEVEL,
        "CONSOLE_LOG_LEVEL": CONSOLE_LOG_LEVEL,
        "FILE_LOG_LEVEL": FILE_LOG_LEVEL,
        "SITE_URL": SITE_URL,
        "SESSION_LIFETIME_HOURS": SESSION_LIFETIME_HOURS,
        "SIGNED_URL_EXPIRY": SIGNED_URL_EXPIRY,
        "MAX_UPLOAD_MB": MAX_UPLOAD_MB,
        "REPORT_TTL_MINUTES": REPORT_TTL_MINUTES,
        "PENDING_ACCOUNT_MAX_AGE_MINUTES": PENDING_ACCOUNT_MAX_AGE_MINUTES,
        "AUTH_REQUIRE_EMAIL_CONFIRMATION": AUTH_REQUIRE_EMAIL_CONFIRMATION,
        "PASSWORD_HASH_METHOD": PASSWORD_HASH_METHOD,
        # Global request cap; the per-file limit is enforced by the file helper.
        "MAX_CONTENT_LENGTH": 64 * 1024 * 1024,
    }
