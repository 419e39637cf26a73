import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_tracker_test"),
}

DEBUG = False
TESTING = True

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

CORS_ORIGIN = "*"

SESSION_LIFETIME = 3600
SESSION_REGENERATE_INTERVAL = 300
SESSION_COOKIE_NAME = "attendance_session"
SESSION_COOKIE_SECURE = False

RATE_LIMIT_BACKEND = "memory"

LOG_LEVEL = "WARNING"
LOG_FILE = None

ADMIN_NAME = "Test Admin"
ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin12345"
