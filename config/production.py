import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_tracker"),
}

DEBUG = False

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

CORS_ORIGIN = os.getenv("CORS_ORIGIN", "http://localhost:5173")

SESSION_LIFETIME = int(os.getenv("SESSION_LIFETIME", "3600"))
SESSION_REGENERATE_INTERVAL = int(os.getenv("SESSION_REGENERATE_INTERVAL", "300"))
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "attendance_session")
SESSION_COOKIE_SECURE = bool(int(os.getenv("SESSION_COOKIE_SECURE", "1")))

RATE_LIMIT_BACKEND = os.getenv("RATE_LIMIT_BACKEND", "mysql")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE") or None

ADMIN_NAME = os.getenv("ADMIN_NAME", "Administrator")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "")
