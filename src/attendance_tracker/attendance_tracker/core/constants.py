"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

API_NAME = "Attendance Tracker API"

DEFAULT_SESSION_LIFETIME = 3600
DEFAULT_SESSION_REGENERATE_INTERVAL = 300
DEFAULT_SESSION_COOKIE_NAME = "attendance_session"
RAPID_REQUEST_SECONDS = 1

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
PASSWORD_MIN_LENGTH = 8

MIN_REPORT_YEAR = 2020
MAX_REPORT_YEAR = 2030

RECENT_ACTIVITY_DAYS = 7
RECENT_ATTENDANCE_DAYS = 30
RECENT_ATTENDANCE_LIMIT = 10

# (limit, window seconds) per rate-limited operation
RATE_LIMITS = {
    "login": (5, 60),
    "register": (3, 3600),
    "checkin": (10, 3600),
    "checkout": (10, 3600),
    "update_user": (10, 300),
    "delete_user": (3, 3600),
    "create_department": (10, 3600),
    "update_department": (20, 3600),
    "delete_department": (5, 3600),
}
