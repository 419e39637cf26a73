from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User role used for authorization."""

    ADMIN = "admin"
    EMPLOYEE = "employee"


class AttendanceStatus(str, Enum):
    """Derived state of one attendance row."""

    COMPLETE = "complete"
    CHECKED_IN = "checked_in"
    ABSENT = "absent"


class ActivityStatus(str, Enum):
    """How recently a user has attended, shown in the admin user list."""

    PRESENT = "present"
    RECENT = "recent"
    INACTIVE = "inactive"


class UserListStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Action(str, Enum):
    """Audit actions written to activity_logs."""

    LOGIN = "LOGIN"
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGOUT = "LOGOUT"
    REGISTER = "REGISTER"
    SESSION_CHECK = "SESSION_CHECK"
    IP_CHANGE = "IP_CHANGE"
    RAPID_REQUESTS = "RAPID_REQUESTS"
    UNAUTHORIZED_ACCESS = "UNAUTHORIZED_ACCESS"
    FORBIDDEN_RESOURCE_ACCESS = "FORBIDDEN_RESOURCE_ACCESS"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    PRIVILEGE_ESCALATION_ATTEMPT = "PRIVILEGE_ESCALATION_ATTEMPT"
    CHECK_IN = "CHECK_IN"
    CHECK_OUT = "CHECK_OUT"
    VIEW_SELF_ATTENDANCE = "VIEW_SELF_ATTENDANCE"
    VIEW_ALL_ATTENDANCE = "VIEW_ALL_ATTENDANCE"
    VIEW_ALL_USERS = "VIEW_ALL_USERS"
    VIEW_USER_PROFILE = "VIEW_USER_PROFILE"
    USER_UPDATE = "USER_UPDATE"
    USER_DELETE = "USER_DELETE"
    VIEW_DEPARTMENTS = "VIEW_DEPARTMENTS"
    DEPARTMENT_CREATE = "DEPARTMENT_CREATE"
    DEPARTMENT_UPDATE = "DEPARTMENT_UPDATE"
    DEPARTMENT_DELETE = "DEPARTMENT_DELETE"
