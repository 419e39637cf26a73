from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from .activity.mysql_activity_repository import MySQLActivityRepository
from .activity.repository import ActivityRepository
from .activity.service import ActivityLogger
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .auth.middleware import AuthGuard
from .auth.mysql_session_repository import MySQLSessionRepository
from .auth.repository import SessionRepository
from .auth.service import AuthService
from .auth.session import SessionManager
from .common.datetime_utils import now_local
from .core.constants import (
    DEFAULT_SESSION_LIFETIME,
    DEFAULT_SESSION_REGENERATE_INTERVAL,
)
from .database.connection import DBConfig, DatabaseConnection
from .departments.mysql_department_repository import MySQLDepartmentRepository
from .departments.repository import DepartmentRepository
from .departments.service import DepartmentService
from .ratelimit.limiter import RateLimiter
from .ratelimit.store import InMemoryRateLimitStore, MySQLRateLimitStore, RateLimitStore
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import UserService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    users_repo: UserRepository
    departments_repo: DepartmentRepository
    attendance_repo: AttendanceRepository
    sessions_repo: SessionRepository
    activity_repo: ActivityRepository
    rate_limit_store: RateLimitStore

    activity: ActivityLogger
    rate_limiter: RateLimiter
    session_manager: SessionManager
    auth_guard: AuthGuard

    auth_service: AuthService
    user_service: UserService
    department_service: DepartmentService
    attendance_service: AttendanceService

    clock: Callable[[], datetime] = field(default=now_local)


def wire(
    *,
    conn: Optional[DatabaseConnection],
    users_repo: UserRepository,
    departments_repo: DepartmentRepository,
    attendance_repo: AttendanceRepository,
    sessions_repo: SessionRepository,
    activity_repo: ActivityRepository,
    rate_limit_store: RateLimitStore,
    settings=None,
    clock: Optional[Callable[[], datetime]] = None,
) -> Container:
    """Build services on top of the given repositories."""
    clock = clock or now_local

    activity = ActivityLogger(activity_repo, debug=bool(getattr(settings, "DEBUG", False)))
    rate_limiter = RateLimiter(rate_limit_store, clock=lambda: clock().timestamp())
    session_manager = SessionManager(
        sessions_repo,
        lifetime=int(getattr(settings, "SESSION_LIFETIME", DEFAULT_SESSION_LIFETIME)),
        regenerate_interval=int(getattr(settings, "SESSION_REGENERATE_INTERVAL", DEFAULT_SESSION_REGENERATE_INTERVAL)),
    )
    auth_guard = AuthGuard(
        session_manager,
        users_repo,
        activity,
        clock=clock,
    )

    return Container(
        conn=conn,
        users_repo=users_repo,
        departments_repo=departments_repo,
        attendance_repo=attendance_repo,
        sessions_repo=sessions_repo,
        activity_repo=activity_repo,
        rate_limit_store=rate_limit_store,
        activity=activity,
        rate_limiter=rate_limiter,
        session_manager=session_manager,
        auth_guard=auth_guard,
        auth_service=AuthService(users_repo, departments_repo, session_manager, rate_limiter, activity),
        user_service=UserService(users_repo, departments_repo, attendance_repo, rate_limiter, activity),
        department_service=DepartmentService(departments_repo, rate_limiter, activity),
        attendance_service=AttendanceService(attendance_repo, rate_limiter, activity),
        clock=clock,
    )


def build_container(settings) -> Container:
    conn = DatabaseConnection(DBConfig.from_mapping(getattr(settings, "DB_CONFIG")))

    if str(getattr(settings, "RATE_LIMIT_BACKEND", "mysql")).lower() == "memory":
        rate_limit_store: RateLimitStore = InMemoryRateLimitStore()
    else:
        rate_limit_store = MySQLRateLimitStore(conn)

    return wire(
        conn=conn,
        users_repo=MySQLUserRepository(conn),
        departments_repo=MySQLDepartmentRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        sessions_repo=MySQLSessionRepository(conn),
        activity_repo=MySQLActivityRepository(conn),
        rate_limit_store=rate_limit_store,
        settings=settings,
    )
