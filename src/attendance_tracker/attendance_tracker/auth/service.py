from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..activity.service import ActivityLogger
from ..common.datetime_utils import format_datetime
from ..common.validators import require_email, require_name, require_password, sanitize_input
from ..core.enums import Action, Role
from ..core.exceptions import AuthenticationError, AuthorizationError, DuplicateKeyError, ValidationError
from ..departments.repository import DepartmentRepository
from ..ratelimit.limiter import RateLimiter, hashed_key
from ..users.model import User
from ..users.repository import UserRepository
from .context import RequestContext
from .model import SessionRecord
from .permissions import check_privilege_escalation
from .session import SessionManager

logger = logging.getLogger(__name__)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return check_password_hash(password_hash, password)
    except (TypeError, ValueError):
        # unknown or corrupted hash format
        return False


class AuthService:
    """Use cases: login, registration, session inspection and logout."""

    def __init__(
        self,
        users: UserRepository,
        departments: DepartmentRepository,
        sessions: SessionManager,
        limiter: RateLimiter,
        activity: ActivityLogger,
    ):
        self._users = users
        self._departments = departments
        self._sessions = sessions
        self._limiter = limiter
        self._activity = activity

    def login(self, *, email: str, password: str, ip: str, now: datetime) -> tuple[User, SessionRecord]:
        email = require_email(sanitize_input(email))

        self._limiter.check_operation(
            "login",
            hashed_key("login", ip, email),
            message="Too many login attempts. Please try again later.",
        )

        user = self._users.get_by_email(email)
        if user is None:
            logger.info("Login failed: unknown email %s from %s", email, ip)
            raise AuthenticationError("Invalid email or password.", "INVALID_CREDENTIALS")
        if not verify_password(password, user.password_hash):
            logger.info("Login failed: bad password for %s from %s", email, ip)
            raise AuthenticationError("Invalid email or password.", "INVALID_CREDENTIALS")

        record = self._sessions.start(user, ip=ip, now=now)
        self._activity.log(user.user_id, Action.LOGIN, f"IP: {ip}")
        self._activity.log(user.user_id, Action.LOGIN_SUCCESS, f"IP: {ip}")
        return user, record

    def register(
        self,
        *,
        name: str,
        email: str,
        password: str,
        role: Any = None,
        department_id: Any = None,
        ip: str,
        ctx: Optional[RequestContext] = None,
    ) -> User:
        name = require_name(sanitize_input(name))
        email = require_email(sanitize_input(email))
        require_password(password)

        role_value = sanitize_input(role) if role not in (None, "") else Role.EMPLOYEE.value
        try:
            new_role = Role(role_value)
        except ValueError:
            raise ValidationError("Invalid role. Must be either admin or employee.", "INVALID_ROLE")

        if check_privilege_escalation(ctx, new_role, self._activity):
            raise AuthorizationError("Only administrators can create admin accounts.", "PRIVILEGE_ESCALATION")

        if self._users.email_exists(email):
            raise ValidationError("Email already registered. Please use a different email or login.", "EMAIL_EXISTS")

        dept_id = self._department_id(department_id)

        self._limiter.check_operation(
            "register",
            hashed_key("register", ip),
            message="Too many registration attempts. Please try again later.",
        )

        try:
            user_id = self._users.create_user(
                name=name,
                email=email,
                password_hash=generate_password_hash(password),
                role=new_role,
                department_id=dept_id,
            )
        except DuplicateKeyError:
            raise ValidationError("Email already registered. Please use a different email or login.", "EMAIL_EXISTS")

        self._activity.log(user_id, Action.REGISTER, f"Name: {name}, Email: {email}, Role: {new_role.value}")
        created = self._users.get_by_id(user_id)
        if created is None:
            raise RuntimeError(f"User {user_id} vanished right after insert")
        return created

    def _department_id(self, value: Any) -> Optional[int]:
        if value in (None, "", 0, "0"):
            return None
        try:
            dept_id = int(value)
        except (TypeError, ValueError):
            raise ValidationError("Invalid department specified.", "INVALID_DEPARTMENT")
        if dept_id <= 0 or self._departments.get_by_id(dept_id) is None:
            raise ValidationError("Invalid department specified.", "INVALID_DEPARTMENT")
        return dept_id

    def session_info(self, ctx: RequestContext, *, now: datetime) -> dict:
        self._activity.log(ctx.user_id, Action.SESSION_CHECK, f"IP: {ctx.client_ip}")
        session = ctx.session
        return {
            "session_id": session.session_id,
            "login_time": format_datetime(session.login_time),
            "last_activity": format_datetime(session.last_activity),
            "session_age_minutes": round(session.age_seconds(now) / 60, 1),
        }

    def logout(self, ctx: RequestContext) -> None:
        self._activity.log(ctx.user_id, Action.LOGOUT, f"IP: {ctx.client_ip}")
        self._sessions.destroy(ctx.session.session_id)
