from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Mapping, Optional

from werkzeug.security import generate_password_hash

from ..activity.service import ActivityLogger
from ..attendance.model import AttendanceQuery
from ..attendance.repository import AttendanceRepository
from ..auth.context import RequestContext
from ..auth.permissions import can_access_resource, user_permissions, validate_role_assignment
from ..auth.service import verify_password
from ..common.datetime_utils import format_date
from ..common.http import Pagination
from ..common.validators import require_email, require_name, require_password, require_positive_id, sanitize_input
from ..core.constants import RECENT_ATTENDANCE_DAYS, RECENT_ATTENDANCE_LIMIT
from ..core.enums import Action, Role, UserListStatus
from ..core.exceptions import AuthenticationError, AuthorizationError, DuplicateKeyError, NotFoundError, ValidationError
from ..departments.repository import DepartmentRepository
from ..ratelimit.limiter import RateLimiter
from .model import User, UserQuery
from .repository import UserRepository

logger = logging.getLogger(__name__)


def _positive_id(user_id: Any) -> int:
    return require_positive_id(user_id, error_code="INVALID_USER_ID", label="user ID")


class UserService:
    """Use case: list, view, update and delete user accounts."""

    def __init__(
        self,
        users: UserRepository,
        departments: DepartmentRepository,
        attendance: AttendanceRepository,
        limiter: RateLimiter,
        activity: ActivityLogger,
    ):
        self._users = users
        self._departments = departments
        self._attendance = attendance
        self._limiter = limiter
        self._activity = activity

    def list_users(
        self,
        actor: User,
        *,
        department_id: Optional[int] = None,
        role: Any = None,
        search: Optional[str] = None,
        status: Any = None,
        pagination: Pagination,
        today: date,
    ) -> dict:
        if department_id is not None and department_id <= 0:
            raise ValidationError("Invalid department ID.", "INVALID_DEPARTMENT_ID")

        parsed_role: Optional[Role] = None
        if role not in (None, ""):
            try:
                parsed_role = Role(sanitize_input(role))
            except ValueError:
                raise ValidationError("Invalid role. Must be either admin or employee.", "INVALID_ROLE")

        parsed_status: Optional[str] = None
        if status not in (None, ""):
            try:
                parsed_status = UserListStatus(sanitize_input(status)).value
            except ValueError:
                raise ValidationError("Invalid status. Must be either active or inactive.", "INVALID_STATUS")

        search = sanitize_input(search) if search else None
        query = UserQuery(
            department_id=department_id,
            role=parsed_role,
            search=search,
            status=parsed_status,
            today=today,
        )

        rows = self._users.list_users(query, limit=pagination.limit, offset=pagination.offset)
        total = self._users.count_users(query)

        self._activity.log(actor.user_id, Action.VIEW_ALL_USERS, f"Records: {len(rows)}")
        return {
            "users": [r.to_dict() for r in rows],
            "summary": self._users.summarize_users(),
            "filters": {
                "department_id": department_id,
                "role": parsed_role.value if parsed_role else None,
                "search": search,
                "status": parsed_status,
            },
            "pagination": pagination.describe(total),
        }

    def get_profile(self, ctx: RequestContext, user_id: Any, *, today: date) -> dict:
        user_id = _positive_id(user_id)
        if not can_access_resource(ctx, user_id):
            raise AuthorizationError("Access denied. You can only view your own profile.", "ACCESS_DENIED")

        user = self._users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found.", "USER_NOT_FOUND")

        overall = self._attendance.summarize(AttendanceQuery(user_id=user_id))
        month = self._attendance.summarize(AttendanceQuery(user_id=user_id, month=today.month, year=today.year))
        recent = self._attendance.list_records(
            AttendanceQuery(user_id=user_id, start_date=today - timedelta(days=RECENT_ATTENDANCE_DAYS)),
            limit=RECENT_ATTENDANCE_LIMIT,
            offset=0,
        )

        data = user.to_public()
        data["statistics"] = {
            "total_attendance_days": overall.total_days,
            "days_present": overall.days_present,
            "days_complete": overall.days_complete,
            "last_attendance_date": format_date(overall.last_date),
            "average_hours": overall.average_hours,
        }
        data["current_month_summary"] = {
            "total_days": month.total_days,
            "days_present": month.days_present,
            "days_complete": month.days_complete,
            "average_hours": month.average_hours,
        }
        data["recent_attendance"] = [
            {k: v for k, v in r.to_dict().items() if not k.startswith("full_")} for r in recent
        ]
        if ctx.user_id == user_id:
            data["permissions"] = user_permissions(ctx)

        self._activity.log(ctx.user_id, Action.VIEW_USER_PROFILE, f"Viewed user ID: {user_id}")
        return data

    def update_user(self, ctx: RequestContext, user_id: Any, data: Mapping[str, Any]) -> dict:
        """Partial update; only keys present in ``data`` are considered."""
        user_id = _positive_id(user_id)
        if not can_access_resource(ctx, user_id):
            raise AuthorizationError("Access denied. You can only update your own profile.", "ACCESS_DENIED")

        existing = self._users.get_by_id(user_id)
        if existing is None:
            raise NotFoundError("User not found.", "USER_NOT_FOUND")

        changes: dict[str, Any] = {}

        if data.get("name") is not None:
            changes["name"] = require_name(sanitize_input(data["name"]))

        if data.get("email") is not None:
            email = require_email(sanitize_input(data["email"]))
            if email != existing.email and self._users.email_exists(email, exclude_id=user_id):
                raise ValidationError("Email already exists. Please use a different email.", "EMAIL_EXISTS")
            changes["email"] = email

        if data.get("role") is not None:
            if not ctx.is_admin:
                raise AuthorizationError("Only administrators can change user roles.", "ROLE_CHANGE_DENIED")
            try:
                Role(sanitize_input(data["role"]))
            except ValueError:
                raise ValidationError("Invalid role. Must be either admin or employee.", "INVALID_ROLE")
            changes["role"] = validate_role_assignment(ctx, sanitize_input(data["role"]), user_id)

        if "department_id" in data:
            changes["department_id"] = self._department_id(data["department_id"])

        if data.get("password") is not None:
            changes["password"] = self._new_password_hash(ctx, existing, data)

        if not changes:
            raise ValidationError("No valid update fields provided.", "NO_UPDATES")

        self._limiter.check_operation(
            "update_user",
            f"update_user_{ctx.user_id}",
            message="Too many update attempts. Please try again later.",
        )

        try:
            self._users.update_user(user_id, changes)
        except DuplicateKeyError:
            raise ValidationError("Email already exists. Please use a different email.", "EMAIL_EXISTS")

        described = ", ".join(
            f"{field} (changed)" if field == "password" else f"{field}: {getattr(value, 'value', value)}"
            for field, value in changes.items()
        )
        self._activity.log(ctx.user_id, Action.USER_UPDATE, f"User ID: {user_id}, Changes: {described}")

        updated = self._users.get_by_id(user_id) or existing
        result = updated.to_public()
        result["updated_fields"] = list(changes)
        return result

    def _department_id(self, value: Any) -> Optional[int]:
        if value is None:
            return None
        try:
            dept_id = int(value)
        except (TypeError, ValueError):
            raise ValidationError("Invalid department specified.", "INVALID_DEPARTMENT")
        if self._departments.get_by_id(dept_id) is None:
            raise ValidationError("Invalid department specified.", "INVALID_DEPARTMENT")
        return dept_id

    def _new_password_hash(self, ctx: RequestContext, existing: User, data: Mapping[str, Any]) -> str:
        own_account = ctx.user_id == existing.user_id
        if not own_account and not ctx.is_admin:
            raise AuthorizationError("You can only change your own password.", "PASSWORD_CHANGE_DENIED")

        password = data["password"]
        if not isinstance(password, str):
            password = str(password)
        require_password(password)

        if own_account and not ctx.is_admin:
            current = data.get("current_password")
            if current is None:
                raise ValidationError("Current password is required to change password.", "CURRENT_PASSWORD_REQUIRED")
            if not verify_password(str(current), existing.password_hash):
                raise AuthenticationError("Current password is incorrect.", "INVALID_CURRENT_PASSWORD")

        return generate_password_hash(password)

    def delete_user(self, ctx: RequestContext, user_id: Any) -> dict:
        user_id = _positive_id(user_id)
        if user_id == ctx.user_id:
            raise AuthorizationError("Administrators cannot delete their own accounts.", "SELF_DELETION_DENIED")

        target = self._users.get_by_id(user_id)
        if target is None:
            raise NotFoundError("User not found.", "USER_NOT_FOUND")

        if self._attendance.count_for_user(user_id) > 0:
            raise ValidationError(
                "Cannot delete user with existing attendance records. Consider deactivating the account instead.",
                "HAS_ATTENDANCE_RECORDS",
            )

        self._limiter.check_operation(
            "delete_user",
            f"delete_user_{ctx.user_id}",
            message="Too many deletion attempts. Please try again later.",
        )

        if not self._users.delete_user_cascade(user_id):
            raise NotFoundError("User not found.", "USER_NOT_FOUND")

        self._activity.log(
            ctx.user_id,
            Action.USER_DELETE,
            f"Deleted user: {target.name} (ID: {user_id}, Email: {target.email})",
        )
        logger.info("User %s deleted by %s", user_id, ctx.user_id)
        return {
            "deleted_user": {
                "id": target.user_id,
                "name": target.name,
                "email": target.email,
                "role": target.role.value,
                "department_name": target.department_name,
            },
            "deleted_by": ctx.actor(),
        }
