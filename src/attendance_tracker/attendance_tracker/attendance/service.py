from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Optional

from ..activity.service import ActivityLogger
from ..auth.permissions import is_action_allowed
from ..common.datetime_utils import format_datetime, format_time, now_local
from ..common.http import DateRange, Pagination
from ..common.validators import sanitize_input
from ..core.constants import MAX_REPORT_YEAR, MIN_REPORT_YEAR
from ..core.enums import Action, AttendanceStatus
from ..core.exceptions import AuthorizationError, DuplicateKeyError, ValidationError
from ..ratelimit.limiter import RateLimiter
from ..users.model import User
from .model import AttendanceQuery, AttendanceRecord
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


def parse_month_year(month: Any, year: Any, *, today: date) -> tuple[int, int]:
    """Validate ``month``/``year`` query values, defaulting to the current month."""
    try:
        m = int(month) if month not in (None, "") else today.month
    except (TypeError, ValueError):
        m = 0
    if not 1 <= m <= 12:
        raise ValidationError("Invalid month. Must be between 1 and 12.", "INVALID_MONTH")

    try:
        y = int(year) if year not in (None, "") else today.year
    except (TypeError, ValueError):
        y = 0
    if not MIN_REPORT_YEAR <= y <= MAX_REPORT_YEAR:
        raise ValidationError(
            f"Invalid year. Must be between {MIN_REPORT_YEAR} and {MAX_REPORT_YEAR}.",
            "INVALID_YEAR",
        )
    return m, y


def parse_status(value: Any) -> Optional[AttendanceStatus]:
    if value in (None, ""):
        return None
    try:
        return AttendanceStatus(sanitize_input(value))
    except ValueError:
        raise ValidationError("Invalid status. Must be: complete, checked_in, or absent.", "INVALID_STATUS")


def _user_ref(user: User) -> dict:
    return {"id": user.user_id, "name": user.name}


class AttendanceService:
    """Use cases: daily check-in/check-out and attendance reports."""

    def __init__(self, attendance: AttendanceRepository, limiter: RateLimiter, activity: ActivityLogger):
        self._attendance = attendance
        self._limiter = limiter
        self._activity = activity

    def _require_attendance_role(self, user: User, verb: str) -> None:
        if not is_action_allowed(user.role, "create", "attendance"):
            raise AuthorizationError(f"Your role is not allowed to {verb}.", "ROLE_NOT_ALLOWED")

    def check_in(self, user: User, *, notes: Optional[str] = None, now: datetime | None = None) -> dict:
        now = now or now_local()
        today = now.date()
        self._require_attendance_role(user, "check in")

        existing = self._attendance.get_for_user_and_date(user.user_id, today)
        if existing and existing.checkin_time:
            raise ValidationError("Already checked in today. You can only check in once per day.", "ALREADY_CHECKED_IN")

        self._limiter.check_operation(
            "checkin",
            f"checkin_{user.user_id}",
            message="Too many check-in attempts. Please try again later.",
        )

        try:
            attendance_id = self._attendance.create_checkin(user_id=user.user_id, work_date=today, checkin_time=now)
        except DuplicateKeyError:
            # Lost a race with a concurrent check-in for the same day.
            raise ValidationError("Already checked in today. You can only check in once per day.", "ALREADY_CHECKED_IN")

        note = sanitize_input(notes) if notes else None
        if note:
            logger.info("Check-in note from user %s: %s", user.user_id, note)

        self._activity.log(user.user_id, Action.CHECK_IN, f"Attendance ID: {attendance_id}, Time: {format_datetime(now)}")
        return {
            "attendance_id": attendance_id,
            "checkin_time": format_time(now),
            "date": today.isoformat(),
            "full_checkin_time": format_datetime(now),
            "user": _user_ref(user),
        }

    def check_out(self, user: User, *, now: datetime | None = None) -> dict:
        now = now or now_local()
        today = now.date()
        self._require_attendance_role(user, "check out")

        record = self._attendance.get_for_user_and_date(user.user_id, today)
        if record is None or record.checkin_time is None:
            raise ValidationError("You must check in before checking out.", "NOT_CHECKED_IN")
        if record.checkout_time is not None:
            raise ValidationError("Already checked out today. You can only check out once per day.", "ALREADY_CHECKED_OUT")

        self._limiter.check_operation(
            "checkout",
            f"checkout_{user.user_id}",
            message="Too many check-out attempts. Please try again later.",
        )

        if not self._attendance.record_checkout(attendance_id=record.attendance_id, checkout_time=now):
            raise ValidationError("Already checked out today. You can only check out once per day.", "ALREADY_CHECKED_OUT")

        updated = AttendanceRecord(
            attendance_id=record.attendance_id,
            user_id=record.user_id,
            work_date=record.work_date,
            checkin_time=record.checkin_time,
            checkout_time=now,
            created_at=record.created_at,
        )
        self._activity.log(
            user.user_id,
            Action.CHECK_OUT,
            f"Attendance ID: {updated.attendance_id}, Total hours: {updated.total_hours}",
        )
        return {
            "attendance_id": updated.attendance_id,
            "checkin_time": format_time(updated.checkin_time),
            "checkout_time": format_time(updated.checkout_time),
            "date": updated.work_date.isoformat(),
            "total_hours": updated.total_hours,
            "full_checkin_time": format_datetime(updated.checkin_time),
            "full_checkout_time": format_datetime(updated.checkout_time),
            "user": _user_ref(user),
        }

    def view_self(
        self,
        user: User,
        *,
        month: Any = None,
        year: Any = None,
        date_range: DateRange,
        pagination: Pagination,
        today: date,
    ) -> dict:
        m, y = parse_month_year(month, year, today=today)
        query = AttendanceQuery(
            user_id=user.user_id,
            month=m,
            year=y,
            start_date=date_range.start_date,
            end_date=date_range.end_date,
        )

        records = self._attendance.list_records(query, limit=pagination.limit, offset=pagination.offset)
        total = self._attendance.count_records(query)
        summary = self._attendance.summarize(query)

        self._activity.log(user.user_id, Action.VIEW_SELF_ATTENDANCE, f"Month: {m}/{y}, Records: {len(records)}")
        return {
            "attendance": [r.to_dict() for r in records],
            "summary": {
                "month": m,
                "year": y,
                "total_days": summary.total_days,
                "days_present": summary.days_present,
                "days_complete": summary.days_complete,
                "average_hours": summary.average_hours,
            },
            "pagination": pagination.describe(total),
            "user": {"id": user.user_id, "name": user.name, "email": user.email},
        }

    def view_all(
        self,
        actor: User,
        *,
        user_id: Optional[int] = None,
        department_id: Optional[int] = None,
        month: Any = None,
        year: Any = None,
        status: Any = None,
        search: Optional[str] = None,
        date_range: DateRange,
        pagination: Pagination,
        today: date,
    ) -> dict:
        if user_id is not None and user_id <= 0:
            raise ValidationError("Invalid user ID.", "INVALID_USER_ID")
        if department_id is not None and department_id <= 0:
            raise ValidationError("Invalid department ID.", "INVALID_DEPARTMENT_ID")

        m, y = parse_month_year(month, year, today=today)
        parsed_status = parse_status(status)
        search = sanitize_input(search) if search else None

        query = AttendanceQuery(
            user_id=user_id,
            department_id=department_id,
            month=m,
            year=y,
            status=parsed_status,
            search=search,
            start_date=date_range.start_date,
            end_date=date_range.end_date,
        )

        records = self._attendance.list_records(query, limit=pagination.limit, offset=pagination.offset)
        total = self._attendance.count_records(query)
        summary = self._attendance.summarize(query)

        self._activity.log(actor.user_id, Action.VIEW_ALL_ATTENDANCE, f"Month: {m}/{y}, Records: {len(records)}")
        filters = {
            "user_id": user_id,
            "department_id": department_id,
            "status": parsed_status.value if parsed_status else None,
            "search": search,
        }
        filters.update(date_range.describe())
        return {
            "attendance": [r.to_dict(include_user=True) for r in records],
            "summary": {
                "month": m,
                "year": y,
                "total_days": summary.total_days,
                "days_present": summary.days_present,
                "days_complete": summary.days_complete,
                "unique_users": summary.unique_users,
                "average_hours": summary.average_hours,
            },
            "filters": filters,
            "pagination": pagination.describe(total),
        }
