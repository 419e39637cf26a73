from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from ..common.datetime_utils import format_date, format_datetime
from ..core.constants import RECENT_ACTIVITY_DAYS
from ..core.enums import ActivityStatus, Role


@dataclass(frozen=True)
class User:
    user_id: int
    name: str
    email: str
    password_hash: str
    role: Role
    department_id: Optional[int] = None
    department_name: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def to_public(self) -> dict:
        """Response shape of a user; never includes the password hash."""
        return {
            "id": self.user_id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "department_id": self.department_id,
            "department_name": self.department_name,
            "created_at": format_datetime(self.created_at),
        }


@dataclass(frozen=True)
class UserListRow:
    """One row of the admin user list, with attendance aggregates."""

    user: User
    attendance_count: int
    last_attendance_date: Optional[date]
    activity_status: ActivityStatus

    def to_dict(self) -> dict:
        data = self.user.to_public()
        data.update(
            {
                "attendance_count": self.attendance_count,
                "last_attendance_date": format_date(self.last_attendance_date),
                "activity_status": self.activity_status.value,
            }
        )
        return data


@dataclass(frozen=True)
class UserQuery:
    department_id: Optional[int] = None
    role: Optional[Role] = None
    search: Optional[str] = None
    status: Optional[str] = None
    today: Optional[date] = None


def activity_status_for(last_attendance: Optional[date], today: date) -> ActivityStatus:
    """``present`` today, ``recent`` within the last week, else ``inactive``."""
    if last_attendance is None:
        return ActivityStatus.INACTIVE
    if last_attendance == today:
        return ActivityStatus.PRESENT
    if last_attendance >= today - timedelta(days=RECENT_ACTIVITY_DAYS):
        return ActivityStatus.RECENT
    return ActivityStatus.INACTIVE
