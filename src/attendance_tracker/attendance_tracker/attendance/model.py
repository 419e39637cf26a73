from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import elapsed_hours, format_date, format_datetime, format_time
from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """One user's attendance for one calendar date."""

    attendance_id: int
    user_id: int
    work_date: date
    checkin_time: Optional[datetime]
    checkout_time: Optional[datetime]
    created_at: Optional[datetime] = None

    # Joined columns, only filled by listing queries.
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    department_name: Optional[str] = None

    @property
    def status(self) -> AttendanceStatus:
        if self.checkin_time and self.checkout_time:
            return AttendanceStatus.COMPLETE
        if self.checkin_time:
            return AttendanceStatus.CHECKED_IN
        return AttendanceStatus.ABSENT

    @property
    def total_hours(self) -> Optional[float]:
        return elapsed_hours(self.checkin_time, self.checkout_time)

    def to_dict(self, *, include_user: bool = False) -> dict:
        data = {
            "id": self.attendance_id,
            "date": format_date(self.work_date),
            "checkin_time": format_time(self.checkin_time),
            "checkout_time": format_time(self.checkout_time),
            "status": self.status.value,
            "total_hours": self.total_hours,
            "full_checkin_time": format_datetime(self.checkin_time),
            "full_checkout_time": format_datetime(self.checkout_time),
            "created_at": format_datetime(self.created_at),
        }
        if include_user:
            data.update(
                {
                    "user_id": self.user_id,
                    "user_name": self.user_name,
                    "user_email": self.user_email,
                    "department_name": self.department_name,
                }
            )
        return data


@dataclass(frozen=True)
class AttendanceQuery:
    """Filters shared by the listing, counting and summary queries."""

    user_id: Optional[int] = None
    department_id: Optional[int] = None
    month: Optional[int] = None
    year: Optional[int] = None
    status: Optional[AttendanceStatus] = None
    search: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass(frozen=True)
class AttendanceSummary:
    total_days: int = 0
    days_present: int = 0
    days_complete: int = 0
    unique_users: int = 0
    average_hours: float = 0.0
    last_date: Optional[date] = None

