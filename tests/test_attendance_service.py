from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta

import pytest

from src.attendance_tracker.attendance_tracker.attendance.service import AttendanceService, parse_month_year, parse_status
from src.attendance_tracker.attendance_tracker.common.http import DateRange, Pagination
from src.attendance_tracker.attendance_tracker.core.enums import AttendanceStatus
from src.attendance_tracker.attendance_tracker.core.exceptions import (
    AuthorizationError,
    DuplicateKeyError,
    RateLimitExceeded,
    ValidationError,
)

MORNING = datetime(2025, 3, 10, 8, 30, 0)
NO_RANGE = DateRange(None, None)
PAGE = Pagination(limit=30, offset=0)


def test_check_in_creates_one_row_per_day(container, db, employee):
    service = container.attendance_service
    result = service.check_in(employee, notes="  early <start> ", now=MORNING)

    assert result["date"] == "2025-03-10"
    assert result["checkin_time"] == "08:30:00"
    assert result["user"] == {"id": employee.user_id, "name": employee.name}
    assert len(db.attendance) == 1
    assert "CHECK_IN" in db.actions(employee.user_id)

    with pytest.raises(ValidationError) as exc:
        service.check_in(employee, now=MORNING + timedelta(hours=1))
    assert exc.value.error_code == "ALREADY_CHECKED_IN"
    assert len(db.attendance) == 1


def test_next_day_is_a_new_row(container, db, employee):
    service = container.attendance_service
    service.check_in(employee, now=MORNING)
    service.check_in(employee, now=MORNING + timedelta(days=1))
    assert len(db.attendance) == 2


def test_check_out_rules(container, db, employee):
    service = container.attendance_service

    with pytest.raises(ValidationError) as exc:
        service.check_out(employee, now=MORNING)
    assert exc.value.error_code == "NOT_CHECKED_IN"

    service.check_in(employee, now=MORNING)
    result = service.check_out(employee, now=MORNING + timedelta(hours=8, minutes=20))
    assert result["total_hours"] == 8.33
    assert result["checkout_time"] == "16:50:00"

    with pytest.raises(ValidationError) as exc:
        service.check_out(employee, now=MORNING + timedelta(hours=9))
    assert exc.value.error_code == "ALREADY_CHECKED_OUT"


def test_admins_can_clock_in(container, db, admin):
    result = container.attendance_service.check_in(admin, now=MORNING)
    assert result["user"]["id"] == admin.user_id
    assert len(db.attendance) == 1


def test_roles_without_attendance_rights_are_refused(container, db, employee):
    guest = replace(employee, role="guest")
    with pytest.raises(AuthorizationError) as exc:
        container.attendance_service.check_in(guest, now=MORNING)
    assert exc.value.error_code == "ROLE_NOT_ALLOWED"

    with pytest.raises(AuthorizationError):
        container.attendance_service.check_out(guest, now=MORNING)
    assert not db.attendance


class RacingAttendance:
    """Reports no row for today, then hits the unique key on insert."""

    def get_for_user_and_date(self, user_id, work_date):
        return None

    def create_checkin(self, *, user_id, work_date, checkin_time):
        raise DuplicateKeyError(f"{user_id}/{work_date}")


def test_concurrent_check_in_maps_to_already_checked_in(container, employee):
    service = AttendanceService(RacingAttendance(), container.rate_limiter, container.activity)
    with pytest.raises(ValidationError) as exc:
        service.check_in(employee, now=MORNING)
    assert exc.value.error_code == "ALREADY_CHECKED_IN"


def test_check_in_is_rate_limited(container, make_user):
    user = make_user("Carol", "carol@example.com")
    service = container.attendance_service
    for day in range(10):
        service.check_in(user, now=MORNING + timedelta(days=day))
    with pytest.raises(RateLimitExceeded):
        service.check_in(user, now=MORNING + timedelta(days=11))


def test_view_self_summary(container, employee):
    service = container.attendance_service
    service.check_in(employee, now=MORNING)
    service.check_out(employee, now=MORNING + timedelta(hours=8))
    service.check_in(employee, now=MORNING + timedelta(days=1))

    result = service.view_self(
        employee, month=3, year=2025, date_range=NO_RANGE, pagination=PAGE, today=date(2025, 3, 11)
    )
    summary = result["summary"]
    assert (summary["total_days"], summary["days_present"], summary["days_complete"]) == (2, 2, 1)
    assert summary["average_hours"] == 8.0
    assert [r["status"] for r in result["attendance"]] == ["checked_in", "complete"]
    assert result["pagination"]["total"] == 2


def test_view_all_filters_by_status(container, employee, make_user):
    other = make_user("Dan", "dan@example.com")
    service = container.attendance_service
    service.check_in(employee, now=MORNING)
    service.check_in(other, now=MORNING)
    service.check_out(other, now=MORNING + timedelta(hours=4))

    result = service.view_all(
        employee,
        status="complete",
        date_range=NO_RANGE,
        pagination=PAGE,
        today=date(2025, 3, 10),
    )
    assert [r["user_id"] for r in result["attendance"]] == [other.user_id]
    assert result["summary"]["unique_users"] == 1
    assert result["filters"]["status"] == "complete"


@pytest.mark.parametrize(
    "month,year,code",
    [("13", None, "INVALID_MONTH"), ("x", None, "INVALID_MONTH"), (None, "2019", "INVALID_YEAR"), (None, "2031", "INVALID_YEAR")],
)
def test_parse_month_year_rejects(month, year, code):
    with pytest.raises(ValidationError) as exc:
        parse_month_year(month, year, today=date(2025, 3, 10))
    assert exc.value.error_code == code


def test_parse_month_year_defaults_to_today():
    assert parse_month_year(None, "", today=date(2025, 3, 10)) == (3, 2025)


def test_parse_status():
    assert parse_status("absent") == AttendanceStatus.ABSENT
    assert parse_status(None) is None
    with pytest.raises(ValidationError):
        parse_status("late")
