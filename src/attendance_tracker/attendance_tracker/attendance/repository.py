from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from .model import AttendanceQuery, AttendanceRecord, AttendanceSummary


class AttendanceRepository(Protocol):
    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def create_checkin(self, *, user_id: int, work_date: date, checkin_time: datetime) -> int:
        """Insert the day's row; raises DuplicateKeyError if (user, date) exists."""
        raise NotImplementedError

    def record_checkout(self, *, attendance_id: int, checkout_time: datetime) -> bool:
        """Set checkout_time only if it is still empty; False when nothing changed."""
        raise NotImplementedError

    def count_for_user(self, user_id: int) -> int:
        raise NotImplementedError

    def list_records(self, query: AttendanceQuery, *, limit: int, offset: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def count_records(self, query: AttendanceQuery) -> int:
        raise NotImplementedError

    def summarize(self, query: AttendanceQuery) -> AttendanceSummary:
        raise NotImplementedError
