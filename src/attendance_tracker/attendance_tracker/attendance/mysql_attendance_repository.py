from __future__ import annotations

from datetime import date, datetime
from typing import Any, Mapping, Optional, Sequence

from ..core.enums import AttendanceStatus
from ..core.exceptions import DuplicateKeyError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key, like_pattern
from .model import AttendanceQuery, AttendanceRecord, AttendanceSummary
from .repository import AttendanceRepository

_BASE_COLUMNS = "a.id, a.user_id, a.date, a.checkin_time, a.checkout_time, a.created_at"

_FROM_JOINED = """
    FROM attendance a
    JOIN users u ON u.id = a.user_id
    LEFT JOIN departments d ON d.id = u.department_id
"""

_STATUS_CONDITIONS = {
    AttendanceStatus.COMPLETE: "a.checkin_time IS NOT NULL AND a.checkout_time IS NOT NULL",
    AttendanceStatus.CHECKED_IN: "a.checkin_time IS NOT NULL AND a.checkout_time IS NULL",
    AttendanceStatus.ABSENT: "a.checkin_time IS NULL",
}


def _row_to_record(r: Mapping[str, Any]) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["id"]),
        user_id=int(r["user_id"]),
        work_date=r["date"],
        checkin_time=r.get("checkin_time"),
        checkout_time=r.get("checkout_time"),
        created_at=r.get("created_at"),
        user_name=r.get("user_name"),
        user_email=r.get("user_email"),
        department_name=r.get("department_name"),
    )


def _build_where(query: AttendanceQuery) -> tuple[str, list]:
    clauses: list[str] = []
    params: list = []

    if query.month:
        clauses.append("MONTH(a.date) = %s")
        params.append(int(query.month))
    if query.year:
        clauses.append("YEAR(a.date) = %s")
        params.append(int(query.year))
    if query.user_id:
        clauses.append("a.user_id = %s")
        params.append(int(query.user_id))
    if query.department_id:
        clauses.append("u.department_id = %s")
        params.append(int(query.department_id))
    if query.status:
        clauses.append(_STATUS_CONDITIONS[query.status])
    if query.search:
        clauses.append("(u.name LIKE %s OR u.email LIKE %s)")
        pattern = like_pattern(query.search)
        params.extend([pattern, pattern])
    if query.start_date:
        clauses.append("a.date >= %s")
        params.append(query.start_date)
    if query.end_date:
        clauses.append("a.date <= %s")
        params.append(query.end_date)

    return (" WHERE " + " AND ".join(clauses)) if clauses else "", params


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_BASE_COLUMNS} FROM attendance a WHERE a.user_id=%s AND a.date=%s LIMIT 1",
                (int(user_id), work_date),
            )
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def create_checkin(self, *, user_id: int, work_date: date, checkin_time: datetime) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    "INSERT INTO attendance (user_id, date, checkin_time) VALUES (%s, %s, %s)",
                    (int(user_id), work_date, checkin_time),
                )
                return int(cur.lastrowid)
        except Exception as e:
            if is_duplicate_key(e):
                raise DuplicateKeyError(f"attendance for user {user_id} on {work_date}") from e
            raise

    def record_checkout(self, *, attendance_id: int, checkout_time: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance
                SET checkout_time=%s
                WHERE id=%s AND checkin_time IS NOT NULL AND checkout_time IS NULL
                """,
                (checkout_time, int(attendance_id)),
            )
            return cur.rowcount > 0

    def count_for_user(self, user_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS total FROM attendance WHERE user_id=%s", (int(user_id),))
            row = fetchone(cur)
            return int(row["total"]) if row else 0

    def list_records(self, query: AttendanceQuery, *, limit: int, offset: int) -> Sequence[AttendanceRecord]:
        where, params = _build_where(query)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_BASE_COLUMNS},
                       u.name AS user_name, u.email AS user_email, d.name AS department_name
                {_FROM_JOINED}
                {where}
                ORDER BY a.date DESC, u.name ASC, a.checkin_time ASC
                LIMIT %s OFFSET %s
                """,
                (*params, int(limit), int(offset)),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def count_records(self, query: AttendanceQuery) -> int:
        where, params = _build_where(query)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total {_FROM_JOINED} {where}", tuple(params))
            row = fetchone(cur)
            return int(row["total"]) if row else 0

    def summarize(self, query: AttendanceQuery) -> AttendanceSummary:
        where, params = _build_where(query)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS total_days,
                       COUNT(a.checkin_time) AS days_present,
                       COUNT(a.checkout_time) AS days_complete,
                       COUNT(DISTINCT a.user_id) AS unique_users,
                       AVG(CASE WHEN a.checkin_time IS NOT NULL AND a.checkout_time IS NOT NULL
                                THEN TIMESTAMPDIFF(SECOND, a.checkin_time, a.checkout_time) END) / 3600 AS avg_hours,
                       MAX(a.date) AS last_date
                {_FROM_JOINED}
                {where}
                """,
                tuple(params),
            )
            row = fetchone(cur) or {}

        avg = row.get("avg_hours")
        return AttendanceSummary(
            total_days=int(row.get("total_days") or 0),
            days_present=int(row.get("days_present") or 0),
            days_complete=int(row.get("days_complete") or 0),
            unique_users=int(row.get("unique_users") or 0),
            average_hours=round(float(avg), 2) if avg is not None else 0.0,
            last_date=row.get("last_date"),
        )
