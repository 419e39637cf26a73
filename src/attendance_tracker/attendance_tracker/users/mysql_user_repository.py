from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Mapping, Optional, Sequence

from ..core.constants import RECENT_ACTIVITY_DAYS
from ..core.enums import Role, UserListStatus
from ..core.exceptions import DuplicateKeyError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key, like_pattern
from .model import User, UserListRow, UserQuery, activity_status_for
from .repository import UserRepository

_UPDATABLE_COLUMNS = ("name", "email", "role", "department_id", "password")

_USER_COLUMNS = """
    u.id, u.name, u.email, u.password, u.role, u.department_id, u.created_at,
    d.name AS department_name
"""


def _row_to_user(row: Mapping[str, Any]) -> User:
    return User(
        user_id=int(row["id"]),
        name=row["name"],
        email=row["email"],
        password_hash=row.get("password") or "",
        role=Role(row["role"]),
        department_id=int(row["department_id"]) if row.get("department_id") else None,
        department_name=row.get("department_name"),
        created_at=row.get("created_at"),
    )


def _where(query: UserQuery) -> tuple[str, list]:
    clauses: list[str] = []
    params: list = []
    if query.department_id:
        clauses.append("u.department_id = %s")
        params.append(int(query.department_id))
    if query.role:
        clauses.append("u.role = %s")
        params.append(query.role.value)
    if query.search:
        clauses.append("(u.name LIKE %s OR u.email LIKE %s)")
        pattern = like_pattern(query.search)
        params.extend([pattern, pattern])
    return (" WHERE " + " AND ".join(clauses)) if clauses else "", params


def _having(query: UserQuery, cutoff: date) -> tuple[str, list]:
    if query.status == UserListStatus.ACTIVE.value:
        return " HAVING MAX(a.date) >= %s", [cutoff]
    if query.status == UserListStatus.INACTIVE.value:
        return " HAVING (MAX(a.date) < %s OR MAX(a.date) IS NULL)", [cutoff]
    return "", []


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_USER_COLUMNS}
                FROM users u
                LEFT JOIN departments d ON d.id = u.department_id
                WHERE u.id=%s
                LIMIT 1
                """,
                (int(user_id),),
            )
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def get_by_email(self, email: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_USER_COLUMNS}
                FROM users u
                LEFT JOIN departments d ON d.id = u.department_id
                WHERE u.email=%s
                LIMIT 1
                """,
                (email,),
            )
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def email_exists(self, email: str, *, exclude_id: Optional[int] = None) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            if exclude_id:
                cur.execute("SELECT id FROM users WHERE email=%s AND id<>%s LIMIT 1", (email, int(exclude_id)))
            else:
                cur.execute("SELECT id FROM users WHERE email=%s LIMIT 1", (email,))
            return fetchone(cur) is not None

    def create_user(
        self,
        *,
        name: str,
        email: str,
        password_hash: str,
        role: Role,
        department_id: Optional[int],
    ) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO users (name, email, password, role, department_id)
                    VALUES (%s, %s, %s, %s, %s)
                    """,
                    (name, email, password_hash, role.value, department_id),
                )
                return int(cur.lastrowid)
        except Exception as e:
            if is_duplicate_key(e):
                raise DuplicateKeyError(email) from e
            raise

    def update_user(self, user_id: int, changes: Mapping[str, object]) -> None:
        unknown = set(changes) - set(_UPDATABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update columns: {', '.join(sorted(unknown))}")
        if not changes:
            return

        columns = [c for c in _UPDATABLE_COLUMNS if c in changes]
        values = [changes[c].value if isinstance(changes[c], Role) else changes[c] for c in columns]
        assignments = ", ".join(f"{c}=%s" for c in columns)
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(f"UPDATE users SET {assignments} WHERE id=%s", (*values, int(user_id)))
        except Exception as e:
            if is_duplicate_key(e):
                raise DuplicateKeyError(str(changes.get("email", ""))) from e
            raise

    def delete_user_cascade(self, user_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM sessions WHERE user_id=%s", (int(user_id),))
            cur.execute("DELETE FROM activity_logs WHERE user_id=%s", (int(user_id),))
            cur.execute("DELETE FROM attendance WHERE user_id=%s", (int(user_id),))
            cur.execute("DELETE FROM users WHERE id=%s", (int(user_id),))
            return cur.rowcount > 0

    def list_users(self, query: UserQuery, *, limit: int, offset: int) -> Sequence[UserListRow]:
        today = query.today or date.today()
        where, params = _where(query)
        having, having_params = _having(query, today - timedelta(days=RECENT_ACTIVITY_DAYS))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_USER_COLUMNS},
                       COUNT(a.id) AS attendance_count,
                       MAX(a.date) AS last_attendance_date
                FROM users u
                LEFT JOIN departments d ON d.id = u.department_id
                LEFT JOIN attendance a ON a.user_id = u.id
                {where}
                GROUP BY u.id, u.name, u.email, u.password, u.role, u.department_id, u.created_at, d.name
                {having}
                ORDER BY u.created_at DESC, u.id DESC
                LIMIT %s OFFSET %s
                """,
                (*params, *having_params, int(limit), int(offset)),
            )
            rows = fetchall(cur)

        out: list[UserListRow] = []
        for r in rows:
            last = r.get("last_attendance_date")
            out.append(
                UserListRow(
                    user=_row_to_user(r),
                    attendance_count=int(r.get("attendance_count") or 0),
                    last_attendance_date=last,
                    activity_status=activity_status_for(last, today),
                )
            )
        return out

    def count_users(self, query: UserQuery) -> int:
        today = query.today or date.today()
        where, params = _where(query)
        having, having_params = _having(query, today - timedelta(days=RECENT_ACTIVITY_DAYS))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS total FROM (
                    SELECT u.id
                    FROM users u
                    LEFT JOIN attendance a ON a.user_id = u.id
                    {where}
                    GROUP BY u.id
                    {having}
                ) filtered
                """,
                (*params, *having_params),
            )
            row = fetchone(cur)
            return int(row["total"]) if row else 0

    def summarize_users(self) -> dict:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS total_users,
                       COUNT(CASE WHEN role='admin' THEN 1 END) AS admin_count,
                       COUNT(CASE WHEN role='employee' THEN 1 END) AS employee_count,
                       COUNT(CASE WHEN department_id IS NOT NULL THEN 1 END) AS with_department,
                       COUNT(DISTINCT department_id) AS departments_used
                FROM users
                """
            )
            row = fetchone(cur) or {}
        return {
            key: int(row.get(key) or 0)
            for key in ("total_users", "admin_count", "employee_count", "with_department", "departments_used")
        }
