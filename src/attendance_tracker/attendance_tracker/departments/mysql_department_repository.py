from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from ..core.exceptions import DuplicateKeyError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key, like_pattern
from .model import Department
from .repository import DepartmentRepository


def _row_to_department(row: Mapping[str, Any]) -> Department:
    count = row.get("employee_count")
    return Department(
        department_id=int(row["id"]),
        name=row["name"],
        created_at=row.get("created_at"),
        employee_count=int(count) if count is not None else None,
    )


class MySQLDepartmentRepository(DepartmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, department_id: int) -> Optional[Department]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, name, created_at FROM departments WHERE id=%s LIMIT 1", (int(department_id),))
            row = fetchone(cur)
            return _row_to_department(row) if row else None

    def name_exists(self, name: str, *, exclude_id: Optional[int] = None) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            if exclude_id:
                cur.execute("SELECT id FROM departments WHERE name=%s AND id<>%s LIMIT 1", (name, int(exclude_id)))
            else:
                cur.execute("SELECT id FROM departments WHERE name=%s LIMIT 1", (name,))
            return fetchone(cur) is not None

    def create(self, name: str) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute("INSERT INTO departments (name) VALUES (%s)", (name,))
                return int(cur.lastrowid)
        except Exception as e:
            if is_duplicate_key(e):
                raise DuplicateKeyError(name) from e
            raise

    def rename(self, department_id: int, name: str) -> None:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute("UPDATE departments SET name=%s WHERE id=%s", (name, int(department_id)))
        except Exception as e:
            if is_duplicate_key(e):
                raise DuplicateKeyError(name) from e
            raise

    def delete(self, department_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM departments WHERE id=%s", (int(department_id),))
            return cur.rowcount > 0

    def count_users(self, department_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS total FROM users WHERE department_id=%s", (int(department_id),))
            row = fetchone(cur)
            return int(row["total"]) if row else 0

    def list_departments(
        self, *, search: Optional[str], include_count: bool, limit: int, offset: int
    ) -> Sequence[Department]:
        where = ""
        params: list = []
        if search:
            where = " WHERE d.name LIKE %s"
            params.append(like_pattern(search))

        if include_count:
            sql = f"""
                SELECT d.id, d.name, d.created_at, COUNT(u.id) AS employee_count
                FROM departments d
                LEFT JOIN users u ON u.department_id = d.id
                {where}
                GROUP BY d.id, d.name, d.created_at
                ORDER BY d.name ASC
                LIMIT %s OFFSET %s
            """
        else:
            sql = f"""
                SELECT d.id, d.name, d.created_at
                FROM departments d
                {where}
                ORDER BY d.name ASC
                LIMIT %s OFFSET %s
            """

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, (*params, int(limit), int(offset)))
            return [_row_to_department(r) for r in fetchall(cur)]

    def count_departments(self, *, search: Optional[str]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            if search:
                cur.execute("SELECT COUNT(*) AS total FROM departments WHERE name LIKE %s", (like_pattern(search),))
            else:
                cur.execute("SELECT COUNT(*) AS total FROM departments")
            row = fetchone(cur)
            return int(row["total"]) if row else 0

    def summarize(self) -> dict:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS total_departments,
                       SUM(CASE WHEN employee_count > 0 THEN 1 ELSE 0 END) AS departments_with_employees
                FROM (
                    SELECT d.id, COUNT(u.id) AS employee_count
                    FROM departments d
                    LEFT JOIN users u ON u.department_id = d.id
                    GROUP BY d.id
                ) dept_counts
                """
            )
            row = fetchone(cur) or {}
        return {
            "total_departments": int(row.get("total_departments") or 0),
            "departments_with_employees": int(row.get("departments_with_employees") or 0),
        }
