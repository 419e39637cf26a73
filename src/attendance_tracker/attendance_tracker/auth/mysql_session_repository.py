from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import SessionRecord
from .repository import SessionRepository


class MySQLSessionRepository(SessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, session_id: str) -> Optional[SessionRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT session_id, user_id, email, role, login_time, last_activity, last_regeneration,
                       last_ip, last_request
                FROM sessions
                WHERE session_id=%s
                LIMIT 1
                """,
                (session_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return SessionRecord(
                session_id=r["session_id"],
                user_id=int(r["user_id"]),
                email=r["email"],
                role=Role(r["role"]),
                login_time=r["login_time"],
                last_activity=r["last_activity"],
                last_regeneration=r["last_regeneration"],
                last_ip=r.get("last_ip"),
                last_request=r.get("last_request"),
            )

    def create(self, record: SessionRecord) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO sessions (session_id, user_id, email, role, login_time, last_activity, last_regeneration, last_ip)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    record.session_id,
                    record.user_id,
                    record.email,
                    record.role.value,
                    record.login_time,
                    record.last_activity,
                    record.last_regeneration,
                    record.last_ip,
                ),
            )

    def touch(self, session_id: str, *, last_activity: datetime, last_ip: Optional[str]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE sessions SET last_activity=%s, last_request=%s, last_ip=%s WHERE session_id=%s",
                (last_activity, last_activity, last_ip, session_id),
            )

    def rotate(self, old_session_id: str, new_session_id: str, *, regenerated_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE sessions SET session_id=%s, last_regeneration=%s WHERE session_id=%s",
                (new_session_id, regenerated_at, old_session_id),
            )
            return cur.rowcount > 0

    def delete(self, session_id: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM sessions WHERE session_id=%s", (session_id,))
