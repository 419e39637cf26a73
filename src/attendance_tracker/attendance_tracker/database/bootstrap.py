from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Optional

from werkzeug.security import generate_password_hash

from .connection import DatabaseConnection

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ("users", "departments", "attendance", "activity_logs", "sessions", "rate_limits")


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema.sql usable regardless of the configured DB name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?m)^\s*--.*$", "", sql)
    return sql


def iter_sql_statements(sql: str) -> Iterable[str]:
    """Split a schema file on ``;`` outside of quoted strings."""
    buf: list[str] = []
    quote: Optional[str] = None
    escape = False

    for ch in sql:
        if escape:
            buf.append(ch)
            escape = False
            continue

        if ch == "\\":
            buf.append(ch)
            escape = True
            continue

        if ch in ("'", '"', "`"):
            if quote is None:
                quote = ch
            elif quote == ch:
                quote = None
            buf.append(ch)
            continue

        if ch == ";" and quote is None:
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
            continue

        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def ensure_database_exists(conn_factory: DatabaseConnection) -> None:
    conn = conn_factory.connect(with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{conn_factory.config.database}` "
            "CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(conn_factory: DatabaseConnection, *, schema_path: str | Path) -> None:
    ensure_database_exists(conn_factory)
    sql = _strip_create_db_and_use(Path(schema_path).read_text(encoding="utf-8"))

    conn = conn_factory.connect()
    try:
        cur = conn.cursor()
        for stmt in iter_sql_statements(sql):
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()
    logger.info("Schema applied to %s", conn_factory.config.database)


def ensure_admin_user(conn_factory: DatabaseConnection, *, name: str, email: str, password: str) -> int:
    """Create the bootstrap admin account if its email is not registered yet."""
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=True)
        cur.execute("SELECT id FROM users WHERE email=%s LIMIT 1", (email,))
        row = cur.fetchone()
        if row:
            return int(row["id"])

        cur.execute(
            "INSERT INTO users (name, email, password, role) VALUES (%s, %s, %s, 'admin')",
            (name, email, generate_password_hash(password)),
        )
        conn.commit()
        logger.info("Seeded admin account %s", email)
        return int(cur.lastrowid)
    finally:
        conn.close()


def list_tables(conn_factory: DatabaseConnection) -> list[str]:
    conn = conn_factory.connect()
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()


def inspect_database(conn_factory: DatabaseConnection) -> dict:
    """Connection status, required tables and row counts; never raises."""
    status: dict = {"configured": True, "connected": False, "tables": {}}
    try:
        tables = set(list_tables(conn_factory))
        status["connected"] = True
        status["tables"] = {name: name in tables for name in REQUIRED_TABLES}
        status["statistics"] = _count_rows(conn_factory, tables)
    except Exception as e:
        logger.warning("Database inspection failed: %s", e)
        status["error"] = "Connection failed"
    return status


def _count_rows(conn_factory: DatabaseConnection, tables: set[str]) -> dict:
    conn = conn_factory.connect()
    try:
        cur = conn.cursor()
        stats = {}
        for table, label in (
            ("users", "users"),
            ("departments", "departments"),
            ("attendance", "attendance_records"),
            ("activity_logs", "activity_logs"),
        ):
            if table in tables:
                cur.execute(f"SELECT COUNT(*) FROM `{table}`")
                stats[label] = int(cur.fetchone()[0])
        return stats
    finally:
        conn.close()


def default_schema_path() -> Path:
    return Path(__file__).resolve().parents[4] / "database" / "schema.sql"
