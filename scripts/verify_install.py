"""Check that the API can run: settings, database connection and required tables.

Exit status is non-zero when any check fails.
"""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.attendance_tracker.attendance_tracker.database.bootstrap import REQUIRED_TABLES, default_schema_path, inspect_database
from src.attendance_tracker.attendance_tracker.database.connection import DBConfig, DatabaseConnection


def run_checks(settings) -> list[tuple[str, bool, str]]:
    checks: list[tuple[str, bool, str]] = []

    secret = str(getattr(settings, "SECRET_KEY", ""))
    checks.append(("SECRET_KEY set", bool(secret) and not secret.startswith("please-set"), ""))

    schema = default_schema_path()
    checks.append(("schema.sql present", schema.is_file(), str(schema)))

    conn = DatabaseConnection(DBConfig.from_mapping(settings.DB_CONFIG))
    status = inspect_database(conn)
    checks.append(("database connection", bool(status["connected"]), status.get("error", conn.config.database)))

    tables = status.get("tables") or {}
    for table in REQUIRED_TABLES:
        checks.append((f"table {table}", bool(tables.get(table)), ""))

    return checks


def main() -> int:
    load_dotenv(override=False)
    settings_name = get_settings_module()
    settings = importlib.import_module(settings_name)
    print(f"settings: {settings_name}")

    failed = 0
    for name, ok, detail in run_checks(settings):
        failed += 0 if ok else 1
        suffix = f" ({detail})" if detail else ""
        print(f"[{'OK' if ok else 'FAIL'}] {name}{suffix}")

    if failed:
        print(f"{failed} check(s) failed. Run scripts/init_db.py to create missing tables.")
        return 1
    print("Installation looks good.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
