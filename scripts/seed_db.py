"""Create the bootstrap admin account from ADMIN_NAME / ADMIN_EMAIL / ADMIN_PASSWORD."""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.attendance_tracker.attendance_tracker.common.validators import validate_email, validate_password
from src.attendance_tracker.attendance_tracker.database.bootstrap import ensure_admin_user
from src.attendance_tracker.attendance_tracker.database.connection import DBConfig, DatabaseConnection


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())

    email = str(getattr(settings, "ADMIN_EMAIL", ""))
    password = str(getattr(settings, "ADMIN_PASSWORD", ""))
    if not validate_email(email):
        raise SystemExit(f"ADMIN_EMAIL is not a valid email: {email!r}")
    if not validate_password(password):
        raise SystemExit("ADMIN_PASSWORD must be at least 8 characters with letters and numbers.")

    conn = DatabaseConnection(DBConfig.from_mapping(settings.DB_CONFIG))
    user_id = ensure_admin_user(
        conn,
        name=str(getattr(settings, "ADMIN_NAME", "Administrator")),
        email=email,
        password=password,
    )
    print(f"OK: Admin account {email} (id={user_id}) -> {conn.config.database}")


if __name__ == "__main__":
    main()
