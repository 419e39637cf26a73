from __future__ import annotations

import importlib
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Mapping, Optional

import pytest
from werkzeug.security import generate_password_hash

from src.attendance_tracker.attendance_tracker.activity.model import ActivityLog
from src.attendance_tracker.attendance_tracker.attendance.model import AttendanceQuery, AttendanceRecord, AttendanceSummary
from src.attendance_tracker.attendance_tracker.auth.model import SessionRecord
from src.attendance_tracker.attendance_tracker.container import wire
from src.attendance_tracker.attendance_tracker.core.constants import RECENT_ACTIVITY_DAYS
from src.attendance_tracker.attendance_tracker.core.enums import Role
from src.attendance_tracker.attendance_tracker.core.exceptions import DuplicateKeyError
from src.attendance_tracker.attendance_tracker.departments.model import Department
from src.attendance_tracker.attendance_tracker.main import create_app
from src.attendance_tracker.attendance_tracker.ratelimit.store import InMemoryRateLimitStore
from src.attendance_tracker.attendance_tracker.users.model import User, UserListRow, UserQuery, activity_status_for

FIXED_NOW = datetime(2025, 3, 10, 9, 0, 0)
PASSWORD = "secret123"


class FakeClock:
    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now = self.now + timedelta(**delta)


@dataclass
class FakeDatabase:
    """Shared tables behind the in-memory repositories."""

    users: dict[int, User] = field(default_factory=dict)
    departments: dict[int, Department] = field(default_factory=dict)
    attendance: dict[int, AttendanceRecord] = field(default_factory=dict)
    sessions: dict[str, SessionRecord] = field(default_factory=dict)
    activity: list[ActivityLog] = field(default_factory=list)
    next_id: int = 0

    def new_id(self) -> int:
        self.next_id += 1
        return self.next_id

    def actions(self, user_id: Optional[int] = None) -> list[str]:
        return [a.action for a in self.activity if user_id is None or a.user_id == user_id]


def _matches_search(term: Optional[str], *values: Optional[str]) -> bool:
    if not term:
        return True
    term = term.lower()
    return any(term in (v or "").lower() for v in values)


class InMemoryUsers:
    def __init__(self, db: FakeDatabase):
        self._db = db

    def _with_department(self, user: User) -> User:
        dept = self._db.departments.get(user.department_id) if user.department_id else None
        return replace(user, department_name=dept.name if dept else None)

    def get_by_id(self, user_id: int) -> Optional[User]:
        user = self._db.users.get(int(user_id))
        return self._with_department(user) if user else None

    def get_by_email(self, email: str) -> Optional[User]:
        for user in self._db.users.values():
            if user.email == email:
                return self._with_department(user)
        return None

    def email_exists(self, email: str, *, exclude_id: Optional[int] = None) -> bool:
        return any(u.email == email and u.user_id != exclude_id for u in self._db.users.values())

    def create_user(self, *, name, email, password_hash, role, department_id) -> int:
        if self.email_exists(email):
            raise DuplicateKeyError(email)
        user_id = self._db.new_id()
        self._db.users[user_id] = User(
            user_id=user_id,
            name=name,
            email=email,
            password_hash=password_hash,
            role=Role(role),
            department_id=department_id,
            created_at=FIXED_NOW,
        )
        return user_id

    def update_user(self, user_id: int, changes: Mapping[str, object]) -> None:
        values = dict(changes)
        if "password" in values:
            values["password_hash"] = values.pop("password")
        if "email" in values and self.email_exists(str(values["email"]), exclude_id=user_id):
            raise DuplicateKeyError(str(values["email"]))
        self._db.users[user_id] = replace(self._db.users[user_id], **values)

    def delete_user_cascade(self, user_id: int) -> bool:
        self._db.sessions = {k: s for k, s in self._db.sessions.items() if s.user_id != user_id}
        self._db.activity = [a for a in self._db.activity if a.user_id != user_id]
        self._db.attendance = {k: r for k, r in self._db.attendance.items() if r.user_id != user_id}
        return self._db.users.pop(user_id, None) is not None

    def _rows(self, query: UserQuery) -> list[UserListRow]:
        today = query.today or FIXED_NOW.date()
        cutoff = today - timedelta(days=RECENT_ACTIVITY_DAYS)
        rows = []
        for user in self._db.users.values():
            if query.department_id and user.department_id != query.department_id:
                continue
            if query.role and user.role != query.role:
                continue
            if not _matches_search(query.search, user.name, user.email):
                continue
            dates = [r.work_date for r in self._db.attendance.values() if r.user_id == user.user_id]
            last = max(dates, default=None)
            if query.status == "active" and (last is None or last < cutoff):
                continue
            if query.status == "inactive" and last is not None and last >= cutoff:
                continue
            rows.append(UserListRow(self._with_department(user), len(dates), last, activity_status_for(last, today)))
        return rows

    def list_users(self, query: UserQuery, *, limit: int, offset: int):
        rows = sorted(self._rows(query), key=lambda r: r.user.user_id, reverse=True)
        return rows[offset : offset + limit]

    def count_users(self, query: UserQuery) -> int:
        return len(self._rows(query))

    def summarize_users(self) -> dict:
        users = list(self._db.users.values())
        return {
            "total_users": len(users),
            "admin_count": sum(1 for u in users if u.role == Role.ADMIN),
            "employee_count": sum(1 for u in users if u.role == Role.EMPLOYEE),
            "with_department": sum(1 for u in users if u.department_id),
            "departments_used": len({u.department_id for u in users if u.department_id}),
        }


class InMemoryDepartments:
    def __init__(self, db: FakeDatabase):
        self._db = db

    def get_by_id(self, department_id: int) -> Optional[Department]:
        return self._db.departments.get(int(department_id))

    def name_exists(self, name: str, *, exclude_id: Optional[int] = None) -> bool:
        return any(d.name == name and d.department_id != exclude_id for d in self._db.departments.values())

    def create(self, name: str) -> int:
        if self.name_exists(name):
            raise DuplicateKeyError(name)
        department_id = self._db.new_id()
        self._db.departments[department_id] = Department(department_id, name, created_at=FIXED_NOW)
        return department_id

    def rename(self, department_id: int, name: str) -> None:
        self._db.departments[department_id] = replace(self._db.departments[department_id], name=name)

    def delete(self, department_id: int) -> bool:
        return self._db.departments.pop(department_id, None) is not None

    def count_users(self, department_id: int) -> int:
        return sum(1 for u in self._db.users.values() if u.department_id == department_id)

    def list_departments(self, *, search, include_count, limit, offset):
        rows = sorted(
            (d for d in self._db.departments.values() if _matches_search(search, d.name)),
            key=lambda d: d.name,
        )
        if include_count:
            rows = [replace(d, employee_count=self.count_users(d.department_id)) for d in rows]
        return rows[offset : offset + limit]

    def count_departments(self, *, search) -> int:
        return sum(1 for d in self._db.departments.values() if _matches_search(search, d.name))

    def summarize(self) -> dict:
        used = {u.department_id for u in self._db.users.values() if u.department_id}
        return {
            "total_departments": len(self._db.departments),
            "departments_with_employees": sum(1 for d in self._db.departments if d in used),
        }


class InMemoryAttendance:
    def __init__(self, db: FakeDatabase):
        self._db = db

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        for record in self._db.attendance.values():
            if record.user_id == user_id and record.work_date == work_date:
                return record
        return None

    def create_checkin(self, *, user_id: int, work_date: date, checkin_time: datetime) -> int:
        if self.get_for_user_and_date(user_id, work_date) is not None:
            raise DuplicateKeyError(f"{user_id}/{work_date}")
        attendance_id = self._db.new_id()
        self._db.attendance[attendance_id] = AttendanceRecord(
            attendance_id=attendance_id,
            user_id=user_id,
            work_date=work_date,
            checkin_time=checkin_time,
            checkout_time=None,
            created_at=checkin_time,
        )
        return attendance_id

    def record_checkout(self, *, attendance_id: int, checkout_time: datetime) -> bool:
        record = self._db.attendance.get(attendance_id)
        if record is None or record.checkout_time is not None:
            return False
        self._db.attendance[attendance_id] = replace(record, checkout_time=checkout_time)
        return True

    def count_for_user(self, user_id: int) -> int:
        return sum(1 for r in self._db.attendance.values() if r.user_id == user_id)

    def _matching(self, query: AttendanceQuery) -> list[AttendanceRecord]:
        out = []
        for record in self._db.attendance.values():
            user = self._db.users.get(record.user_id)
            department_id = user.department_id if user else None
            if not _attendance_matches(query, record, department_id):
                continue
            if user is not None and not _matches_search(query.search, user.name, user.email):
                continue
            dept = self._db.departments.get(department_id) if department_id else None
            out.append(
                replace(
                    record,
                    user_name=user.name if user else None,
                    user_email=user.email if user else None,
                    department_name=dept.name if dept else None,
                )
            )
        return out

    def list_records(self, query: AttendanceQuery, *, limit: int, offset: int):
        rows = sorted(self._matching(query), key=lambda r: r.work_date, reverse=True)
        return rows[offset : offset + limit]

    def count_records(self, query: AttendanceQuery) -> int:
        return len(self._matching(query))

    def summarize(self, query: AttendanceQuery) -> AttendanceSummary:
        return _summarize(self._matching(query))


def _attendance_matches(query: AttendanceQuery, record: AttendanceRecord, department_id) -> bool:
    if query.user_id is not None and record.user_id != query.user_id:
        return False
    if query.department_id is not None and department_id != query.department_id:
        return False
    if query.month is not None and record.work_date.month != query.month:
        return False
    if query.year is not None and record.work_date.year != query.year:
        return False
    if query.status is not None and record.status != query.status:
        return False
    if query.start_date is not None and record.work_date < query.start_date:
        return False
    if query.end_date is not None and record.work_date > query.end_date:
        return False
    return True


def _summarize(records: list[AttendanceRecord]) -> AttendanceSummary:
    durations = [
        (r.checkout_time - r.checkin_time).total_seconds() for r in records if r.checkin_time and r.checkout_time
    ]
    return AttendanceSummary(
        total_days=len(records),
        days_present=sum(1 for r in records if r.checkin_time),
        days_complete=sum(1 for r in records if r.checkout_time),
        unique_users=len({r.user_id for r in records}),
        average_hours=round(sum(durations) / len(durations) / 3600, 2) if durations else 0.0,
        last_date=max((r.work_date for r in records), default=None),
    )


class InMemorySessions:
    def __init__(self, db: FakeDatabase):
        self._db = db

    def get(self, session_id: str) -> Optional[SessionRecord]:
        return self._db.sessions.get(session_id)

    def create(self, record: SessionRecord) -> None:
        self._db.sessions[record.session_id] = record

    def touch(self, session_id: str, *, last_activity: datetime, last_ip: Optional[str]) -> None:
        record = self._db.sessions.get(session_id)
        if record is not None:
            self._db.sessions[session_id] = record.with_changes(
                last_activity=last_activity, last_request=last_activity, last_ip=last_ip
            )

    def rotate(self, old_session_id: str, new_session_id: str, *, regenerated_at: datetime) -> bool:
        record = self._db.sessions.pop(old_session_id, None)
        if record is None:
            return False
        self._db.sessions[new_session_id] = record.with_changes(
            session_id=new_session_id,
            last_regeneration=regenerated_at,
        )
        return True

    def delete(self, session_id: str) -> None:
        self._db.sessions.pop(session_id, None)


class InMemoryActivity:
    def __init__(self, db: FakeDatabase):
        self._db = db

    def add(self, *, user_id: int, action: str) -> int:
        log_id = len(self._db.activity) + 1
        self._db.activity.append(ActivityLog(log_id=log_id, user_id=user_id, action=action, created_at=FIXED_NOW))
        return log_id


def add_user(db: FakeDatabase, name: str, email: str, *, role: Role = Role.EMPLOYEE, department_id=None) -> User:
    user_id = InMemoryUsers(db).create_user(
        name=name,
        email=email,
        password_hash=generate_password_hash(PASSWORD),
        role=role,
        department_id=department_id,
    )
    return db.users[user_id]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def engineering(db) -> Department:
    department_id = InMemoryDepartments(db).create("Engineering")
    return db.departments[department_id]


@pytest.fixture
def admin(db) -> User:
    return add_user(db, "Alice Admin", "admin@example.com", role=Role.ADMIN)


@pytest.fixture
def employee(db, engineering) -> User:
    return add_user(db, "Bob Worker", "bob@example.com", department_id=engineering.department_id)


@pytest.fixture
def settings():
    return importlib.import_module("config.testing")


@pytest.fixture
def container(db, clock, settings):
    return wire(
        conn=None,
        users_repo=InMemoryUsers(db),
        departments_repo=InMemoryDepartments(db),
        attendance_repo=InMemoryAttendance(db),
        sessions_repo=InMemorySessions(db),
        activity_repo=InMemoryActivity(db),
        rate_limit_store=InMemoryRateLimitStore(),
        settings=settings,
        clock=clock,
    )


@pytest.fixture
def app(settings, container):
    return create_app(settings=settings, container=container)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client):
    def _login(email: str, password: str = PASSWORD):
        resp = client.post("/api/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.get_json()
        return resp

    return _login


@pytest.fixture
def make_user(db):
    def _make(name: str, email: str, **kwargs) -> User:
        return add_user(db, name, email, **kwargs)

    return _make
