from __future__ import annotations

import pytest


@pytest.fixture
def as_employee(client, login, employee):
    login("bob@example.com")
    return client


def test_checkin_and_checkout(as_employee, clock, employee):
    resp = as_employee.post("/api/attendance/checkin", json={"notes": "on site"})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["message"] == "Check-in successful"
    assert body["data"]["checkin_time"] == "09:00:00"
    assert body["data"]["date"] == "2025-03-10"

    clock.advance(minutes=30)
    resp = as_employee.post("/api/attendance/checkout")
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["total_hours"] == 0.5
    assert data["full_checkout_time"] == "2025-03-10 09:30:00"


def test_checkin_without_body(as_employee):
    assert as_employee.post("/api/attendance/checkin").status_code == 200


def test_double_checkin(as_employee):
    as_employee.post("/api/attendance/checkin")
    resp = as_employee.post("/api/attendance/checkin")
    assert resp.status_code == 400
    assert resp.get_json()["error_code"] == "ALREADY_CHECKED_IN"


def test_checkout_requires_checkin(as_employee):
    resp = as_employee.post("/api/attendance/checkout")
    assert resp.get_json()["error_code"] == "NOT_CHECKED_IN"


def test_admin_can_check_in(client, login, admin):
    login("admin@example.com")
    resp = client.post("/api/attendance/checkin")
    assert resp.status_code == 200
    assert resp.get_json()["data"]["user"]["id"] == admin.user_id


def test_unexpected_error_keeps_rotated_session(as_employee, container, clock, monkeypatch):
    def explode(*args, **kwargs):
        raise RuntimeError("connection to 10.0.0.5 lost")

    monkeypatch.setattr(container.attendance_service, "check_in", explode)
    clock.advance(seconds=301)

    resp = as_employee.post("/api/attendance/checkin")
    assert resp.status_code == 500
    body = resp.get_json()
    assert body["success"] is False
    assert body["error_code"] == "SERVER_ERROR"
    assert "10.0.0.5" not in resp.get_data(as_text=True)
    assert any(h.startswith("attendance_session=") for h in resp.headers.getlist("Set-Cookie"))

    assert as_employee.get("/api/auth/check-session").status_code == 200


def test_checkin_requires_login(client):
    assert client.post("/api/attendance/checkin").status_code == 401


def test_view_self(as_employee):
    as_employee.post("/api/attendance/checkin")
    resp = as_employee.get("/api/attendance/self")
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["summary"]["month"] == 3
    assert data["summary"]["days_present"] == 1
    assert data["attendance"][0]["status"] == "checked_in"
    assert data["pagination"]["limit"] == 30
    assert data["user"]["email"] == "bob@example.com"


@pytest.mark.parametrize(
    "query,code",
    [("month=13", "INVALID_MONTH"), ("year=2019", "INVALID_YEAR"), ("start_date=yesterday", "INVALID_DATE")],
)
def test_view_self_rejects_bad_filters(as_employee, query, code):
    resp = as_employee.get(f"/api/attendance/self?{query}")
    assert resp.status_code == 400
    assert resp.get_json()["error_code"] == code


def test_view_all_is_admin_only(as_employee):
    assert as_employee.get("/api/attendance").status_code == 403


def test_admin_views_all(client, login, admin, employee, container):
    container.attendance_service.check_in(employee, now=container.clock())
    login("admin@example.com")

    resp = client.get("/api/attendance?status=checked_in&search=bob")
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    record = data["attendance"][0]
    assert record["user_name"] == "Bob Worker"
    assert record["department_name"] == "Engineering"
    assert data["summary"]["unique_users"] == 1
    assert data["filters"]["status"] == "checked_in"
    assert data["filters"]["start_date"] is None

    data = client.get("/api/attendance?status=complete").get_json()["data"]
    assert data["attendance"] == []


@pytest.mark.parametrize(
    "query,code",
    [("status=late", "INVALID_STATUS"), ("user_id=abc", "INVALID_USER_ID"), ("user_id=-1", "INVALID_USER_ID")],
)
def test_view_all_rejects_bad_filters(client, login, admin, query, code):
    login("admin@example.com")
    resp = client.get(f"/api/attendance?{query}")
    assert resp.status_code == 400
    assert resp.get_json()["error_code"] == code
