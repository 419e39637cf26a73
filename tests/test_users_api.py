from __future__ import annotations

from datetime import datetime

import pytest


@pytest.fixture
def as_admin(client, login, admin):
    login("admin@example.com")
    return client


@pytest.fixture
def as_employee(client, login, employee):
    login("bob@example.com")
    return client


def test_list_requires_admin(as_employee, db, employee):
    resp = as_employee.get("/api/users")
    assert resp.status_code == 403
    assert resp.get_json()["error_code"] == "INSUFFICIENT_PERMISSIONS"
    assert "UNAUTHORIZED_ACCESS" in db.actions(employee.user_id)


def test_list_requires_login(client):
    resp = client.get("/api/users")
    assert resp.status_code == 401
    assert resp.get_json()["error_code"] == "AUTH_REQUIRED"


def test_admin_lists_users(as_admin, employee, container):
    container.attendance_service.check_in(employee, now=datetime(2025, 3, 10, 8, 0, 0))

    resp = as_admin.get("/api/users?role=employee")
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert [u["email"] for u in data["users"]] == ["bob@example.com"]
    row = data["users"][0]
    assert row["attendance_count"] == 1
    assert row["activity_status"] == "present"
    assert data["summary"]["total_users"] == 2
    assert data["filters"]["role"] == "employee"
    assert data["pagination"] == {"total": 1, "limit": 50, "offset": 0, "has_more": False}


def test_status_filter_counts_match(as_admin, employee):
    data = as_admin.get("/api/users?status=inactive").get_json()["data"]
    assert data["pagination"]["total"] == len(data["users"]) == 2

    data = as_admin.get("/api/users?status=active").get_json()["data"]
    assert data["pagination"]["total"] == 0


@pytest.mark.parametrize(
    "query,code",
    [("role=owner", "INVALID_ROLE"), ("status=busy", "INVALID_STATUS"), ("department_id=x", "INVALID_DEPARTMENT_ID")],
)
def test_list_rejects_bad_filters(as_admin, query, code):
    resp = as_admin.get(f"/api/users?{query}")
    assert resp.status_code == 400
    assert resp.get_json()["error_code"] == code


def test_employee_views_own_profile(as_employee, employee):
    resp = as_employee.get(f"/api/users/{employee.user_id}")
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["department_name"] == "Engineering"
    assert data["statistics"]["total_attendance_days"] == 0
    assert data["permissions"]["can_manage_users"] is False
    assert data["recent_attendance"] == []


def test_employee_cannot_view_others(as_employee, admin):
    resp = as_employee.get(f"/api/users/{admin.user_id}")
    assert resp.status_code == 403
    assert resp.get_json()["error_code"] == "ACCESS_DENIED"


def test_admin_views_other_profile_without_permissions_block(as_admin, employee):
    data = as_admin.get(f"/api/users/{employee.user_id}").get_json()["data"]
    assert data["email"] == "bob@example.com"
    assert "permissions" not in data


def test_profile_lookup_errors(as_admin):
    assert as_admin.get("/api/users/abc").get_json()["error_code"] == "INVALID_USER_ID"
    resp = as_admin.get("/api/users/999")
    assert resp.status_code == 404
    assert resp.get_json()["error_code"] == "USER_NOT_FOUND"


def test_employee_updates_own_name(as_employee, db, employee):
    resp = as_employee.put(f"/api/users/{employee.user_id}", json={"name": "Robert Worker"})
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["name"] == "Robert Worker"
    assert data["updated_fields"] == ["name"]
    assert db.users[employee.user_id].name == "Robert Worker"


def test_employee_cannot_change_role(as_employee, employee):
    resp = as_employee.patch(f"/api/users/{employee.user_id}", json={"role": "admin"})
    assert resp.status_code == 403
    assert resp.get_json()["error_code"] == "ROLE_CHANGE_DENIED"


def test_empty_update(as_employee, employee):
    resp = as_employee.post(f"/api/users/{employee.user_id}", json={})
    assert resp.status_code == 400
    assert resp.get_json()["error_code"] == "NO_UPDATES"


def test_password_change_requires_current_password(as_employee, client, employee):
    url = f"/api/users/{employee.user_id}"

    resp = as_employee.put(url, json={"password": "newpass99"})
    assert resp.get_json()["error_code"] == "CURRENT_PASSWORD_REQUIRED"

    resp = as_employee.put(url, json={"password": "newpass99", "current_password": "nope1234"})
    assert resp.status_code == 401
    assert resp.get_json()["error_code"] == "INVALID_CURRENT_PASSWORD"

    resp = as_employee.put(url, json={"password": "newpass99", "current_password": "secret123"})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["updated_fields"] == ["password"]

    resp = client.post("/api/auth/login", json={"email": "bob@example.com", "password": "newpass99"})
    assert resp.status_code == 200


def test_email_change_ends_the_session(as_employee, employee):
    resp = as_employee.put(f"/api/users/{employee.user_id}", json={"email": "robert@example.com"})
    assert resp.status_code == 200

    resp = as_employee.get("/api/auth/check-session")
    assert resp.status_code == 401
    assert resp.get_json()["error_code"] == "INVALID_SESSION"


def test_email_must_be_unique(as_employee, admin, employee):
    resp = as_employee.put(f"/api/users/{employee.user_id}", json={"email": "admin@example.com"})
    assert resp.get_json()["error_code"] == "EMAIL_EXISTS"


def test_admin_changes_role_and_department(as_admin, db, employee, engineering):
    resp = as_admin.put(f"/api/users/{employee.user_id}", json={"role": "admin", "department_id": None})
    assert resp.status_code == 200
    assert db.users[employee.user_id].role.value == "admin"
    assert db.users[employee.user_id].department_id is None


def test_admin_cannot_demote_self(as_admin, admin):
    resp = as_admin.put(f"/api/users/{admin.user_id}", json={"role": "employee"})
    assert resp.status_code == 403
    assert resp.get_json()["error_code"] == "SELF_DEMOTION_DENIED"


def test_delete_user(as_admin, db, make_user, clock, container):
    target = make_user("Temp", "temp@example.com")
    container.session_manager.start(target, ip=None, now=clock())

    resp = as_admin.delete(f"/api/users/{target.user_id}")
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["deleted_user"]["email"] == "temp@example.com"
    assert data["deleted_by"]["name"] == "Alice Admin"
    assert target.user_id not in db.users
    assert all(s.user_id != target.user_id for s in db.sessions.values())


def test_delete_rules(as_admin, admin, employee, container):
    resp = as_admin.delete(f"/api/users/{admin.user_id}")
    assert resp.status_code == 403
    assert resp.get_json()["error_code"] == "SELF_DELETION_DENIED"

    container.attendance_service.check_in(employee, now=datetime(2025, 3, 10, 8, 0, 0))
    resp = as_admin.delete(f"/api/users/{employee.user_id}")
    assert resp.status_code == 400
    assert resp.get_json()["error_code"] == "HAS_ATTENDANCE_RECORDS"

    assert as_admin.delete("/api/users/999").status_code == 404


def test_employee_cannot_delete(as_employee, admin):
    resp = as_employee.delete(f"/api/users/{admin.user_id}")
    assert resp.status_code == 403
