from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import format_datetime
from ..common.http import get_client_ip, read_json_body, success
from ..common.validators import require_fields
from ..container import Container


def register(app: Flask, container: Container) -> None:
    guard = container.auth_guard

    @app.route("/api/auth/login", methods=["POST"], endpoint="auth_login")
    def login():
        """Authenticate user and create session"""
        data = read_json_body(request)
        require_fields(data, ("email", "password"))

        # A new login always starts from a fresh session.
        container.session_manager.destroy(guard.session_id())

        user, record = container.auth_service.login(
            email=str(data["email"]),
            password=str(data["password"]),
            ip=get_client_ip(request),
            now=container.clock(),
        )
        response = success(
            {
                "user": user.to_public(),
                "session_info": {
                    "session_id": record.session_id,
                    "login_time": format_datetime(record.login_time),
                },
            },
            "Login successful",
        )
        guard.bind(record.session_id)
        return response

    @app.route("/api/auth/register", methods=["POST"], endpoint="auth_register")
    @guard.optional_login
    def register_user(ctx):
        """Register new user account"""
        data = read_json_body(request)
        require_fields(data, ("name", "email", "password"))

        user = container.auth_service.register(
            name=str(data["name"]),
            email=str(data["email"]),
            password=str(data["password"]),
            role=data.get("role"),
            department_id=data.get("department_id"),
            ip=get_client_ip(request),
            ctx=ctx,
        )
        return success({"user": user.to_public()}, "Registration successful. You can now login.")

    @app.route("/api/auth/check-session", methods=["GET"], endpoint="auth_check_session")
    @guard.login_required(missing_code="NO_SESSION")
    def check_session(ctx):
        """Validate current session"""
        session_info = container.auth_service.session_info(ctx, now=container.clock())
        return success({"user": ctx.user.to_public(), "session": session_info}, "Session is valid")

    @app.route("/api/auth/logout", methods=["GET", "POST"], endpoint="auth_logout")
    @guard.login_required(missing_code="NO_SESSION")
    def logout(ctx):
        """Destroy user session"""
        container.auth_service.logout(ctx)
        guard.unbind()
        return success(None, "Logged out successfully")
