from __future__ import annotations

from flask import Flask, request

from ..common.http import get_date_range, get_pagination_params, optional_int_arg, read_json_body, success
from ..container import Container


def register(app: Flask, container: Container) -> None:
    guard = container.auth_guard

    @app.route("/api/attendance/checkin", methods=["POST"], endpoint="attendance_checkin")
    @guard.login_required
    def checkin(ctx):
        """Record check-in for today"""
        data = read_json_body(request, required=False)
        result = container.attendance_service.check_in(ctx.user, notes=data.get("notes"), now=container.clock())
        return success(result, "Check-in successful")

    @app.route("/api/attendance/checkout", methods=["POST"], endpoint="attendance_checkout")
    @guard.login_required
    def checkout(ctx):
        """Record check-out for today"""
        result = container.attendance_service.check_out(ctx.user, now=container.clock())
        return success(result, "Check-out successful")

    @app.route("/api/attendance/self", methods=["GET"], endpoint="attendance_self")
    @guard.login_required
    def view_self(ctx):
        """Personal attendance history"""
        result = container.attendance_service.view_self(
            ctx.user,
            month=request.args.get("month"),
            year=request.args.get("year"),
            date_range=get_date_range(request.args),
            pagination=get_pagination_params(request.args, 30, 100),
            today=container.clock().date(),
        )
        return success(result, "Attendance records retrieved successfully")

    @app.route("/api/attendance", methods=["GET"], endpoint="attendance_all")
    @guard.admin_required
    def view_all(ctx):
        """All attendance records (admin only)"""
        args = request.args
        result = container.attendance_service.view_all(
            ctx.user,
            user_id=optional_int_arg(args, "user_id", error_code="INVALID_USER_ID", label="user ID"),
            department_id=optional_int_arg(args, "department_id", error_code="INVALID_DEPARTMENT_ID", label="department ID"),
            month=args.get("month"),
            year=args.get("year"),
            status=args.get("status"),
            search=args.get("search"),
            date_range=get_date_range(args),
            pagination=get_pagination_params(args, 50, 200),
            today=container.clock().date(),
        )
        return success(result, "Attendance records retrieved successfully")
