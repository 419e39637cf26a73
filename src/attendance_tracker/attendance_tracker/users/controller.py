from __future__ import annotations

from flask import Flask, request

from ..common.http import get_pagination_params, optional_int_arg, read_json_body, success
from ..container import Container


def register(app: Flask, container: Container) -> None:
    guard = container.auth_guard

    @app.route("/api/users", methods=["GET"], endpoint="users_list")
    @guard.admin_required
    def list_users(ctx):
        """List users (admin only)"""
        args = request.args
        result = container.user_service.list_users(
            ctx.user,
            department_id=optional_int_arg(args, "department_id", error_code="INVALID_DEPARTMENT_ID", label="department ID"),
            role=args.get("role"),
            search=args.get("search"),
            status=args.get("status"),
            pagination=get_pagination_params(args, 50, 200),
            today=container.clock().date(),
        )
        return success(result, "Users list retrieved successfully")

    @app.route("/api/users/<user_id>", methods=["GET"], endpoint="users_get")
    @guard.login_required
    def get_user(ctx, user_id):
        """Single user details"""
        result = container.user_service.get_profile(ctx, user_id, today=container.clock().date())
        return success(result, "User details retrieved successfully")

    @app.route("/api/users/<user_id>", methods=["POST", "PUT", "PATCH"], endpoint="users_update")
    @guard.login_required
    def update_user(ctx, user_id):
        """Update user information"""
        data = read_json_body(request)
        result = container.user_service.update_user(ctx, user_id, data)
        return success(result, "User updated successfully")

    @app.route("/api/users/<user_id>", methods=["DELETE"], endpoint="users_delete")
    @guard.admin_required
    def delete_user(ctx, user_id):
        """Delete user (admin only)"""
        result = container.user_service.delete_user(ctx, user_id)
        return success(result, "User deleted successfully")
