from __future__ import annotations

from flask import Flask, request

from ..common.http import get_pagination_params, read_json_body, success
from ..container import Container


def register(app: Flask, container: Container) -> None:
    guard = container.auth_guard

    @app.route("/api/departments", methods=["GET"], endpoint="departments_list")
    @guard.login_required
    def list_departments(ctx):
        """List departments"""
        args = request.args
        result = container.department_service.list_departments(
            ctx,
            search=args.get("search"),
            include_count=args.get("include_count") == "true",
            pagination=get_pagination_params(args, 100, 500),
        )
        return success(result, "Departments list retrieved successfully")

    @app.route("/api/departments", methods=["POST"], endpoint="departments_create")
    @guard.admin_required
    def create_department(ctx):
        """Create department (admin only)"""
        result = container.department_service.create_department(ctx, read_json_body(request))
        return success(result, "Department created successfully")

    @app.route("/api/departments/<department_id>", methods=["POST", "PUT", "PATCH"], endpoint="departments_update")
    @guard.admin_required
    def update_department(ctx, department_id):
        """Update department (admin only)"""
        result = container.department_service.update_department(ctx, department_id, read_json_body(request))
        return success(result, "Department updated successfully")

    @app.route("/api/departments/<department_id>", methods=["DELETE"], endpoint="departments_delete")
    @guard.admin_required
    def delete_department(ctx, department_id):
        """Delete department (admin only)"""
        result = container.department_service.delete_department(ctx, department_id)
        return success(result, "Department deleted successfully")
