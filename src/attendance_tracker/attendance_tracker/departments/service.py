from __future__ import annotations

from typing import Any, Mapping, Optional

from ..activity.service import ActivityLogger
from ..auth.context import RequestContext
from ..common.http import Pagination
from ..common.validators import require_fields, require_name, require_positive_id, sanitize_input
from ..core.enums import Action
from ..core.exceptions import DuplicateKeyError, NotFoundError, ValidationError
from ..ratelimit.limiter import RateLimiter
from .model import Department
from .repository import DepartmentRepository


def _department_id(value: Any) -> int:
    return require_positive_id(value, error_code="INVALID_DEPARTMENT_ID", label="department ID")


def _department_name(value: Any) -> str:
    return require_name(
        sanitize_input(value),
        error_code="INVALID_NAME_LENGTH",
        label="Department name",
    )


class DepartmentService:
    def __init__(self, departments: DepartmentRepository, limiter: RateLimiter, activity: ActivityLogger):
        self._departments = departments
        self._limiter = limiter
        self._activity = activity

    def list_departments(
        self,
        ctx: RequestContext,
        *,
        search: Optional[str] = None,
        include_count: bool = False,
        pagination: Pagination,
    ) -> dict:
        search = sanitize_input(search) if search else None
        rows = self._departments.list_departments(
            search=search,
            include_count=include_count,
            limit=pagination.limit,
            offset=pagination.offset,
        )
        total = self._departments.count_departments(search=search)

        self._activity.log(ctx.user_id, Action.VIEW_DEPARTMENTS, f"Records: {len(rows)}")
        return {
            "departments": [d.to_dict() for d in rows],
            "summary": self._departments.summarize(),
            "filters": {"search": search, "include_employee_count": include_count},
            "pagination": pagination.describe(total),
        }

    def create_department(self, ctx: RequestContext, data: Mapping[str, Any]) -> dict:
        require_fields(data, ("name",))
        name = _department_name(data["name"])

        if self._departments.name_exists(name):
            raise ValidationError("Department with this name already exists.", "DEPARTMENT_EXISTS")

        self._limiter.check_operation(
            "create_department",
            f"create_department_{ctx.user_id}",
            message="Too many department creation attempts. Please try again later.",
        )

        try:
            department_id = self._departments.create(name)
        except DuplicateKeyError:
            raise ValidationError("Department with this name already exists.", "DEPARTMENT_EXISTS")

        self._activity.log(ctx.user_id, Action.DEPARTMENT_CREATE, f"Created department: {name} (ID: {department_id})")
        created = self._departments.get_by_id(department_id) or Department(department_id=department_id, name=name)
        department = created.to_dict()
        department.pop("employee_count", None)
        return {"department": department, "created_by": ctx.actor()}

    def update_department(self, ctx: RequestContext, department_id: Any, data: Mapping[str, Any]) -> dict:
        department_id = _department_id(department_id)
        existing = self._departments.get_by_id(department_id)
        if existing is None:
            raise NotFoundError("Department not found.", "DEPARTMENT_NOT_FOUND")

        changes: dict[str, str] = {}
        if data.get("name") is not None:
            name = _department_name(data["name"])
            if name != existing.name and self._departments.name_exists(name, exclude_id=department_id):
                raise ValidationError("Department with this name already exists.", "DEPARTMENT_NAME_EXISTS")
            changes["name"] = name

        if not changes:
            raise ValidationError("No valid update fields provided.", "NO_UPDATES")

        self._limiter.check_operation(
            "update_department",
            f"update_department_{ctx.user_id}",
            message="Too many department update attempts. Please try again later.",
        )

        try:
            self._departments.rename(department_id, changes["name"])
        except DuplicateKeyError:
            raise ValidationError("Department with this name already exists.", "DEPARTMENT_NAME_EXISTS")

        self._activity.log(
            ctx.user_id,
            Action.DEPARTMENT_UPDATE,
            f"Updated department ID {department_id}: name: '{existing.name}' -> '{changes['name']}'",
        )

        updated = self._departments.get_by_id(department_id) or existing
        department = updated.to_dict()
        department["employee_count"] = self._departments.count_users(department_id)
        return {
            "department": department,
            "updated_fields": list(changes),
            "updated_by": ctx.actor(),
        }

    def delete_department(self, ctx: RequestContext, department_id: Any) -> dict:
        department_id = _department_id(department_id)
        existing = self._departments.get_by_id(department_id)
        if existing is None:
            raise NotFoundError("Department not found.", "DEPARTMENT_NOT_FOUND")

        if self._departments.count_users(department_id) > 0:
            raise ValidationError(
                "Cannot delete department with assigned users. Please reassign or remove users first.",
                "HAS_ASSIGNED_USERS",
            )

        self._limiter.check_operation(
            "delete_department",
            f"delete_department_{ctx.user_id}",
            message="Too many department deletion attempts. Please try again later.",
        )

        if not self._departments.delete(department_id):
            raise NotFoundError("Department not found.", "DEPARTMENT_NOT_FOUND")

        self._activity.log(
            ctx.user_id,
            Action.DEPARTMENT_DELETE,
            f"Deleted department: {existing.name} (ID: {department_id})",
        )
        department = existing.to_dict()
        department.pop("employee_count", None)
        return {"deleted_department": department, "deleted_by": ctx.actor()}
