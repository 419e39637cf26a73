"""Role based access rules.

Every helper works on an explicit :class:`RequestContext`; denials raise
:class:`AuthorizationError` and the audited ones are written to the activity
log first.
"""

from __future__ import annotations

from typing import Optional, Union

from ..activity.service import ActivityLogger
from ..core.enums import Action, Role
from ..core.exceptions import AuthorizationError, ValidationError
from .context import RequestContext

# role -> resource -> allowed actions; ``None`` resource holds system actions
PERMISSIONS: dict[Role, dict[Optional[str], tuple[str, ...]]] = {
    Role.ADMIN: {
        "users": ("create", "read", "update", "delete", "list"),
        "departments": ("create", "read", "update", "delete", "list"),
        "attendance": ("read_all", "read_own", "create", "update"),
        None: ("read", "update"),
    },
    Role.EMPLOYEE: {
        "users": ("read_own", "update_own"),
        "departments": ("read",),
        "attendance": ("read_own", "create", "update"),
        None: (),
    },
}


def _role(value: Union[Role, str]) -> Optional[Role]:
    try:
        return Role(value)
    except ValueError:
        return None


def has_role(ctx: Optional[RequestContext], role: Union[Role, str]) -> bool:
    return ctx is not None and ctx.role == _role(role)


def is_admin(ctx: Optional[RequestContext]) -> bool:
    return has_role(ctx, Role.ADMIN)


def can_access_resource(ctx: RequestContext, owner_id: int) -> bool:
    """Admins reach everything, everyone else only their own rows."""
    return ctx.is_admin or ctx.user_id == int(owner_id)


def require_role(ctx: RequestContext, role: Union[Role, str], activity: ActivityLogger) -> None:
    if not has_role(ctx, role):
        activity.log(
            ctx.user_id,
            Action.UNAUTHORIZED_ACCESS,
            f"Required role: {getattr(role, 'value', role)}, User role: {ctx.role.value}",
        )
        raise AuthorizationError("Access denied. Insufficient permissions.", "INSUFFICIENT_PERMISSIONS")


def require_resource_access(ctx: RequestContext, owner_id: int, activity: ActivityLogger) -> None:
    if not can_access_resource(ctx, owner_id):
        activity.log(ctx.user_id, Action.FORBIDDEN_RESOURCE_ACCESS, f"Resource owner: {owner_id}")
        raise AuthorizationError("Access denied. You can only access your own resources.", "RESOURCE_ACCESS_DENIED")


def is_action_allowed(role: Union[Role, str], action: str, resource: Optional[str] = None) -> bool:
    parsed = _role(role)
    if parsed is None:
        return False
    return action in PERMISSIONS[parsed].get(resource, ())


def require_permission(ctx: RequestContext, action: str, resource: Optional[str], activity: ActivityLogger) -> None:
    if not is_action_allowed(ctx.role, action, resource):
        activity.log(
            ctx.user_id,
            Action.PERMISSION_DENIED,
            f"Action: {action}, Resource: {resource}, Role: {ctx.role.value}",
        )
        raise AuthorizationError("Access denied. Insufficient permissions for this action.", "PERMISSION_DENIED")


def user_permissions(ctx: RequestContext) -> dict:
    admin = ctx.is_admin
    return {
        "can_update_profile": True,
        "can_view_all_attendance": admin,
        "can_manage_users": admin,
        "can_manage_departments": admin,
    }


def check_privilege_escalation(ctx: Optional[RequestContext], target_role: Union[Role, str], activity: ActivityLogger) -> bool:
    """True (and audited) when a non-admin tries to hand out the admin role.

    Anonymous callers cannot be audited against a user, so only the return
    value reports them.
    """
    if _role(target_role) != Role.ADMIN:
        return False
    if ctx is None:
        return True
    if ctx.is_admin:
        return False
    activity.log(ctx.user_id, Action.PRIVILEGE_ESCALATION_ATTEMPT, f"Target role: {Role.ADMIN.value}")
    return True


def validate_role_assignment(ctx: RequestContext, target_role: Union[Role, str], target_user_id: Optional[int] = None) -> Role:
    if not ctx.is_admin:
        raise AuthorizationError("Only administrators can assign roles.", "ROLE_ASSIGNMENT_DENIED")

    role = _role(target_role)
    if role is None:
        raise ValidationError("Invalid role specified.", "INVALID_ROLE")

    if target_user_id is not None and int(target_user_id) == ctx.user_id and role != Role.ADMIN:
        raise AuthorizationError("Administrators cannot remove their own admin role.", "SELF_DEMOTION_DENIED")
    return role
