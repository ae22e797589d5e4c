"""Role-based access control for rentflow."""

from .permissions import Resource, Action, Permission, PERMISSION_DEFINITIONS, is_valid_permission
from .roles import ROLE_PERMISSIONS, ELEVATED_ROLES, SCOPED_ROLES, get_role_permissions
from .checker import PermissionChecker, require_permission
from .context import (
    CallerContext,
    SqlAssignmentLookup,
    build_caller_context,
    require,
    require_property,
    require_contract,
    scope_query,
)

__all__ = [
    "Resource",
    "Action",
    "Permission",
    "PERMISSION_DEFINITIONS",
    "is_valid_permission",
    "ROLE_PERMISSIONS",
    "ELEVATED_ROLES",
    "SCOPED_ROLES",
    "get_role_permissions",
    "PermissionChecker",
    "require_permission",
    "CallerContext",
    "SqlAssignmentLookup",
    "build_caller_context",
    "require",
    "require_property",
    "require_contract",
    "scope_query",
]
