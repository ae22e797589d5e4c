"""Permission checking utilities for rentflow.

Provides the permission checker and the endpoint decorator that enforces it
against the resolved caller context.
"""

from functools import wraps
from typing import Callable, Union, List

from rentflow.core.errors import Unauthenticated, Unauthorized
from .permissions import Permission


class PermissionChecker:
    """Checks if a permission set grants specific permissions."""

    def __init__(self, user_permissions):
        self.permissions = set(user_permissions)

    def has_permission(self, permission: Union[str, Permission]) -> bool:
        """Check for a permission, honouring `resource:*` and `*:*` wildcards."""
        perm_str = str(permission) if isinstance(permission, Permission) else permission

        if perm_str in self.permissions:
            return True

        if ":" in perm_str:
            resource = perm_str.split(":")[0]
            if f"{resource}:*" in self.permissions:
                return True
            # Global admin wildcard
            if "*:*" in self.permissions:
                return True

        return False

    def has_any_permission(self, permissions: List[Union[str, Permission]]) -> bool:
        """Check if any of the given permissions is granted."""
        return any(self.has_permission(p) for p in permissions)

    def has_all_permissions(self, permissions: List[Union[str, Permission]]) -> bool:
        """Check if all of the given permissions are granted."""
        return all(self.has_permission(p) for p in permissions)


def require_permission(*permissions: Union[str, Permission], require_all: bool = False):
    """
    Decorator factory for FastAPI endpoints requiring specific permissions.

    The endpoint must take the caller context as the ``caller`` keyword
    (injected with ``Depends(get_caller)``).

    Usage:
        @router.post("/contracts")
        @require_permission("contracts:create")
        async def create_contract(..., caller: CallerContext = Depends(get_caller)):
            ...
    """
    perm_strs = [str(p) if isinstance(p, Permission) else p for p in permissions]

    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            caller = kwargs.get("caller")
            if caller is None:
                raise Unauthenticated("Authentication required")

            checker = PermissionChecker(caller.permissions)
            if require_all:
                has_access = checker.has_all_permissions(perm_strs)
            else:
                has_access = checker.has_any_permission(perm_strs)

            if not has_access:
                raise Unauthorized(
                    "Insufficient permissions",
                    detail=f"Required: {', '.join(perm_strs)}",
                )

            return await func(*args, **kwargs)

        return wrapper
    return decorator
