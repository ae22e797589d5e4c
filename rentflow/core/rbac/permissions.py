"""Permission model for rentflow RBAC.

Defines all resources, actions, and permission combinations.
Uses a matrix approach: permissions = actions x resources.

Permission string format: "resource:action"
Examples:
  - contracts:create
  - payments:approve
  - terminations:owner_approve
"""

from enum import Enum
from typing import NamedTuple, FrozenSet


class Resource(str, Enum):
    """Resources that can be protected by permissions."""

    # Staff and access
    USERS = "users"
    ASSIGNMENTS = "assignments"   # Property assignments of scoped staff

    # Inventory
    PROPERTIES = "properties"
    UNITS = "units"

    # Leasing
    TENANTS = "tenants"
    CONTRACTS = "contracts"
    TERMINATIONS = "terminations"

    # Money
    INVOICES = "invoices"
    PAYMENTS = "payments"
    PAYMENT_METHODS = "payment_methods"

    # Administration
    SETTINGS = "settings"
    DASHBOARD = "dashboard"
    SYSTEM = "system"


class Action(str, Enum):
    """Actions that can be performed on resources."""

    # Standard CRUD actions
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    LIST = "list"

    # Payment review
    APPROVE = "approve"
    REJECT = "reject"

    # Termination workflow steps
    ACCOUNTANT_APPROVE = "accountant_approve"
    OWNER_APPROVE = "owner_approve"
    COMPLETE = "complete"

    # Administration
    CONFIGURE = "configure"
    MANAGE = "manage"


class Permission(NamedTuple):
    """A permission is a combination of resource and action."""
    resource: Resource
    action: Action

    def __str__(self) -> str:
        return f"{self.resource.value}:{self.action.value}"

    @classmethod
    def from_string(cls, perm_str: str) -> "Permission":
        """Parse a permission string like 'contracts:read'."""
        parts = perm_str.split(":")
        if len(parts) != 2:
            raise ValueError(f"Invalid permission format: {perm_str}")
        return cls(Resource(parts[0]), Action(parts[1]))


_CRUD = (Action.CREATE, Action.READ, Action.UPDATE, Action.DELETE, Action.LIST)

# Maps each resource to its valid actions
PERMISSION_MATRIX: dict[Resource, FrozenSet[Action]] = {
    Resource.USERS: frozenset(_CRUD),
    Resource.ASSIGNMENTS: frozenset([Action.CREATE, Action.READ, Action.DELETE, Action.LIST]),
    Resource.PROPERTIES: frozenset(_CRUD),
    Resource.UNITS: frozenset(_CRUD),
    Resource.TENANTS: frozenset(_CRUD),
    Resource.CONTRACTS: frozenset(_CRUD),
    Resource.TERMINATIONS: frozenset([
        Action.CREATE, Action.READ, Action.LIST,
        Action.ACCOUNTANT_APPROVE, Action.OWNER_APPROVE, Action.COMPLETE, Action.REJECT,
    ]),
    Resource.INVOICES: frozenset([Action.CREATE, Action.READ, Action.UPDATE, Action.LIST]),
    Resource.PAYMENTS: frozenset([
        Action.CREATE, Action.READ, Action.LIST, Action.APPROVE, Action.REJECT,
    ]),
    Resource.PAYMENT_METHODS: frozenset(_CRUD),
    Resource.SETTINGS: frozenset([Action.READ, Action.UPDATE, Action.CONFIGURE]),
    Resource.DASHBOARD: frozenset([Action.READ]),
    Resource.SYSTEM: frozenset([Action.MANAGE]),
}


def _generate_permission_definitions() -> dict[str, Permission]:
    """Generate all valid permission combinations from the matrix."""
    permissions = {}
    for resource, actions in PERMISSION_MATRIX.items():
        for action in actions:
            perm = Permission(resource, action)
            permissions[str(perm)] = perm
    return permissions


# All valid permissions as a dictionary: "resource:action" -> Permission
PERMISSION_DEFINITIONS = _generate_permission_definitions()


def is_valid_permission(perm_str: str) -> bool:
    """Check if a permission string names a real resource/action pair."""
    return perm_str in PERMISSION_DEFINITIONS


def get_permissions_for_resource(resource: Resource) -> list[str]:
    """Get all permission strings defined for a resource."""
    return sorted(
        str(Permission(resource, action)) for action in PERMISSION_MATRIX.get(resource, ())
    )
