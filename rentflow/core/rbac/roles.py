"""Role definitions for rentflow.

Every user holds exactly one of five roles:
1. SYSTEM_ADMIN - Full system access
2. OWNER - Everything except system maintenance
3. PROPERTY_ADMIN - Day-to-day leasing on assigned properties
4. ACCOUNTANT - Money and termination review on assigned properties
5. TENANT - Own contracts, invoices and payments
"""

from typing import Dict, List

from rentflow.db.models.user import UserRole
from .permissions import Resource, Action, Permission, PERMISSION_DEFINITIONS


def _build_permissions(*perms: tuple) -> List[str]:
    """Build permission strings from (Resource, Action) tuples."""
    return [str(Permission(r, a)) for r, a in perms]


# Roles authorized across all properties
ELEVATED_ROLES = frozenset([UserRole.SYSTEM_ADMIN, UserRole.OWNER])

# Roles restricted to the properties they are assigned to
SCOPED_ROLES = frozenset([UserRole.PROPERTY_ADMIN, UserRole.ACCOUNTANT])

SYSTEM_ADMIN_PERMISSIONS = [
    "*:*"  # Global wildcard - all permissions
]

OWNER_PERMISSIONS = sorted(
    name for name, perm in PERMISSION_DEFINITIONS.items() if perm.resource != Resource.SYSTEM
)

PROPERTY_ADMIN_PERMISSIONS = _build_permissions(
    (Resource.PROPERTIES, Action.READ),
    (Resource.PROPERTIES, Action.LIST),

    (Resource.UNITS, Action.CREATE),
    (Resource.UNITS, Action.READ),
    (Resource.UNITS, Action.UPDATE),
    (Resource.UNITS, Action.LIST),

    (Resource.TENANTS, Action.CREATE),
    (Resource.TENANTS, Action.READ),
    (Resource.TENANTS, Action.UPDATE),
    (Resource.TENANTS, Action.LIST),

    (Resource.CONTRACTS, Action.CREATE),
    (Resource.CONTRACTS, Action.READ),
    (Resource.CONTRACTS, Action.UPDATE),
    (Resource.CONTRACTS, Action.LIST),

    # Can open a termination but not review one
    (Resource.TERMINATIONS, Action.CREATE),
    (Resource.TERMINATIONS, Action.READ),
    (Resource.TERMINATIONS, Action.LIST),

    (Resource.INVOICES, Action.CREATE),
    (Resource.INVOICES, Action.READ),
    (Resource.INVOICES, Action.LIST),

    (Resource.PAYMENTS, Action.CREATE),
    (Resource.PAYMENTS, Action.READ),
    (Resource.PAYMENTS, Action.LIST),

    (Resource.SETTINGS, Action.READ),
    (Resource.DASHBOARD, Action.READ),
)

ACCOUNTANT_PERMISSIONS = _build_permissions(
    (Resource.PROPERTIES, Action.READ),
    (Resource.PROPERTIES, Action.LIST),
    (Resource.UNITS, Action.READ),
    (Resource.UNITS, Action.LIST),
    (Resource.TENANTS, Action.READ),
    (Resource.TENANTS, Action.LIST),
    (Resource.CONTRACTS, Action.READ),
    (Resource.CONTRACTS, Action.LIST),

    # Termination review, except the owner step
    (Resource.TERMINATIONS, Action.READ),
    (Resource.TERMINATIONS, Action.LIST),
    (Resource.TERMINATIONS, Action.ACCOUNTANT_APPROVE),
    (Resource.TERMINATIONS, Action.COMPLETE),
    (Resource.TERMINATIONS, Action.REJECT),

    (Resource.INVOICES, Action.CREATE),
    (Resource.INVOICES, Action.READ),
    (Resource.INVOICES, Action.UPDATE),
    (Resource.INVOICES, Action.LIST),

    (Resource.PAYMENTS, Action.CREATE),
    (Resource.PAYMENTS, Action.READ),
    (Resource.PAYMENTS, Action.LIST),
    (Resource.PAYMENTS, Action.APPROVE),
    (Resource.PAYMENTS, Action.REJECT),

    (Resource.SETTINGS, Action.READ),
    (Resource.DASHBOARD, Action.READ),
)

TENANT_PERMISSIONS = _build_permissions(
    (Resource.TENANTS, Action.READ),
    (Resource.CONTRACTS, Action.READ),
    (Resource.CONTRACTS, Action.LIST),
    (Resource.TERMINATIONS, Action.READ),
    (Resource.TERMINATIONS, Action.LIST),
    (Resource.INVOICES, Action.READ),
    (Resource.INVOICES, Action.LIST),
    (Resource.PAYMENTS, Action.CREATE),
    (Resource.PAYMENTS, Action.READ),
    (Resource.PAYMENTS, Action.LIST),
    (Resource.SETTINGS, Action.READ),
)


ROLE_PERMISSIONS: Dict[UserRole, List[str]] = {
    UserRole.SYSTEM_ADMIN: SYSTEM_ADMIN_PERMISSIONS,
    UserRole.OWNER: OWNER_PERMISSIONS,
    UserRole.PROPERTY_ADMIN: PROPERTY_ADMIN_PERMISSIONS,
    UserRole.ACCOUNTANT: ACCOUNTANT_PERMISSIONS,
    UserRole.TENANT: TENANT_PERMISSIONS,
}


def get_role_permissions(role) -> List[str]:
    """Get the permission list for a role name or UserRole."""
    try:
        return list(ROLE_PERMISSIONS[UserRole(role)])
    except ValueError:
        return []
