"""Caller context and the property-scope access policy.

The API layer resolves a ``CallerContext`` once per request and passes it
explicitly to every operation. Operations never look the caller up
themselves.
"""

from dataclasses import dataclass
from typing import FrozenSet, Optional, Protocol
from uuid import UUID

from sqlalchemy import false
from sqlalchemy.orm import Session

from rentflow.core.errors import Unauthenticated, Unauthorized
from rentflow.db.models import PropertyAssignment, Tenant, User, UserRole
from .checker import PermissionChecker
from .roles import ELEVATED_ROLES, SCOPED_ROLES, get_role_permissions


@dataclass(frozen=True)
class CallerContext:
    """Who is calling and what they may touch.

    ``property_ids`` is None for elevated roles, meaning every property.
    Scoped roles carry their assignment set; tenants carry an empty set and
    are matched through ``tenant_id`` instead.
    """

    user_id: UUID
    role: UserRole
    permissions: FrozenSet[str]
    property_ids: Optional[FrozenSet[UUID]] = None
    tenant_id: Optional[UUID] = None
    name: Optional[str] = None

    @property
    def is_elevated(self) -> bool:
        return self.role in ELEVATED_ROLES

    @property
    def is_scoped(self) -> bool:
        return self.role in SCOPED_ROLES

    @property
    def is_tenant(self) -> bool:
        return self.role == UserRole.TENANT

    def can(self, permission) -> bool:
        return PermissionChecker(self.permissions).has_permission(permission)

    def covers_property(self, property_id: UUID) -> bool:
        if self.property_ids is None:
            return True
        return property_id in self.property_ids


class AssignmentLookup(Protocol):
    def property_ids_for(self, user_id: UUID) -> FrozenSet[UUID]:
        ...


class SqlAssignmentLookup:
    """Resolves a user's assigned properties from ``property_assignments``."""

    def __init__(self, db: Session):
        self.db = db

    def property_ids_for(self, user_id: UUID) -> FrozenSet[UUID]:
        rows = self.db.query(PropertyAssignment.property_id).filter(
            PropertyAssignment.user_id == user_id
        ).all()
        return frozenset(row[0] for row in rows)


def build_caller_context(db: Session, user: User, lookup: Optional[AssignmentLookup] = None) -> CallerContext:
    """Resolve the full caller context for an authenticated user."""
    role = UserRole(user.role)
    property_ids = None
    tenant_id = None

    if role in SCOPED_ROLES:
        lookup = lookup or SqlAssignmentLookup(db)
        property_ids = lookup.property_ids_for(user.id)
    elif role == UserRole.TENANT:
        property_ids = frozenset()
        tenant = db.query(Tenant).filter(Tenant.user_id == user.id).first()
        tenant_id = tenant.id if tenant else None

    return CallerContext(
        user_id=user.id,
        role=role,
        permissions=frozenset(get_role_permissions(role)),
        property_ids=property_ids,
        tenant_id=tenant_id,
        name=user.name,
    )


# ---------------------------------------------------------------------------
# Access policy
# ---------------------------------------------------------------------------


def require(caller: Optional[CallerContext], permission) -> CallerContext:
    """Fail unless the caller is authenticated and holds ``permission``."""
    if caller is None:
        raise Unauthenticated("Authentication required")
    if not caller.can(permission):
        raise Unauthorized("Insufficient permissions", detail=f"Required: {permission}")
    return caller


def require_property(caller: CallerContext, property_id: UUID) -> None:
    """Fail unless the caller may act on ``property_id``."""
    if not caller.covers_property(property_id):
        raise Unauthorized("Not assigned to this property")


def require_contract(caller: CallerContext, contract) -> None:
    """Fail unless the caller may act on ``contract``.

    Tenants are matched by ownership, staff by property scope.
    """
    if caller.is_tenant:
        if caller.tenant_id is None or contract.tenant_id != caller.tenant_id:
            raise Unauthorized("Not your contract")
        return
    require_property(caller, contract.property_id)


def scope_query(query, caller: CallerContext, property_column, tenant_column=None):
    """Restrict a query to the rows the caller may see.

    ``property_column`` and ``tenant_column`` are the columns holding the
    property id and the tenant id of each row (usually on ``Contract``).
    """
    if caller.property_ids is None:
        return query
    if caller.is_tenant:
        if tenant_column is None or caller.tenant_id is None:
            return query.filter(false())
        return query.filter(tenant_column == caller.tenant_id)
    if not caller.property_ids:
        return query.filter(false())
    return query.filter(property_column.in_(caller.property_ids))
