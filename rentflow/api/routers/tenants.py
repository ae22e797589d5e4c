import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import exists, or_
from sqlalchemy.orm import Session

from rentflow.api.deps import get_db, get_caller
from rentflow.api.schemas.common import PaginatedResponse
from rentflow.api.schemas.tenant import TenantCreate, TenantResponse, TenantUpdate
from rentflow.core.errors import NotFound, Unauthorized, ValidationError
from rentflow.core.rbac import CallerContext, require_permission
from rentflow.core.security import get_password_hash
from rentflow.db.models import Contract, Tenant, User, UserRole

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/tenants", tags=["tenants"])


def _visible_tenants(db: Session, caller: CallerContext):
    """Tenants the caller may see.

    Scoped staff see tenants leased on their properties and tenants with no
    contract yet; tenants see only themselves.
    """
    query = db.query(Tenant)
    if caller.property_ids is None:
        return query
    if caller.is_tenant:
        return query.filter(Tenant.id == caller.tenant_id)

    leased_here = exists().where(
        Contract.tenant_id == Tenant.id,
        Contract.property_id.in_(caller.property_ids),
    )
    unleased = ~exists().where(Contract.tenant_id == Tenant.id)
    return query.filter(or_(leased_here, unleased))


def _get_visible_tenant(db: Session, caller: CallerContext, tenant_id: UUID) -> Tenant:
    if not db.query(Tenant.id).filter(Tenant.id == tenant_id).first():
        raise NotFound("Tenant not found")
    tenant = _visible_tenants(db, caller).filter(Tenant.id == tenant_id).first()
    if not tenant:
        raise Unauthorized("Access denied to this tenant")
    return tenant


@router.get("", response_model=PaginatedResponse[TenantResponse])
@require_permission("tenants:list")
async def list_tenants(
    search: Optional[str] = Query(None, description="Match on name or phone"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    query = _visible_tenants(db, caller)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Tenant.full_name.ilike(pattern), Tenant.phone.ilike(pattern)))

    total = query.count()
    items = query.order_by(Tenant.created_at.desc()).offset((page - 1) * per_page).limit(per_page).all()
    return PaginatedResponse.create(
        [TenantResponse.model_validate(t) for t in items], total, page, per_page
    )


@router.post("", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
@require_permission("tenants:create")
async def create_tenant(
    tenant_in: TenantCreate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    """Register a tenant, optionally with a portal login."""
    data = tenant_in.model_dump(exclude={"create_portal_account", "password"})
    if data.get("email"):
        data["email"] = data["email"].lower()
    tenant = Tenant(**data)

    if tenant_in.create_portal_account:
        if db.query(User).filter(User.email == tenant.email).first():
            raise ValidationError("Email already exists")
        tenant.user = User(
            email=tenant.email,
            password_hash=get_password_hash(tenant_in.password),
            name=tenant.full_name,
            phone=tenant.phone,
            role=UserRole.TENANT.value,
        )

    db.add(tenant)
    db.commit()
    db.refresh(tenant)

    logger.info(
        "Tenant %s created by %s (portal access: %s)",
        tenant.id, caller.user_id, tenant.user_id is not None,
    )
    return tenant


@router.get("/{tenant_id}", response_model=TenantResponse)
@require_permission("tenants:read")
async def get_tenant(
    tenant_id: UUID,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return _get_visible_tenant(db, caller, tenant_id)


@router.put("/{tenant_id}", response_model=TenantResponse)
@require_permission("tenants:update")
async def update_tenant(
    tenant_id: UUID,
    tenant_in: TenantUpdate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    tenant = _get_visible_tenant(db, caller, tenant_id)
    for key, value in tenant_in.model_dump(exclude_unset=True).items():
        setattr(tenant, key, value)
    db.commit()
    db.refresh(tenant)
    return tenant
