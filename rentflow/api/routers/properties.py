import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from rentflow.api.deps import get_db, get_caller
from rentflow.api.schemas.common import PaginatedResponse, SuccessResponse
from rentflow.api.schemas.property import PropertyCreate, PropertyResponse, PropertyUpdate
from rentflow.core.errors import InvalidState, NotFound
from rentflow.core.rbac import CallerContext, require_permission, require_property
from rentflow.db.models import Contract, ContractStatus, Property

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/properties", tags=["properties"])


def _get_property(db: Session, property_id: UUID) -> Property:
    prop = db.query(Property).filter(Property.id == property_id).first()
    if not prop:
        raise NotFound("Property not found")
    return prop


@router.get("", response_model=PaginatedResponse[PropertyResponse])
@require_permission("properties:list")
async def list_properties(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    """Properties visible to the caller: all for elevated roles, assigned ones otherwise."""
    query = db.query(Property)
    if caller.property_ids is not None:
        query = query.filter(Property.id.in_(caller.property_ids))

    total = query.count()
    items = query.order_by(Property.name).offset((page - 1) * per_page).limit(per_page).all()
    return PaginatedResponse.create(
        [PropertyResponse.model_validate(p) for p in items], total, page, per_page
    )


@router.post("", response_model=PropertyResponse, status_code=status.HTTP_201_CREATED)
@require_permission("properties:create")
async def create_property(
    property_in: PropertyCreate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    prop = Property(**property_in.model_dump())
    db.add(prop)
    db.commit()
    db.refresh(prop)

    logger.info("Property %s created by %s", prop.id, caller.user_id)
    return prop


@router.get("/{property_id}", response_model=PropertyResponse)
@require_permission("properties:read")
async def get_property(
    property_id: UUID,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    prop = _get_property(db, property_id)
    require_property(caller, prop.id)
    return prop


@router.put("/{property_id}", response_model=PropertyResponse)
@require_permission("properties:update")
async def update_property(
    property_id: UUID,
    property_in: PropertyUpdate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    prop = _get_property(db, property_id)
    require_property(caller, prop.id)

    for key, value in property_in.model_dump(exclude_unset=True).items():
        setattr(prop, key, value)
    db.commit()
    db.refresh(prop)
    return prop


@router.delete("/{property_id}", response_model=SuccessResponse)
@require_permission("properties:delete")
async def delete_property(
    property_id: UUID,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    prop = _get_property(db, property_id)

    in_force = db.query(Contract).filter(
        Contract.property_id == prop.id,
        Contract.status.in_([ContractStatus.ACTIVE.value, ContractStatus.PENDING_TERMINATION.value]),
    ).count()
    if in_force:
        raise InvalidState(
            "Cannot delete property with active contracts. Please terminate all contracts first."
        )

    # Historical contracts go with the property
    for contract in db.query(Contract).filter(Contract.property_id == prop.id).all():
        db.delete(contract)
    db.flush()
    db.delete(prop)
    db.commit()

    logger.info("Property %s deleted by %s", property_id, caller.user_id)
    return SuccessResponse(message="Property deleted successfully")
