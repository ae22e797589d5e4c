import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from rentflow.api.deps import get_db, get_caller
from rentflow.api.schemas.common import PaginatedResponse, SuccessResponse
from rentflow.api.schemas.property import UnitCreate, UnitResponse, UnitUpdate
from rentflow.core.errors import Conflict, InvalidState, NotFound
from rentflow.core.rbac import CallerContext, require_permission, require_property
from rentflow.db.models import Contract, ContractStatus, ContractUnit, Property, Unit, UnitStatus

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/units", tags=["units"])


def _get_unit(db: Session, unit_id: UUID) -> Unit:
    unit = db.query(Unit).filter(Unit.id == unit_id).first()
    if not unit:
        raise NotFound("Unit not found")
    return unit


def _ensure_number_free(db: Session, property_id: UUID, unit_number: str, exclude: Optional[UUID] = None) -> None:
    query = db.query(Unit).filter(Unit.property_id == property_id, Unit.unit_number == unit_number)
    if exclude is not None:
        query = query.filter(Unit.id != exclude)
    if query.first():
        raise Conflict("Unit number already exists for this property")


def _refresh_unit_count(db: Session, property_id: UUID) -> None:
    prop = db.query(Property).filter(Property.id == property_id).first()
    if prop:
        prop.total_units = db.query(Unit).filter(Unit.property_id == property_id).count()


@router.get("", response_model=PaginatedResponse[UnitResponse])
@require_permission("units:list")
async def list_units(
    property_id: Optional[UUID] = None,
    unit_status: Optional[UnitStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    query = db.query(Unit)
    if property_id:
        require_property(caller, property_id)
        query = query.filter(Unit.property_id == property_id)
    elif caller.property_ids is not None:
        query = query.filter(Unit.property_id.in_(caller.property_ids))
    if unit_status:
        query = query.filter(Unit.status == unit_status.value)

    total = query.count()
    items = query.order_by(Unit.unit_number).offset((page - 1) * per_page).limit(per_page).all()
    return PaginatedResponse.create(
        [UnitResponse.model_validate(u) for u in items], total, page, per_page
    )


@router.post("", response_model=UnitResponse, status_code=status.HTTP_201_CREATED)
@require_permission("units:create")
async def create_unit(
    unit_in: UnitCreate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    prop = db.query(Property).filter(Property.id == unit_in.property_id).first()
    if not prop:
        raise NotFound("Property not found")
    require_property(caller, prop.id)
    _ensure_number_free(db, prop.id, unit_in.unit_number)

    data = unit_in.model_dump()
    data["status"] = unit_in.status.value
    unit = Unit(**data)
    db.add(unit)
    db.flush()
    _refresh_unit_count(db, prop.id)
    db.commit()
    db.refresh(unit)

    logger.info("Unit %s created on property %s by %s", unit.unit_number, prop.id, caller.user_id)
    return unit


@router.get("/{unit_id}", response_model=UnitResponse)
@require_permission("units:read")
async def get_unit(
    unit_id: UUID,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    unit = _get_unit(db, unit_id)
    require_property(caller, unit.property_id)
    return unit


@router.put("/{unit_id}", response_model=UnitResponse)
@require_permission("units:update")
async def update_unit(
    unit_id: UUID,
    unit_in: UnitUpdate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    unit = _get_unit(db, unit_id)
    require_property(caller, unit.property_id)

    changes = unit_in.model_dump(exclude_unset=True)
    if changes.get("unit_number") and changes["unit_number"] != unit.unit_number:
        _ensure_number_free(db, unit.property_id, changes["unit_number"], exclude=unit.id)
    if changes.get("status") is not None:
        changes["status"] = changes["status"].value

    for key, value in changes.items():
        setattr(unit, key, value)
    db.commit()
    db.refresh(unit)
    return unit


@router.delete("/{unit_id}", response_model=SuccessResponse)
@require_permission("units:delete")
async def delete_unit(
    unit_id: UUID,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    unit = _get_unit(db, unit_id)
    require_property(caller, unit.property_id)

    in_force = db.query(ContractUnit).join(Contract).filter(
        ContractUnit.unit_id == unit.id,
        Contract.status.in_([ContractStatus.ACTIVE.value, ContractStatus.PENDING_TERMINATION.value]),
    ).count()
    if in_force or unit.status == UnitStatus.OCCUPIED.value:
        raise InvalidState("Cannot delete an occupied unit or one with active contracts")

    property_id = unit.property_id
    db.delete(unit)
    db.flush()
    _refresh_unit_count(db, property_id)
    db.commit()

    logger.info("Unit %s deleted by %s", unit_id, caller.user_id)
    return SuccessResponse(message="Unit deleted successfully")
