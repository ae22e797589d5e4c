"""Payment methods offered to tenants: online gateways and bank accounts."""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import case
from sqlalchemy.orm import Session

from rentflow.api.deps import get_db, get_caller
from rentflow.api.schemas.common import SuccessResponse
from rentflow.api.schemas.settings import (
    PaymentMethodCreate,
    PaymentMethodResponse,
    PaymentMethodUpdate,
)
from rentflow.core.errors import Conflict, NotFound
from rentflow.core.rbac import CallerContext, require_permission
from rentflow.db.models import PaymentMethod, PaymentMethodType
from rentflow.services.settings import mask_api_key

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/payment-methods", tags=["payment-methods"])

SECRET_MASK = "********"
SECRET_FIELDS = ("api_key", "secret_key")


def _to_response(method: PaymentMethod) -> PaymentMethodResponse:
    return PaymentMethodResponse(
        id=method.id,
        name=method.name,
        type=method.type,
        provider=method.provider,
        merchant_id=method.merchant_id,
        callback_url=method.callback_url,
        base_url=method.base_url,
        bank_name=method.bank_name,
        account_number=method.account_number,
        account_holder_name=method.account_holder_name,
        instructions=method.instructions,
        is_active=method.is_active,
        display_order=method.display_order,
        fee_type=method.fee_type,
        fee_amount=method.fee_amount,
        fee_percent=method.fee_percent,
        api_key_masked=mask_api_key(method.api_key),
        secret_key_masked=SECRET_MASK if method.secret_key else None,
    )


def _get_method(db: Session, method_id: UUID) -> PaymentMethod:
    method = db.query(PaymentMethod).filter(PaymentMethod.id == method_id).first()
    if not method:
        raise NotFound("Payment method not found")
    return method


def _ensure_name_free(db: Session, name: str, exclude: Optional[UUID] = None) -> None:
    query = db.query(PaymentMethod).filter(PaymentMethod.name == name)
    if exclude is not None:
        query = query.filter(PaymentMethod.id != exclude)
    if query.first():
        raise Conflict("A payment method with this name already exists")


@router.get("", response_model=List[PaymentMethodResponse])
@require_permission("payment_methods:list")
async def list_payment_methods(
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    """Online methods first, then offline, each in display order. Keys are masked."""
    query = db.query(PaymentMethod)
    if active_only:
        query = query.filter(PaymentMethod.is_active.is_(True))
    online_first = case((PaymentMethod.type == PaymentMethodType.ONLINE.value, 0), else_=1)
    methods = query.order_by(online_first, PaymentMethod.display_order, PaymentMethod.name).all()
    return [_to_response(m) for m in methods]


@router.post("", response_model=PaymentMethodResponse, status_code=status.HTTP_201_CREATED)
@require_permission("payment_methods:create")
async def create_payment_method(
    method_in: PaymentMethodCreate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    _ensure_name_free(db, method_in.name)

    data = method_in.model_dump()
    data["type"] = method_in.type.value
    data["fee_type"] = method_in.fee_type.value
    method = PaymentMethod(**data)
    db.add(method)
    db.commit()
    db.refresh(method)

    logger.info("Payment method %s (%s) created by %s", method.name, method.type, caller.user_id)
    return _to_response(method)


@router.get("/{method_id}", response_model=PaymentMethodResponse)
@require_permission("payment_methods:read")
async def get_payment_method(
    method_id: UUID,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return _to_response(_get_method(db, method_id))


@router.put("/{method_id}", response_model=PaymentMethodResponse)
@require_permission("payment_methods:update")
async def update_payment_method(
    method_id: UUID,
    method_in: PaymentMethodUpdate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    method = _get_method(db, method_id)
    changes = method_in.model_dump(exclude_unset=True)

    # A key sent back empty or still masked keeps the stored value
    for field in SECRET_FIELDS:
        value = changes.get(field)
        if not value or value.startswith("****"):
            changes.pop(field, None)

    if changes.get("name") and changes["name"] != method.name:
        _ensure_name_free(db, changes["name"], exclude=method.id)
    for field in ("type", "fee_type"):
        if changes.get(field) is not None:
            changes[field] = changes[field].value

    for key, value in changes.items():
        setattr(method, key, value)
    db.commit()
    db.refresh(method)

    logger.info("Payment method %s updated by %s", method.id, caller.user_id)
    return _to_response(method)


@router.delete("/{method_id}", response_model=SuccessResponse)
@require_permission("payment_methods:delete")
async def delete_payment_method(
    method_id: UUID,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    """Delete a method. Payments made with it keep the method's name."""
    method = _get_method(db, method_id)
    db.delete(method)
    db.commit()

    logger.info("Payment method %s deleted by %s", method_id, caller.user_id)
    return SuccessResponse(message="Payment method deleted")
