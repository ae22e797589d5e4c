from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from rentflow.api.deps import get_db, get_caller, get_notifier
from rentflow.api.schemas.common import PaginatedResponse
from rentflow.api.schemas.finance import PaymentCreate, PaymentReject, PaymentResponse
from rentflow.core.rbac import CallerContext, require_permission
from rentflow.services.payments import PaymentService
from rentflow.services.sms import SmsNotifier

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("", response_model=PaginatedResponse[PaymentResponse])
@require_permission("payments:list")
async def list_payments(
    payment_status: Optional[str] = Query(None, alias="status"),
    contract_id: Optional[UUID] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    items, total = PaymentService(db).list(
        caller, status=payment_status, contract_id=contract_id, page=page, per_page=per_page
    )
    return PaginatedResponse.create(
        [PaymentResponse.model_validate(p) for p in items], total, page, per_page
    )


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
@require_permission("payments:create")
async def create_payment(
    payment_in: PaymentCreate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    """Submit a payment for review."""
    data = payment_in.model_dump(exclude={"contract_id", "amount", "payment_type"})
    payment = PaymentService(db).create(
        caller,
        payment_in.contract_id,
        payment_in.amount,
        payment_in.payment_type.value,
        **data,
    )
    db.refresh(payment)
    return payment


@router.post("/{payment_id}/approve", response_model=PaymentResponse)
@require_permission("payments:approve")
async def approve_payment(
    payment_id: UUID,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
    notifier: SmsNotifier = Depends(get_notifier),
):
    return PaymentService(db, notifier=notifier).approve(caller, payment_id)


@router.post("/{payment_id}/reject", response_model=PaymentResponse)
@require_permission("payments:reject")
async def reject_payment(
    payment_id: UUID,
    body: Optional[PaymentReject] = None,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return PaymentService(db).reject(caller, payment_id, body.reason if body else None)
