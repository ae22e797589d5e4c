"""Termination approval endpoints.

Each transition endpoint maps to one workflow action; the service enforces
role, property scope and current status.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from rentflow.api.deps import get_db, get_caller, get_notifier
from rentflow.api.schemas.termination import (
    TerminationComplete,
    TerminationHistoryResponse,
    TerminationListResponse,
    TerminationReject,
    TerminationResponse,
)
from rentflow.core.rbac import CallerContext, require_permission
from rentflow.core.termination import TerminationService
from rentflow.services.sms import SmsNotifier

router = APIRouter(prefix="/terminations", tags=["terminations"])


@router.get("", response_model=TerminationListResponse)
@require_permission("terminations:list")
async def list_terminations(
    request_status: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    """List termination requests visible to the caller, newest first."""
    items, total = TerminationService(db).list(
        caller, status=request_status, page=page, per_page=per_page
    )
    return TerminationListResponse(
        items=[TerminationResponse.model_validate(r) for r in items],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/{request_id}", response_model=TerminationResponse)
@require_permission("terminations:read")
async def get_termination(
    request_id: UUID,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return TerminationService(db).get(request_id, caller)


@router.get("/{request_id}/history", response_model=List[TerminationHistoryResponse])
@require_permission("terminations:read")
async def get_termination_history(
    request_id: UUID,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return TerminationService(db).history(request_id, caller)


@router.post("/{request_id}/accountant-approve", response_model=TerminationResponse)
@require_permission("terminations:accountant_approve")
async def accountant_approve(
    request_id: UUID,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
    notifier: SmsNotifier = Depends(get_notifier),
):
    return TerminationService(db, notifier=notifier).accountant_approve(request_id, caller)


@router.post("/{request_id}/owner-approve", response_model=TerminationResponse)
@require_permission("terminations:owner_approve")
async def owner_approve(
    request_id: UUID,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
    notifier: SmsNotifier = Depends(get_notifier),
):
    return TerminationService(db, notifier=notifier).owner_approve(request_id, caller)


@router.post("/{request_id}/complete", response_model=TerminationResponse)
@require_permission("terminations:complete")
async def complete_termination(
    request_id: UUID,
    body: Optional[TerminationComplete] = None,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
    notifier: SmsNotifier = Depends(get_notifier),
):
    """Complete an owner-approved request; the refund receipt is optional."""
    receipt_url = body.receipt_url if body else None
    return TerminationService(db, notifier=notifier).complete(request_id, caller, receipt_url)


@router.post("/{request_id}/reject", response_model=TerminationResponse)
@require_permission("terminations:reject")
async def reject_termination(
    request_id: UUID,
    body: Optional[TerminationReject] = None,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
    notifier: SmsNotifier = Depends(get_notifier),
):
    reason = body.reason if body else None
    return TerminationService(db, notifier=notifier).reject(request_id, reason, caller)
