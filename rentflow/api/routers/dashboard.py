from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from rentflow.api.deps import get_db, get_caller
from rentflow.api.schemas.dashboard import DashboardStats
from rentflow.core.rbac import CallerContext, require_permission
from rentflow.core.termination import OPEN_STATES
from rentflow.db.models import (
    Contract,
    ContractStatus,
    Invoice,
    InvoiceStatus,
    Payment,
    PaymentStatus,
    Property,
    TerminationRequest,
    Unit,
    UnitStatus,
)

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=DashboardStats)
@require_permission("dashboard:read")
async def get_stats(
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    """Portfolio counts over the properties the caller can see."""
    property_ids = caller.property_ids
    if property_ids is not None and not property_ids:
        return DashboardStats()

    def scoped(query, column):
        if property_ids is None:
            return query
        return query.filter(column.in_(property_ids))

    def units(unit_status=None):
        query = scoped(db.query(Unit), Unit.property_id)
        if unit_status:
            query = query.filter(Unit.status == unit_status.value)
        return query.count()

    def contracts(contract_status):
        return scoped(db.query(Contract), Contract.property_id).filter(
            Contract.status == contract_status.value
        ).count()

    def payments(payment_status):
        return scoped(db.query(Payment).join(Contract), Contract.property_id).filter(
            Payment.status == payment_status.value
        )

    def invoices(invoice_status):
        return scoped(db.query(Invoice).join(Contract), Contract.property_id).filter(
            Invoice.status == invoice_status.value
        ).count()

    revenue = scoped(
        db.query(func.coalesce(func.sum(Payment.amount), 0)).join(
            Contract, Payment.contract_id == Contract.id
        ),
        Contract.property_id,
    ).filter(Payment.status == PaymentStatus.APPROVED.value).scalar()

    open_terminations = scoped(
        db.query(TerminationRequest).join(Contract), Contract.property_id
    ).filter(TerminationRequest.status.in_([s.value for s in OPEN_STATES])).count()

    return DashboardStats(
        total_properties=scoped(db.query(Property), Property.id).count(),
        total_units=units(),
        occupied_units=units(UnitStatus.OCCUPIED),
        available_units=units(UnitStatus.AVAILABLE),
        active_contracts=contracts(ContractStatus.ACTIVE),
        under_review_contracts=contracts(ContractStatus.UNDER_REVIEW),
        terminated_contracts=contracts(ContractStatus.TERMINATED),
        pending_payments=payments(PaymentStatus.PENDING).count(),
        approved_payments=payments(PaymentStatus.APPROVED).count(),
        total_revenue=float(revenue or 0),
        pending_invoices=invoices(InvoiceStatus.PENDING),
        overdue_invoices=invoices(InvoiceStatus.OVERDUE),
        open_terminations=open_terminations,
    )
