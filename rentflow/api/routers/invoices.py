from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from rentflow.api.deps import get_db, get_caller
from rentflow.api.schemas.common import PaginatedResponse
from rentflow.api.schemas.finance import InvoiceCreate, InvoiceResponse, PublicInvoice
from rentflow.api.schemas.property import PropertySummary
from rentflow.core.rbac import CallerContext, require_permission
from rentflow.services.invoices import InvoiceService

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("", response_model=PaginatedResponse[InvoiceResponse])
@require_permission("invoices:list")
async def list_invoices(
    invoice_status: Optional[str] = Query(None, alias="status"),
    contract_id: Optional[UUID] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    items, total = InvoiceService(db).list(
        caller, status=invoice_status, contract_id=contract_id, page=page, per_page=per_page
    )
    return PaginatedResponse.create(
        [InvoiceResponse.model_validate(i) for i in items], total, page, per_page
    )


@router.post("", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
@require_permission("invoices:create")
async def create_invoice(
    invoice_in: InvoiceCreate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    invoice = InvoiceService(db).create(caller, **invoice_in.model_dump())
    db.refresh(invoice)
    return invoice


@router.get("/public/{invoice_number}", response_model=PublicInvoice)
def get_public_invoice(invoice_number: str, db: Session = Depends(get_db)):
    """Shareable invoice view. No authentication; the invoice number is the key."""
    invoice = InvoiceService(db).get_by_number(invoice_number)
    contract = invoice.contract
    return PublicInvoice(
        invoice=InvoiceResponse.model_validate(invoice),
        balance=round(float(invoice.total_amount) - float(invoice.paid_amount or 0), 2),
        tenant_name=contract.tenant.full_name if contract.tenant else None,
        property=PropertySummary.model_validate(contract.property) if contract.property else None,
        unit_numbers=[unit.unit_number for unit in contract.units],
    )
