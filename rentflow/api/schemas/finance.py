from pydantic import BaseModel, Field, model_validator
from uuid import UUID
from datetime import date, datetime
from typing import List, Optional

from rentflow.db.models import PaymentType
from .contract import ContractSummary
from .property import PropertySummary
from .users import UserPublic


class InvoiceCreate(BaseModel):
    contract_id: UUID
    amount: float = Field(gt=0)
    due_date: date
    period_start: date
    period_end: date
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_period(self):
        if self.period_end < self.period_start:
            raise ValueError("period_end must not be before period_start")
        return self


class InvoiceResponse(BaseModel):
    id: UUID
    contract_id: UUID
    invoice_number: str
    amount: float
    tax_amount: float
    tax_rate: Optional[float]
    total_amount: float
    paid_amount: float
    due_date: date
    period_start: date
    period_end: date
    status: str
    notes: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class PublicInvoice(BaseModel):
    """What anyone holding an invoice number may see."""
    invoice: InvoiceResponse
    balance: float
    tenant_name: Optional[str] = None
    property: Optional[PropertySummary] = None
    unit_numbers: List[str] = []


class PaymentCreate(BaseModel):
    contract_id: UUID
    invoice_id: Optional[UUID] = None
    amount: float = Field(gt=0)
    payment_type: PaymentType
    payment_method_id: Optional[UUID] = None
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    receipt_url: Optional[str] = None
    notes: Optional[str] = None


class PaymentReject(BaseModel):
    reason: str = ""


class PaymentResponse(BaseModel):
    id: UUID
    contract_id: UUID
    invoice_id: Optional[UUID]
    amount: float
    payment_type: str
    status: str
    payment_method_id: Optional[UUID] = None
    payment_method: Optional[str]
    transaction_id: Optional[str]
    receipt_url: Optional[str]
    approved_at: Optional[datetime]
    rejection_reason: Optional[str]
    notes: Optional[str]
    created_at: datetime
    approver: Optional[UserPublic] = None
    contract: ContractSummary

    class Config:
        from_attributes = True
