from pydantic import BaseModel, Field
from uuid import UUID
from datetime import date, datetime
from typing import List, Optional

from .common import PartialUpdate
from .property import PropertySummary, UnitResponse
from .tenant import TenantSummary
from .users import UserPublic


class ContractCreate(BaseModel):
    tenant_id: UUID
    property_id: UUID
    unit_ids: List[UUID] = Field(min_length=1)
    start_date: date
    end_date: date
    monthly_rent: float = Field(gt=0)
    security_deposit: float = Field(0, ge=0)
    advance_payment: float = Field(0, ge=0)
    legal_agreement_url: str = Field(min_length=1)
    payment_receipt_url: Optional[str] = None
    notes: Optional[str] = None


class ContractUpdate(PartialUpdate):
    not_nullable = ("start_date", "end_date", "monthly_rent", "security_deposit", "legal_agreement_url")

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    monthly_rent: Optional[float] = Field(None, gt=0)
    security_deposit: Optional[float] = Field(None, ge=0)
    legal_agreement_url: Optional[str] = None
    notes: Optional[str] = None


class ContractSummary(BaseModel):
    id: UUID
    status: str
    start_date: date
    end_date: date
    monthly_rent: float
    remaining_advance: float
    tenant: TenantSummary
    property: PropertySummary

    class Config:
        from_attributes = True


class ContractResponse(ContractSummary):
    security_deposit: float
    advance_payment: float
    legal_agreement_url: str
    notes: Optional[str]
    termination_date: Optional[datetime]
    created_at: datetime
    updated_at: datetime
    units: List[UnitResponse]
    creator: Optional[UserPublic] = None
