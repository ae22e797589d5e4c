from pydantic import BaseModel
from uuid import UUID
from datetime import datetime
from typing import List, Optional

from .contract import ContractSummary
from .users import UserPublic


class TerminateContract(BaseModel):
    reason: str = ""
    bank_account_number: Optional[str] = None
    bank_name: Optional[str] = None
    account_holder_name: Optional[str] = None


class TerminationComplete(BaseModel):
    receipt_url: Optional[str] = None


class TerminationReject(BaseModel):
    reason: str = ""


class TerminationResponse(BaseModel):
    id: UUID
    contract_id: UUID
    reason: str
    refund_amount: float
    bank_account_number: Optional[str]
    bank_name: Optional[str]
    account_holder_name: Optional[str]
    status: str
    rejection_reason: Optional[str]
    receipt_url: Optional[str]
    created_at: datetime
    updated_at: datetime
    requester: Optional[UserPublic] = None
    contract: ContractSummary

    class Config:
        from_attributes = True


class TerminationHistoryResponse(BaseModel):
    id: UUID
    from_state: Optional[str]
    to_state: str
    action: str
    comment: Optional[str]
    created_at: datetime
    user: Optional[UserPublic] = None

    class Config:
        from_attributes = True


class TerminationListResponse(BaseModel):
    items: List[TerminationResponse]
    total: int
    page: int
    per_page: int
