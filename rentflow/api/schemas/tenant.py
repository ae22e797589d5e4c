from pydantic import BaseModel, EmailStr, Field, model_validator
from uuid import UUID
from datetime import datetime
from typing import Optional

from .common import PartialUpdate
from .users import UserPublic


class TenantCreate(BaseModel):
    full_name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    id_type: Optional[str] = None
    id_number: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    notes: Optional[str] = None

    # Portal access creates a TENANT user for the tenant
    create_portal_account: bool = False
    password: Optional[str] = Field(None, min_length=8)

    @model_validator(mode="after")
    def check_portal_credentials(self):
        if self.create_portal_account and not (self.email and self.password):
            raise ValueError("Email and password are required when portal access is enabled")
        return self


class TenantUpdate(PartialUpdate):
    not_nullable = ("full_name", "phone")

    full_name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    id_type: Optional[str] = None
    id_number: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    notes: Optional[str] = None


class TenantSummary(BaseModel):
    id: UUID
    full_name: str
    phone: str
    email: Optional[str]

    class Config:
        from_attributes = True


class TenantResponse(TenantSummary):
    address: Optional[str]
    id_type: Optional[str]
    id_number: Optional[str]
    emergency_contact_name: Optional[str]
    emergency_contact_phone: Optional[str]
    notes: Optional[str]
    created_at: datetime
    user: Optional[UserPublic] = None
