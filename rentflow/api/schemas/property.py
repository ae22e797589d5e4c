from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime
from typing import Optional

from rentflow.db.models import UnitStatus
from .common import PartialUpdate
from .users import UserPublic


class PropertyCreate(BaseModel):
    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    city: Optional[str] = None
    region: Optional[str] = None
    total_units: int = Field(0, ge=0)
    description: Optional[str] = None


class PropertyUpdate(PartialUpdate):
    not_nullable = ("name", "address", "total_units", "is_active")

    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    total_units: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class PropertySummary(BaseModel):
    id: UUID
    name: str
    address: str
    city: Optional[str]

    class Config:
        from_attributes = True


class PropertyResponse(PropertySummary):
    region: Optional[str]
    total_units: int
    description: Optional[str]
    is_active: bool
    created_at: datetime


class UnitCreate(BaseModel):
    property_id: UUID
    unit_number: str = Field(min_length=1)
    floor: Optional[int] = None
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    area: Optional[float] = Field(None, gt=0)
    monthly_rent: float = Field(gt=0)
    status: UnitStatus = UnitStatus.AVAILABLE
    description: Optional[str] = None


class UnitUpdate(PartialUpdate):
    not_nullable = ("unit_number", "monthly_rent", "status")

    unit_number: Optional[str] = None
    floor: Optional[int] = None
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    area: Optional[float] = Field(None, gt=0)
    monthly_rent: Optional[float] = Field(None, gt=0)
    status: Optional[UnitStatus] = None
    description: Optional[str] = None


class UnitResponse(BaseModel):
    id: UUID
    property_id: UUID
    unit_number: str
    floor: Optional[int]
    bedrooms: Optional[int]
    bathrooms: Optional[int]
    area: Optional[float]
    monthly_rent: float
    status: str
    description: Optional[str]

    class Config:
        from_attributes = True


class AssignmentCreate(BaseModel):
    user_id: UUID
    property_id: UUID


class AssignmentResponse(BaseModel):
    id: UUID
    user_id: UUID
    property_id: UUID
    assigned_by: Optional[UUID]
    created_at: datetime
    user: UserPublic
    property: PropertySummary

    class Config:
        from_attributes = True
