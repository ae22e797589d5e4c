from pydantic import BaseModel, EmailStr, Field
from uuid import UUID
from datetime import datetime
from typing import Optional

from rentflow.db.models import UserRole
from .common import PartialUpdate


class UserPublic(BaseModel):
    """The only shape in which a user leaves the API. Never carries the password hash."""
    id: UUID
    email: str
    name: str
    phone: Optional[str] = None
    role: UserRole
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    name: str = Field(min_length=1)
    phone: Optional[str] = None
    role: UserRole
    is_active: bool = True


class UserUpdate(PartialUpdate):
    not_nullable = ("email", "name", "role", "is_active")

    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8)
    name: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserPublic
