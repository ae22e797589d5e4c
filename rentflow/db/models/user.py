import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Column, String, DateTime, Boolean, Uuid
from sqlalchemy.orm import relationship

from rentflow.db.base import Base


class UserRole(str, Enum):
    SYSTEM_ADMIN = "SYSTEM_ADMIN"
    OWNER = "OWNER"
    PROPERTY_ADMIN = "PROPERTY_ADMIN"
    ACCOUNTANT = "ACCOUNTANT"
    TENANT = "TENANT"


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    role = Column(String(50), nullable=False, default=UserRole.TENANT.value, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)

    # Relationships
    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")
    assignments = relationship(
        "PropertyAssignment",
        back_populates="user",
        foreign_keys="PropertyAssignment.user_id",
        cascade="all, delete-orphan",
    )
    tenant_profile = relationship("Tenant", back_populates="user", uselist=False)

    def __repr__(self) -> str:
        return f"<User {self.email} [{self.role}]>"
