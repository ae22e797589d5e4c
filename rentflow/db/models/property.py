"""Property inventory models: properties, units and staff assignments."""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Column, String, DateTime, Boolean, ForeignKey, Integer, Numeric, Text,
    UniqueConstraint, Uuid,
)
from sqlalchemy.orm import relationship

from rentflow.db.base import Base


class UnitStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"


class Property(Base):
    __tablename__ = "properties"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    address = Column(String(500), nullable=False)
    city = Column(String(100), nullable=True)
    region = Column(String(100), nullable=True)
    total_units = Column(Integer, nullable=False, default=0)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    units = relationship("Unit", back_populates="property", cascade="all, delete-orphan")
    assignments = relationship("PropertyAssignment", back_populates="property", cascade="all, delete-orphan")
    contracts = relationship("Contract", back_populates="property")

    def __repr__(self) -> str:
        return f"<Property {self.name}>"


class Unit(Base):
    __tablename__ = "units"
    __table_args__ = (
        UniqueConstraint("property_id", "unit_number", name="uq_units_property_unit_number"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    property_id = Column(Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    unit_number = Column(String(50), nullable=False)
    floor = Column(Integer, nullable=True)
    bedrooms = Column(Integer, nullable=True)
    bathrooms = Column(Integer, nullable=True)
    area = Column(Numeric(10, 2, asdecimal=False), nullable=True)
    monthly_rent = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    status = Column(String(20), nullable=False, default=UnitStatus.AVAILABLE.value, index=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    property = relationship("Property", back_populates="units")
    contract_units = relationship("ContractUnit", back_populates="unit", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Unit {self.unit_number} [{self.status}]>"


class PropertyAssignment(Base):
    """
    Grants a scoped staff member (property admin or accountant) access to a property.

    A user has at most one assignment per property.
    """
    __tablename__ = "property_assignments"
    __table_args__ = (
        UniqueConstraint("user_id", "property_id", name="uq_property_assignments_user_property"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    property_id = Column(Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", foreign_keys=[user_id], back_populates="assignments")
    property = relationship("Property", back_populates="assignments")
