"""Lease contracts and the units they bind."""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Column, String, DateTime, Date, ForeignKey, Numeric, Text, Uuid
from sqlalchemy.orm import relationship

from rentflow.db.base import Base


class ContractStatus(str, Enum):
    DRAFT = "DRAFT"
    UNDER_REVIEW = "UNDER_REVIEW"
    ACTIVE = "ACTIVE"
    PENDING_TERMINATION = "PENDING_TERMINATION"
    TERMINATED = "TERMINATED"
    CANCELLED = "CANCELLED"


class Contract(Base):
    __tablename__ = "contracts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id"), nullable=False, index=True)
    property_id = Column(Uuid, ForeignKey("properties.id"), nullable=False, index=True)
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    monthly_rent = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    security_deposit = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    advance_payment = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    # Advance not yet consumed by invoices; the refund basis on termination
    remaining_advance = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    legal_agreement_url = Column(String(500), nullable=False)
    notes = Column(Text, nullable=True)

    status = Column(String(30), nullable=False, default=ContractStatus.UNDER_REVIEW.value, index=True)
    termination_date = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def units(self):
        return [cu.unit for cu in self.contract_units]

    # Relationships. `property` shadows the builtin from here on.
    tenant = relationship("Tenant", back_populates="contracts")
    property = relationship("Property", back_populates="contracts")
    creator = relationship("User")
    contract_units = relationship("ContractUnit", back_populates="contract", cascade="all, delete-orphan")
    invoices = relationship("Invoice", back_populates="contract", cascade="all, delete-orphan")
    payments = relationship("Payment", back_populates="contract", cascade="all, delete-orphan")
    termination_requests = relationship(
        "TerminationRequest",
        back_populates="contract",
        cascade="all, delete-orphan",
        order_by="TerminationRequest.created_at",
    )

    def __repr__(self) -> str:
        return f"<Contract {self.id} [{self.status}]>"


class ContractUnit(Base):
    __tablename__ = "contract_units"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    contract_id = Column(Uuid, ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False, index=True)
    unit_id = Column(Uuid, ForeignKey("units.id", ondelete="CASCADE"), nullable=False, index=True)
    monthly_rent = Column(Numeric(12, 2, asdecimal=False), nullable=False)

    contract = relationship("Contract", back_populates="contract_units")
    unit = relationship("Unit", back_populates="contract_units")
