import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Column, String, DateTime, Date, ForeignKey, Numeric, Text, Uuid
from sqlalchemy.orm import relationship

from rentflow.db.base import Base


class InvoiceStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    contract_id = Column(Uuid, ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False, index=True)
    invoice_number = Column(String(64), unique=True, nullable=False, index=True)
    amount = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    tax_amount = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    tax_rate = Column(Numeric(6, 2, asdecimal=False), nullable=True)
    total_amount = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    paid_amount = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    due_date = Column(Date, nullable=False)
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default=InvoiceStatus.PENDING.value, index=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    contract = relationship("Contract", back_populates="invoices")
    payments = relationship("Payment", back_populates="invoice")

    def __repr__(self) -> str:
        return f"<Invoice {self.invoice_number} [{self.status}]>"
