import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Integer, Numeric, Text, Uuid
from sqlalchemy.orm import relationship

from rentflow.db.base import Base


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class PaymentType(str, Enum):
    ADVANCE = "ADVANCE"
    MONTHLY = "MONTHLY"
    REFUND = "REFUND"


class PaymentMethodType(str, Enum):
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"


class FeeType(str, Enum):
    NONE = "NONE"
    FIXED = "FIXED"
    PERCENTAGE = "PERCENTAGE"


class PaymentMethod(Base):
    """A way tenants can pay: an online gateway or a bank account."""
    __tablename__ = "payment_methods"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(50), nullable=False, unique=True)
    type = Column(String(20), nullable=False)
    provider = Column(String(50), nullable=True)

    # Online gateway credentials, never returned unmasked
    api_key = Column(String(255), nullable=True)
    secret_key = Column(String(255), nullable=True)
    merchant_id = Column(String(100), nullable=True)
    callback_url = Column(String(500), nullable=True)
    base_url = Column(String(500), nullable=True)

    # Offline transfer details
    bank_name = Column(String(100), nullable=True)
    account_number = Column(String(100), nullable=True)
    account_holder_name = Column(String(255), nullable=True)
    instructions = Column(Text, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    display_order = Column(Integer, nullable=False, default=0)
    fee_type = Column(String(20), nullable=False, default=FeeType.NONE.value)
    fee_amount = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    fee_percent = Column(Numeric(6, 2, asdecimal=False), nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    payments = relationship("Payment", back_populates="method")

    def __repr__(self) -> str:
        return f"<PaymentMethod {self.name} [{self.type}]>"


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    contract_id = Column(Uuid, ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False, index=True)
    invoice_id = Column(Uuid, ForeignKey("invoices.id", ondelete="SET NULL"), nullable=True, index=True)
    amount = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    # Part of the amount already settled against its invoice before review
    applied_amount = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    payment_type = Column(String(20), nullable=False, default=PaymentType.MONTHLY.value)
    status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value, index=True)
    payment_method_id = Column(Uuid, ForeignKey("payment_methods.id", ondelete="SET NULL"), nullable=True)
    payment_method = Column(String(50), nullable=True)
    transaction_id = Column(String(255), nullable=True)
    receipt_url = Column(String(500), nullable=True)
    submitted_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    contract = relationship("Contract", back_populates="payments")
    invoice = relationship("Invoice", back_populates="payments")
    method = relationship("PaymentMethod", back_populates="payments")
    approver = relationship("User", foreign_keys=[approved_by])

    def __repr__(self) -> str:
        return f"<Payment {self.amount} {self.payment_type} [{self.status}]>"
