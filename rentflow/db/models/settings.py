import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Column, String, DateTime, Boolean, Integer, Numeric, Uuid

from rentflow.db.base import Base


class TaxType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"


class SystemSettings(Base):
    """Single-row table of runtime settings editable by administrators."""
    __tablename__ = "system_settings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    tenant_self_service_enabled = Column(Boolean, nullable=False, default=False)
    advance_payment_max_months = Column(Integer, nullable=False, default=12)
    late_payment_penalty_percent = Column(Numeric(6, 2, asdecimal=False), nullable=False, default=0)
    default_calendar = Column(String(20), nullable=False, default="gregorian")

    # SMS gateway
    sms_notification_enabled = Column(Boolean, nullable=False, default=False)
    sms_api_key = Column(String(255), nullable=True)
    sms_base_url = Column(String(255), nullable=True)
    sms_sender_id = Column(String(50), nullable=True)

    # Tax
    tax_enabled = Column(Boolean, nullable=False, default=False)
    tax_name = Column(String(50), nullable=False, default="VAT")
    tax_type = Column(String(20), nullable=False, default=TaxType.PERCENTAGE.value)
    tax_rate = Column(Numeric(6, 2, asdecimal=False), nullable=False, default=0)
    tax_fixed_amount = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    tax_registration_number = Column(String(100), nullable=True)
    apply_tax_to_invoices = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
