from pydantic import BaseModel, Field
from typing import Optional
from uuid import UUID

from rentflow.db.models import FeeType, PaymentMethodType, TaxType
from .common import PartialUpdate


class SettingsResponse(BaseModel):
    tenant_self_service_enabled: bool
    advance_payment_max_months: int
    late_payment_penalty_percent: float
    default_calendar: str
    sms_notification_enabled: bool
    sms_base_url: Optional[str]
    sms_sender_id: Optional[str]
    sms_api_key_masked: Optional[str] = None
    tax_enabled: bool
    tax_name: str
    tax_type: TaxType
    tax_rate: float
    tax_fixed_amount: float
    tax_registration_number: Optional[str]
    apply_tax_to_invoices: bool


class SettingsUpdate(PartialUpdate):
    not_nullable = (
        "tenant_self_service_enabled", "advance_payment_max_months", "late_payment_penalty_percent",
        "default_calendar", "tax_enabled", "tax_name", "tax_type", "tax_rate", "tax_fixed_amount",
        "apply_tax_to_invoices",
    )

    tenant_self_service_enabled: Optional[bool] = None
    advance_payment_max_months: Optional[int] = Field(None, ge=1)
    late_payment_penalty_percent: Optional[float] = Field(None, ge=0, le=100)
    default_calendar: Optional[str] = Field(None, pattern="^(gregorian|ethiopian)$")
    tax_enabled: Optional[bool] = None
    tax_name: Optional[str] = None
    tax_type: Optional[TaxType] = None
    tax_rate: Optional[float] = Field(None, ge=0, le=100)
    tax_fixed_amount: Optional[float] = Field(None, ge=0)
    tax_registration_number: Optional[str] = None
    apply_tax_to_invoices: Optional[bool] = None


class SmsSettingsUpdate(PartialUpdate):
    not_nullable = ("sms_notification_enabled",)

    sms_notification_enabled: Optional[bool] = None
    sms_api_key: Optional[str] = None
    sms_base_url: Optional[str] = None
    sms_sender_id: Optional[str] = None


class SmsSendRequest(BaseModel):
    """Send a test message, or an invoice reminder to the invoice's tenant."""
    kind: str = Field("test", pattern="^(test|invoice)$")
    phone: Optional[str] = None
    invoice_id: Optional[UUID] = None


class SmsSendResponse(BaseModel):
    success: bool
    message: str
    error: Optional[str] = None


class PaymentMethodBase(BaseModel):
    provider: Optional[str] = Field(None, max_length=50)
    merchant_id: Optional[str] = None
    callback_url: Optional[str] = None
    base_url: Optional[str] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    account_holder_name: Optional[str] = None
    instructions: Optional[str] = None
    is_active: bool = True
    display_order: int = Field(0, ge=0)
    fee_type: FeeType = FeeType.NONE
    fee_amount: float = Field(0, ge=0)
    fee_percent: float = Field(0, ge=0, le=100)


class PaymentMethodCreate(PaymentMethodBase):
    name: str = Field(min_length=1, max_length=50)
    type: PaymentMethodType
    api_key: Optional[str] = None
    secret_key: Optional[str] = None


class PaymentMethodUpdate(PartialUpdate):
    """Partial update. Keys that are empty or still masked keep their stored value."""
    not_nullable = (
        "name", "type", "is_active", "display_order", "fee_type", "fee_amount", "fee_percent",
    )

    name: Optional[str] = Field(None, min_length=1, max_length=50)
    type: Optional[PaymentMethodType] = None
    provider: Optional[str] = Field(None, max_length=50)
    api_key: Optional[str] = None
    secret_key: Optional[str] = None
    merchant_id: Optional[str] = None
    callback_url: Optional[str] = None
    base_url: Optional[str] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    account_holder_name: Optional[str] = None
    instructions: Optional[str] = None
    is_active: Optional[bool] = None
    display_order: Optional[int] = Field(None, ge=0)
    fee_type: Optional[FeeType] = None
    fee_amount: Optional[float] = Field(None, ge=0)
    fee_percent: Optional[float] = Field(None, ge=0, le=100)


class PaymentMethodResponse(PaymentMethodBase):
    id: UUID
    name: str
    type: PaymentMethodType
    api_key_masked: Optional[str] = None
    secret_key_masked: Optional[str] = None
