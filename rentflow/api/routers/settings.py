"""System settings and SMS configuration."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rentflow.api.deps import get_db, get_caller
from rentflow.api.schemas.settings import (
    SettingsResponse,
    SettingsUpdate,
    SmsSendRequest,
    SmsSendResponse,
    SmsSettingsUpdate,
)
from rentflow.core.errors import NotFound, ValidationError
from rentflow.core.rbac import CallerContext, require_contract, require_permission
from rentflow.db.models import Invoice, SystemSettings
from rentflow.services.settings import find_system_settings, get_system_settings, mask_api_key
from rentflow.services.sms import SmsClient, SmsError, render

logger = logging.getLogger(__name__)
router = APIRouter(tags=["settings"])


def _to_response(row: SystemSettings) -> SettingsResponse:
    return SettingsResponse(
        tenant_self_service_enabled=row.tenant_self_service_enabled,
        advance_payment_max_months=row.advance_payment_max_months,
        late_payment_penalty_percent=row.late_payment_penalty_percent,
        default_calendar=row.default_calendar,
        sms_notification_enabled=row.sms_notification_enabled,
        sms_base_url=row.sms_base_url,
        sms_sender_id=row.sms_sender_id,
        sms_api_key_masked=mask_api_key(row.sms_api_key),
        tax_enabled=row.tax_enabled,
        tax_name=row.tax_name,
        tax_type=row.tax_type,
        tax_rate=row.tax_rate,
        tax_fixed_amount=row.tax_fixed_amount,
        tax_registration_number=row.tax_registration_number,
        apply_tax_to_invoices=row.apply_tax_to_invoices,
    )


@router.get("/settings", response_model=SettingsResponse)
@require_permission("settings:read")
async def get_settings_endpoint(
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    row = get_system_settings(db)
    db.commit()
    return _to_response(row)


@router.put("/settings", response_model=SettingsResponse)
@require_permission("settings:update")
async def update_settings(
    settings_in: SettingsUpdate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    row = get_system_settings(db)
    changes = settings_in.model_dump(exclude_unset=True)
    if changes.get("tax_type") is not None:
        changes["tax_type"] = changes["tax_type"].value

    for key, value in changes.items():
        setattr(row, key, value)
    db.commit()
    db.refresh(row)

    logger.info("System settings updated by %s: %s", caller.user_id, ", ".join(sorted(changes)))
    return _to_response(row)


@router.get("/sms/settings", response_model=SettingsResponse)
@require_permission("settings:configure")
async def get_sms_settings(
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    """SMS configuration; the API key is masked to its last four characters."""
    row = get_system_settings(db)
    db.commit()
    return _to_response(row)


@router.put("/sms/settings", response_model=SettingsResponse)
@require_permission("settings:configure")
async def update_sms_settings(
    sms_in: SmsSettingsUpdate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    row = get_system_settings(db)
    changes = sms_in.model_dump(exclude_unset=True)
    # An empty key leaves the stored one alone
    if not changes.get("sms_api_key"):
        changes.pop("sms_api_key", None)

    for key, value in changes.items():
        setattr(row, key, value)
    db.commit()
    db.refresh(row)

    logger.info("SMS settings updated by %s", caller.user_id)
    return _to_response(row)


@router.post("/sms/test", response_model=SmsSendResponse)
@require_permission("invoices:create")
async def send_sms(
    body: SmsSendRequest,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    """Send a test message to a phone number, or an invoice reminder to its tenant."""
    if body.kind == "invoice":
        if not body.invoice_id:
            raise ValidationError("invoice_id is required for invoice reminders")
        invoice = db.query(Invoice).filter(Invoice.id == body.invoice_id).first()
        if not invoice:
            raise NotFound("Invoice not found")
        require_contract(caller, invoice.contract)
        tenant = invoice.contract.tenant
        phone = tenant.phone
        message = render(
            "invoice",
            tenant_name=tenant.full_name,
            invoice_number=invoice.invoice_number,
            amount=float(invoice.total_amount),
            due_date=invoice.due_date.isoformat(),
        )
    else:
        if not body.phone:
            raise ValidationError("Phone number is required for test")
        phone = body.phone
        message = render("test")

    try:
        client = SmsClient.from_settings(find_system_settings(db))
    except SmsError as e:
        return SmsSendResponse(success=False, message=str(e), error=e.code)

    result = client.send(phone, message)
    return SmsSendResponse(success=result.success, message=result.message, error=result.error)
