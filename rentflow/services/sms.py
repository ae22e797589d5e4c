"""SMS notifications through the SMS Ethiopia gateway.

Handles:
- Phone number normalisation to the 2519XXXXXXXX form
- Message rendering from templates, truncated to one SMS
- Delivery over HTTP with the gateway's KEY header
- Best-effort tenant notifications for termination and payment events
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

import httpx
from jinja2 import Template
from sqlalchemy.orm import Session

from rentflow.core.config import get_settings
from rentflow.db.models import Payment, SystemSettings, TerminationRequest
from rentflow.services.settings import find_system_settings

logger = logging.getLogger(__name__)
settings = get_settings()

MAX_SMS_LENGTH = 160
_PHONE_PATTERN = re.compile(r"^2519\d{8}$")

SMS_TEMPLATES = {
    "test": Template("This is a test message from {{ app_name }}."),
    "invoice": Template(
        "Dear {{ tenant_name }}, Invoice #{{ invoice_number }} for "
        "{{ '{:,.2f}'.format(amount) }} {{ currency }} is due on {{ due_date }}."
    ),
    "payment_approved": Template(
        "Dear {{ tenant_name }}, Payment of {{ '{:,.2f}'.format(amount) }} {{ currency }} "
        "received and approved. Thank you!"
    ),
    "termination_PENDING": Template(
        "Dear {{ tenant_name }}, a termination request for your contract at "
        "{{ property_name }} has been submitted for review."
    ),
    "termination_ACCOUNTANT_APPROVED": Template(
        "Dear {{ tenant_name }}, the termination of your contract at {{ property_name }} "
        "passed accounting review and awaits owner approval."
    ),
    "termination_OWNER_APPROVED": Template(
        "Dear {{ tenant_name }}, the termination of your contract at {{ property_name }} "
        "was approved. Your refund of {{ '{:,.2f}'.format(refund_amount) }} {{ currency }} is being processed."
    ),
    "termination_COMPLETED": Template(
        "Dear {{ tenant_name }}, your contract at {{ property_name }} has been terminated. "
        "Refund: {{ '{:,.2f}'.format(refund_amount) }} {{ currency }}."
    ),
    "termination_REJECTED": Template(
        "Dear {{ tenant_name }}, the termination request for {{ property_name }} was rejected: "
        "{{ reason }}"
    ),
}


class SmsError(Exception):
    """Raised when a message cannot be sent."""

    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class SmsResult:
    success: bool
    message: str
    error: Optional[str] = None


def normalize_phone(phone: str) -> str:
    """Convert a local or international number to ``2519XXXXXXXX``.

    Raises:
        SmsError: If the result is not an Ethiopian mobile number
    """
    digits = re.sub(r"\D", "", phone or "")
    if digits.startswith("0"):
        digits = "251" + digits[1:]
    elif not digits.startswith("251"):
        digits = "251" + digits

    if not _PHONE_PATTERN.match(digits):
        raise SmsError(
            "Invalid phone number format. Must be Ethiopian number (09XXXXXXXX or 2519XXXXXXXX)",
            "INVALID_PHONE_FORMAT",
        )
    return digits


def truncate_message(message: str) -> str:
    if len(message) > MAX_SMS_LENGTH:
        return message[:MAX_SMS_LENGTH - 3] + "..."
    return message


def render(template_name: str, **context) -> str:
    context.setdefault("currency", settings.currency)
    context.setdefault("app_name", settings.app_name)
    return SMS_TEMPLATES[template_name].render(**context).strip()


class SmsClient:
    """Thin HTTP client for the gateway's ``sms/send`` endpoint."""

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key
        base_url = base_url or settings.sms_base_url
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout = timeout or settings.sms_timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, row: Optional[SystemSettings], **kwargs) -> "SmsClient":
        if row is None or not row.sms_api_key:
            raise SmsError("SMS API key not configured", "SMS_API_KEY_MISSING")
        if not row.sms_notification_enabled:
            raise SmsError("SMS notifications are disabled", "SMS_DISABLED")
        return cls(row.sms_api_key, row.sms_base_url, **kwargs)

    def send(self, to: str, message: str) -> SmsResult:
        """Send one message. Gateway and network failures become a failed result."""
        try:
            msisdn = normalize_phone(to)
        except SmsError as e:
            return SmsResult(False, str(e), e.code)

        payload = {"msisdn": msisdn, "text": truncate_message(message)}
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(
                    f"{self.base_url}sms/send",
                    json=payload,
                    headers={"KEY": self.api_key},
                )
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("SMS delivery to %s failed: %s", msisdn, e)
            return SmsResult(False, "Failed to send SMS", "SMS_SEND_FAILED")

        if response.is_success and data.get("status") == "success":
            logger.info("SMS sent to %s", msisdn)
            return SmsResult(True, "SMS sent successfully")

        logger.warning("SMS gateway refused message to %s: %s", msisdn, data.get("message"))
        return SmsResult(False, data.get("message") or "Failed to send SMS", "SMS_SEND_FAILED")


class SmsNotifier:
    """
    Texts tenants about changes to their contracts.

    Notifications are not required for correctness: every failure is
    logged and swallowed so the calling operation is never affected.
    """

    def __init__(self, db: Session, *, transport: Optional[httpx.BaseTransport] = None):
        self.db = db
        self._transport = transport

    def termination_status_changed(self, request: TerminationRequest) -> Optional[SmsResult]:
        contract = request.contract
        return self._send_to_tenant(
            contract.tenant,
            f"termination_{request.status}",
            property_name=contract.property.name,
            refund_amount=float(request.refund_amount or 0),
            reason=request.rejection_reason or "",
        )

    def payment_approved(self, payment: Payment) -> Optional[SmsResult]:
        return self._send_to_tenant(
            payment.contract.tenant,
            "payment_approved",
            amount=float(payment.amount),
        )

    def _send_to_tenant(self, tenant, template_name: str, **context) -> Optional[SmsResult]:
        try:
            row = find_system_settings(self.db)
            if row is None or not row.sms_notification_enabled or not row.sms_api_key:
                return None
            if tenant is None or not tenant.phone:
                return None
            client = SmsClient.from_settings(row, transport=self._transport)
            message = render(template_name, tenant_name=tenant.full_name, **context)
            return client.send(tenant.phone, message)
        except Exception:
            logger.exception("Could not send %s notification", template_name)
            return None
