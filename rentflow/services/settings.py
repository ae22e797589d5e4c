"""Access to the single ``system_settings`` row."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from rentflow.core.config import get_settings
from rentflow.db.models import SystemSettings, TaxType

logger = logging.getLogger(__name__)


def find_system_settings(db: Session) -> Optional[SystemSettings]:
    """Return the settings row if one has been stored, without creating it."""
    return db.query(SystemSettings).first()


def get_system_settings(db: Session) -> SystemSettings:
    """Return the settings row, creating it with defaults on first use.

    The new row is only flushed; callers commit it with their own transaction.
    """
    row = find_system_settings(db)
    if row is None:
        row = SystemSettings(sms_base_url=get_settings().sms_base_url)
        db.add(row)
        db.flush()
        logger.info("Created default system settings")
    return row


def mask_api_key(api_key: Optional[str]) -> Optional[str]:
    """Show only the last four characters of a secret."""
    if not api_key:
        return None
    return "****" + api_key[-4:]


def compute_tax(settings: SystemSettings, amount: float) -> tuple[float, float]:
    """Return ``(tax_amount, tax_rate)`` for an invoice of ``amount``."""
    if not settings.tax_enabled or not settings.apply_tax_to_invoices:
        return 0.0, 0.0
    if settings.tax_type == TaxType.FIXED_AMOUNT.value:
        return round(float(settings.tax_fixed_amount or 0), 2), 0.0
    rate = float(settings.tax_rate or 0)
    return round(amount * rate / 100, 2), rate
