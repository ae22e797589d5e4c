"""Invoice creation and lookup."""

import logging
import secrets
import string
import time
from datetime import date
from typing import Optional, List, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from rentflow.core.errors import NotFound, ValidationError
from rentflow.core.rbac.context import CallerContext, require, require_contract, scope_query
from rentflow.db.models import Contract, Invoice, InvoiceStatus
from rentflow.db.session import unit_of_work
from .settings import compute_tax, get_system_settings

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_uppercase


def _to_base36(value: int) -> str:
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits)) or "0"


def generate_invoice_number() -> str:
    """``INV-<base36 millis>-<6 random base36 chars>``, upper case."""
    stamp = _to_base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"INV-{stamp}-{suffix}"


def build_invoice(
    db: Session,
    contract: Contract,
    amount: float,
    due_date: date,
    period_start: date,
    period_end: date,
    *,
    notes: Optional[str] = None,
    paid_amount: float = 0,
) -> Invoice:
    """Create an invoice row with tax applied from the system settings."""
    tax_amount, tax_rate = compute_tax(get_system_settings(db), amount)
    total = round(amount + tax_amount, 2)
    if paid_amount >= total:
        status = InvoiceStatus.PAID
    elif paid_amount > 0:
        status = InvoiceStatus.PARTIALLY_PAID
    else:
        status = InvoiceStatus.PENDING

    invoice = Invoice(
        contract_id=contract.id,
        invoice_number=generate_invoice_number(),
        amount=amount,
        tax_amount=tax_amount,
        tax_rate=tax_rate,
        total_amount=total,
        paid_amount=min(paid_amount, total),
        due_date=due_date,
        period_start=period_start,
        period_end=period_end,
        status=status.value,
        notes=notes,
    )
    db.add(invoice)
    return invoice


class InvoiceService:
    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        caller: CallerContext,
        contract_id: UUID,
        amount: float,
        due_date: date,
        period_start: date,
        period_end: date,
        notes: Optional[str] = None,
    ) -> Invoice:
        require(caller, "invoices:create")
        if amount is None or amount <= 0:
            raise ValidationError("Invoice amount must be positive")
        if period_end < period_start:
            raise ValidationError("Invoice period ends before it starts")

        with unit_of_work(self.db):
            contract = self.db.query(Contract).filter(Contract.id == contract_id).first()
            if not contract:
                raise NotFound("Contract not found")
            require_contract(caller, contract)
            invoice = build_invoice(
                self.db, contract, amount, due_date, period_start, period_end, notes=notes
            )

        logger.info("Invoice %s issued for contract %s", invoice.invoice_number, contract_id)
        return invoice

    def list(
        self,
        caller: CallerContext,
        *,
        status: Optional[str] = None,
        contract_id: Optional[UUID] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[List[Invoice], int]:
        require(caller, "invoices:list")
        query = self.db.query(Invoice).join(Contract, Invoice.contract_id == Contract.id)
        query = scope_query(query, caller, Contract.property_id, Contract.tenant_id)
        if status:
            query = query.filter(Invoice.status == status.upper())
        if contract_id:
            query = query.filter(Invoice.contract_id == contract_id)

        total = query.count()
        items = query.order_by(Invoice.created_at.desc()).offset(
            (page - 1) * per_page
        ).limit(per_page).all()
        return items, total

    def get_by_number(self, invoice_number: str) -> Invoice:
        """Public lookup by invoice number; no caller required."""
        invoice = self.db.query(Invoice).filter(
            Invoice.invoice_number == invoice_number.upper()
        ).first()
        if not invoice:
            raise NotFound("Invoice not found")
        return invoice
