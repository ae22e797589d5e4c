"""Payment submission and review."""

import logging
from datetime import datetime
from typing import Optional, List, Tuple
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from rentflow.core.errors import InvalidState, NotFound, ValidationError
from rentflow.core.rbac.context import CallerContext, require, require_contract, scope_query
from rentflow.db.models import (
    Contract,
    ContractStatus,
    Invoice,
    InvoiceStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
)
from rentflow.db.session import unit_of_work
from .contracts import contract_months

logger = logging.getLogger(__name__)


def max_advance_for(contract: Contract) -> float:
    """Largest advance accepted for a contract: rent for its whole length."""
    return float(contract.monthly_rent) * contract_months(contract.start_date, contract.end_date)


class PaymentService:
    def __init__(self, db: Session, *, notifier=None):
        self.db = db
        self.notifier = notifier

    def create(
        self,
        caller: CallerContext,
        contract_id: UUID,
        amount: float,
        payment_type: str,
        *,
        invoice_id: Optional[UUID] = None,
        payment_method_id: Optional[UUID] = None,
        payment_method: Optional[str] = None,
        transaction_id: Optional[str] = None,
        receipt_url: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Payment:
        require(caller, "payments:create")
        try:
            payment_type = PaymentType(payment_type.upper())
        except (AttributeError, ValueError):
            raise ValidationError(f"Unknown payment type: {payment_type}")
        if amount is None or amount <= 0:
            raise ValidationError("Payment amount must be positive")

        with unit_of_work(self.db):
            contract = self.db.query(Contract).filter(Contract.id == contract_id).first()
            if not contract:
                raise NotFound("Contract not found")
            require_contract(caller, contract)

            if payment_type == PaymentType.ADVANCE:
                max_advance = max_advance_for(contract)
                if amount > max_advance:
                    raise ValidationError(f"Maximum advance payment is {max_advance:.2f}")

            if invoice_id is not None:
                invoice = self.db.query(Invoice).filter(Invoice.id == invoice_id).first()
                if not invoice or invoice.contract_id != contract.id:
                    raise NotFound("Invoice not found for this contract")

            if payment_method_id is not None:
                method = self.db.query(PaymentMethod).filter(PaymentMethod.id == payment_method_id).first()
                if not method:
                    raise NotFound("Payment method not found")
                if not method.is_active:
                    raise ValidationError(f"Payment method {method.name} is not available")
                payment_method = method.name

            payment = Payment(
                contract_id=contract.id,
                invoice_id=invoice_id,
                amount=amount,
                payment_type=payment_type.value,
                status=PaymentStatus.PENDING.value,
                payment_method_id=payment_method_id,
                payment_method=payment_method,
                transaction_id=transaction_id,
                receipt_url=receipt_url,
                submitted_by=caller.user_id,
                notes=notes,
            )
            self.db.add(payment)

        logger.info("Payment %s submitted for contract %s", payment.id, contract_id)
        return payment

    def approve(self, caller: CallerContext, payment_id: UUID) -> Payment:
        """Approve a pending payment and credit the contract or invoice it pays."""
        require(caller, "payments:approve")

        with unit_of_work(self.db):
            payment = self._load_for_review(caller, payment_id)
            self._set_status(payment, PaymentStatus.APPROVED, approved_by=caller.user_id,
                             approved_at=datetime.utcnow())

            contract = payment.contract
            unapplied = round(float(payment.amount) - float(payment.applied_amount or 0), 2)

            if payment.invoice_id:
                invoice = self.db.query(Invoice).filter(
                    Invoice.id == payment.invoice_id
                ).with_for_update().first()
                if invoice:
                    settled = unapplied
                    if payment.payment_type == PaymentType.ADVANCE.value:
                        # An advance pays only what the invoice still owes
                        balance = float(invoice.total_amount) - float(invoice.paid_amount or 0)
                        settled = max(0.0, min(unapplied, round(balance, 2)))
                    if settled > 0:
                        invoice.paid_amount = round(float(invoice.paid_amount or 0) + settled, 2)
                        if invoice.paid_amount >= float(invoice.total_amount):
                            invoice.status = InvoiceStatus.PAID.value
                        else:
                            invoice.status = InvoiceStatus.PARTIALLY_PAID.value
                        unapplied = round(unapplied - settled, 2)

            # Whatever no invoice used stays on the contract as refundable advance
            if payment.payment_type == PaymentType.ADVANCE.value and unapplied > 0:
                self.db.execute(
                    update(Contract)
                    .where(Contract.id == contract.id)
                    .values(remaining_advance=Contract.remaining_advance + unapplied)
                    .execution_options(synchronize_session=False)
                )

            # A verified payment activates a contract still under review
            self.db.execute(
                update(Contract)
                .where(
                    Contract.id == contract.id,
                    Contract.status == ContractStatus.UNDER_REVIEW.value,
                )
                .values(status=ContractStatus.ACTIVE.value, updated_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )

        self.db.refresh(payment)
        logger.info("Payment %s approved by %s", payment.id, caller.user_id)
        if self.notifier is not None:
            self.notifier.payment_approved(payment)
        return payment

    def reject(self, caller: CallerContext, payment_id: UUID, reason: Optional[str]) -> Payment:
        require(caller, "payments:reject")
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Rejection reason is required")

        with unit_of_work(self.db):
            payment = self._load_for_review(caller, payment_id)
            self._set_status(payment, PaymentStatus.REJECTED, rejection_reason=reason)

        self.db.refresh(payment)
        logger.info("Payment %s rejected by %s", payment.id, caller.user_id)
        return payment

    def list(
        self,
        caller: CallerContext,
        *,
        status: Optional[str] = None,
        contract_id: Optional[UUID] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[List[Payment], int]:
        require(caller, "payments:list")
        query = self.db.query(Payment).join(Contract, Payment.contract_id == Contract.id)
        query = scope_query(query, caller, Contract.property_id, Contract.tenant_id)
        if status:
            query = query.filter(Payment.status == status.upper())
        if contract_id:
            query = query.filter(Payment.contract_id == contract_id)

        total = query.count()
        items = query.order_by(Payment.created_at.desc()).offset(
            (page - 1) * per_page
        ).limit(per_page).all()
        return items, total

    def _load_for_review(self, caller: CallerContext, payment_id: UUID) -> Payment:
        payment = self.db.query(Payment).filter(Payment.id == payment_id).with_for_update().first()
        if not payment:
            raise NotFound("Payment not found")
        require_contract(caller, payment.contract)
        if payment.status != PaymentStatus.PENDING.value:
            raise InvalidState(f"Payment is {payment.status}, not PENDING")
        return payment

    def _set_status(self, payment: Payment, new: PaymentStatus, **values) -> None:
        result = self.db.execute(
            update(Payment)
            .where(Payment.id == payment.id, Payment.status == PaymentStatus.PENDING.value)
            .values(status=new.value, updated_at=datetime.utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidState("Payment was reviewed by another user, reload and retry")
