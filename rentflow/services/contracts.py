"""Contract lifecycle outside the termination workflow.

Creation binds units, issues the first invoice and records the advance
payment awaiting verification; deletion undoes all of it.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional, List, Tuple
from uuid import UUID

from dateutil.relativedelta import relativedelta
from sqlalchemy import update
from sqlalchemy.orm import Session

from rentflow.core.errors import InvalidState, NotFound, ValidationError
from rentflow.core.rbac.context import (
    CallerContext,
    require,
    require_contract,
    require_property,
    scope_query,
)
from rentflow.db.models import (
    Contract,
    ContractStatus,
    ContractUnit,
    Payment,
    PaymentStatus,
    PaymentType,
    Property,
    Tenant,
    Unit,
    UnitStatus,
)
from rentflow.db.session import unit_of_work
from .invoices import build_invoice

logger = logging.getLogger(__name__)

# Fields a contract update may change
EDITABLE_FIELDS = (
    "start_date",
    "end_date",
    "monthly_rent",
    "security_deposit",
    "legal_agreement_url",
    "notes",
)

# Contracts in these states are still in force and cannot be deleted
UNDELETABLE_STATUSES = {ContractStatus.ACTIVE.value, ContractStatus.PENDING_TERMINATION.value}


@dataclass
class NewContract:
    tenant_id: UUID
    property_id: UUID
    unit_ids: List[UUID]
    start_date: date
    end_date: date
    monthly_rent: float
    legal_agreement_url: str
    security_deposit: float = 0
    advance_payment: float = 0
    payment_receipt_url: Optional[str] = None
    notes: Optional[str] = None


def contract_months(start: date, end: date) -> int:
    """Contract length in 30-day months, rounded up."""
    return max(1, math.ceil((end - start).days / 30))


class ContractService:
    def __init__(self, db: Session):
        self.db = db

    def create(self, caller: CallerContext, data: NewContract) -> Contract:
        require(caller, "contracts:create")
        self._validate(data)

        with unit_of_work(self.db):
            prop = self.db.query(Property).filter(Property.id == data.property_id).first()
            if not prop:
                raise NotFound("Property not found")
            require_property(caller, prop.id)

            tenant = self.db.query(Tenant).filter(Tenant.id == data.tenant_id).first()
            if not tenant:
                raise NotFound("Tenant not found")

            unit_ids = list(dict.fromkeys(data.unit_ids))
            units = self.db.query(Unit).filter(Unit.id.in_(unit_ids)).with_for_update().all()
            if len(units) != len(unit_ids):
                raise NotFound("One or more units not found")
            for unit in units:
                if unit.property_id != prop.id:
                    raise ValidationError(f"Unit {unit.unit_number} does not belong to this property")
                if unit.status == UnitStatus.OCCUPIED.value:
                    raise InvalidState(f"Unit {unit.unit_number} is already occupied")

            contract = Contract(
                tenant_id=tenant.id,
                property_id=prop.id,
                created_by=caller.user_id,
                start_date=data.start_date,
                end_date=data.end_date,
                monthly_rent=data.monthly_rent,
                security_deposit=data.security_deposit or 0,
                advance_payment=data.advance_payment or 0,
                # Credited when the advance payment is approved
                remaining_advance=0,
                legal_agreement_url=data.legal_agreement_url,
                notes=data.notes,
                status=ContractStatus.UNDER_REVIEW.value,
            )
            self.db.add(contract)
            self.db.flush()

            for unit in units:
                self.db.add(ContractUnit(
                    contract_id=contract.id,
                    unit_id=unit.id,
                    monthly_rent=unit.monthly_rent or data.monthly_rent,
                ))
                unit.status = UnitStatus.OCCUPIED.value

            advance = data.advance_payment or 0
            # First month's rent, covered up front when the advance allows it
            invoice = build_invoice(
                self.db,
                contract,
                data.monthly_rent,
                due_date=data.start_date + timedelta(days=30),
                period_start=data.start_date,
                period_end=data.start_date + relativedelta(months=1),
                notes="Initial invoice - First month rent",
                paid_amount=data.monthly_rent if advance >= data.monthly_rent else 0,
            )
            self.db.flush()

            if advance > 0:
                # The rent taken from the advance is not credited again on approval
                self.db.add(Payment(
                    contract_id=contract.id,
                    invoice_id=invoice.id,
                    amount=advance,
                    applied_amount=invoice.paid_amount,
                    payment_type=(
                        PaymentType.ADVANCE.value if advance > data.monthly_rent
                        else PaymentType.MONTHLY.value
                    ),
                    status=PaymentStatus.PENDING.value,
                    receipt_url=data.payment_receipt_url,
                    submitted_by=caller.user_id,
                    notes="Payment upon contract creation - awaiting verification",
                ))

        logger.info(
            "Contract %s created for tenant %s on %d unit(s) by %s",
            contract.id, tenant.id, len(units), caller.user_id,
        )
        return contract

    def update(self, caller: CallerContext, contract_id: UUID, changes: dict) -> Contract:
        require(caller, "contracts:update")
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields cannot be changed: {', '.join(sorted(unknown))}")
        cleared = sorted(k for k, v in changes.items() if v is None and k != "notes")
        if cleared:
            raise ValidationError(f"Fields cannot be cleared: {', '.join(cleared)}")

        with unit_of_work(self.db):
            contract = self._load(contract_id)
            require_property(caller, contract.property_id)
            if contract.status in (ContractStatus.TERMINATED.value, ContractStatus.CANCELLED.value):
                raise InvalidState(f"Contract is {contract.status} and can no longer be edited")

            for key, value in changes.items():
                setattr(contract, key, value)
            if contract.end_date <= contract.start_date:
                raise ValidationError("End date must be after start date")

        return contract

    def delete(self, caller: CallerContext, contract_id: UUID) -> None:
        """Delete a contract that is not in force and release its units."""
        require(caller, "contracts:delete")

        with unit_of_work(self.db):
            contract = self._load(contract_id)
            require_property(caller, contract.property_id)
            if contract.status in UNDELETABLE_STATUSES:
                raise InvalidState("Cannot delete a contract in force. Terminate it instead.")

            unit_ids = [cu.unit_id for cu in contract.contract_units]
            self.db.delete(contract)
            self.db.flush()
            if unit_ids:
                self.db.execute(
                    update(Unit)
                    .where(Unit.id.in_(unit_ids))
                    .values(status=UnitStatus.AVAILABLE.value)
                    .execution_options(synchronize_session=False)
                )

        logger.info("Contract %s deleted by %s", contract_id, caller.user_id)

    def get(self, caller: CallerContext, contract_id: UUID) -> Contract:
        require(caller, "contracts:read")
        contract = self._load(contract_id)
        require_contract(caller, contract)
        return contract

    def list(
        self,
        caller: CallerContext,
        *,
        status: Optional[str] = None,
        property_id: Optional[UUID] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[List[Contract], int]:
        require(caller, "contracts:list")
        query = scope_query(self.db.query(Contract), caller, Contract.property_id, Contract.tenant_id)
        if status:
            query = query.filter(Contract.status == status.upper())
        if property_id:
            query = query.filter(Contract.property_id == property_id)

        total = query.count()
        items = query.order_by(Contract.created_at.desc()).offset(
            (page - 1) * per_page
        ).limit(per_page).all()
        return items, total

    def _load(self, contract_id: UUID) -> Contract:
        contract = self.db.query(Contract).filter(Contract.id == contract_id).first()
        if not contract:
            raise NotFound("Contract not found")
        return contract

    @staticmethod
    def _validate(data: NewContract) -> None:
        if not data.unit_ids:
            raise ValidationError("At least one unit is required")
        if not data.legal_agreement_url:
            raise ValidationError("Legal agreement document is required")
        if data.monthly_rent is None or data.monthly_rent <= 0:
            raise ValidationError("Monthly rent must be positive")
        if data.end_date <= data.start_date:
            raise ValidationError("End date must be after start date")
        if (data.advance_payment or 0) < 0 or (data.security_deposit or 0) < 0:
            raise ValidationError("Amounts cannot be negative")
