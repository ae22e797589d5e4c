"""Termination service: persists the workflow and applies its side effects.

Each operation runs as one transaction. The current status is re-checked at
write time with a conditional update, so two callers acting on the same
stale read cannot both succeed.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, List, Tuple
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rentflow.core.errors import Conflict, InvalidState, NotFound, ValidationError
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
    TerminationHistory,
    TerminationRequest,
    Unit,
    UnitStatus,
)
from rentflow.db.session import unit_of_work
from .machine import TerminationStateMachine
from .states import (
    ACTION_PERMISSIONS,
    OPEN_STATES,
    TerminationAction,
    TerminationState,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BankDetails:
    """Where the refund should be sent."""
    account_number: Optional[str] = None
    bank_name: Optional[str] = None
    account_holder_name: Optional[str] = None


class TerminationService:
    """
    Drives contract termination requests through their approval workflow.

    Handles:
    - Opening a request and moving the contract to PENDING_TERMINATION
    - Accountant approval, owner approval, completion and rejection
    - Contract and unit side effects of completion and rejection
    - Scoped listing and history
    """

    def __init__(self, db: Session, *, notifier=None):
        """
        Args:
            db: Database session
            notifier: Optional object with ``termination_status_changed(request)``,
                called after each committed change
        """
        self.db = db
        self.notifier = notifier

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(
        self,
        contract_id: UUID,
        reason: Optional[str],
        caller: CallerContext,
        bank_details: Optional[BankDetails] = None,
    ) -> TerminationRequest:
        """Open a termination request for an ACTIVE contract."""
        require(caller, ACTION_PERMISSIONS[TerminationAction.CREATE])
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Termination reason is required")
        bank_details = bank_details or BankDetails()

        with unit_of_work(self.db):
            contract = self.db.query(Contract).filter(
                Contract.id == contract_id
            ).with_for_update().first()
            if not contract:
                raise NotFound("Contract not found")

            require_property(caller, contract.property_id)

            open_request = self.db.query(TerminationRequest.id).filter(
                TerminationRequest.contract_id == contract.id,
                TerminationRequest.status.in_([s.value for s in OPEN_STATES]),
            ).first()
            if open_request:
                raise Conflict("A termination request already exists for this contract")

            if contract.status != ContractStatus.ACTIVE.value:
                raise InvalidState(
                    f"Only active contracts can be terminated (status is {contract.status})"
                )

            self._compare_and_set_contract(
                contract.id,
                ContractStatus.ACTIVE,
                ContractStatus.PENDING_TERMINATION,
            )

            request = TerminationRequest(
                contract_id=contract.id,
                requested_by=caller.user_id,
                reason=reason,
                refund_amount=contract.remaining_advance or 0,
                bank_account_number=bank_details.account_number,
                bank_name=bank_details.bank_name,
                account_holder_name=bank_details.account_holder_name,
                status=TerminationState.PENDING.value,
            )
            self.db.add(request)
            try:
                self.db.flush()
            except IntegrityError:
                raise Conflict("A termination request already exists for this contract")

            self._record({
                "request_id": request.id,
                "from_state": None,
                "to_state": TerminationState.PENDING.value,
                "transition": TerminationAction.CREATE.value,
                "user_id": caller.user_id,
                "comment": reason,
                "timestamp": datetime.utcnow(),
            })

        logger.info(
            "Termination request %s opened for contract %s by %s",
            request.id, contract_id, caller.user_id,
        )
        self._notify(request)
        return request

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def accountant_approve(self, request_id: UUID, caller: CallerContext) -> TerminationRequest:
        return self._transition(request_id, TerminationAction.ACCOUNTANT_APPROVE, caller)

    def owner_approve(self, request_id: UUID, caller: CallerContext) -> TerminationRequest:
        return self._transition(request_id, TerminationAction.OWNER_APPROVE, caller)

    def complete(
        self,
        request_id: UUID,
        caller: CallerContext,
        receipt_url: Optional[str] = None,
    ) -> TerminationRequest:
        """Finish the termination: contract TERMINATED, every bound unit released."""
        return self._transition(
            request_id,
            TerminationAction.COMPLETE,
            caller,
            values={"receipt_url": receipt_url or None},
            side_effect=self._terminate_contract,
        )

    def reject(self, request_id: UUID, reason: Optional[str], caller: CallerContext) -> TerminationRequest:
        """Reject an open request; a PENDING_TERMINATION contract returns to ACTIVE."""
        reason = (reason or "").strip()
        return self._transition(
            request_id,
            TerminationAction.REJECT,
            caller,
            comment=reason,
            values={"rejection_reason": reason},
            side_effect=self._reinstate_contract,
        )

    def _transition(
        self,
        request_id: UUID,
        action: TerminationAction,
        caller: CallerContext,
        *,
        comment: Optional[str] = None,
        values: Optional[dict] = None,
        side_effect=None,
    ) -> TerminationRequest:
        require(caller, ACTION_PERMISSIONS[action])
        if action == TerminationAction.REJECT and not comment:
            raise ValidationError("Rejection reason is required")

        with unit_of_work(self.db):
            request = self.db.query(TerminationRequest).filter(
                TerminationRequest.id == request_id
            ).with_for_update().first()
            if not request:
                raise NotFound("Termination request not found")

            contract = request.contract
            require_property(caller, contract.property_id)

            machine = TerminationStateMachine(
                request.id,
                TerminationState(request.status),
                user_permissions=caller.permissions,
            )
            from_state = machine.state
            to_state = machine.transition(action, comment=comment, user_id=caller.user_id)

            result = self.db.execute(
                update(TerminationRequest)
                .where(
                    TerminationRequest.id == request.id,
                    TerminationRequest.status == from_state.value,
                )
                .values(status=to_state.value, updated_at=datetime.utcnow(), **(values or {}))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise InvalidState("Termination request was changed by another user, reload and retry")

            if side_effect is not None:
                side_effect(contract)

            for entry in machine.get_history():
                self._record(entry)

        self.db.refresh(request)
        logger.info(
            "Termination request %s: %s -> %s by %s (%s)",
            request.id, from_state.value, to_state.value, caller.user_id, caller.role.value,
        )
        self._notify(request)
        return request

    def _terminate_contract(self, contract: Contract) -> None:
        self._compare_and_set_contract(
            contract.id,
            ContractStatus.PENDING_TERMINATION,
            ContractStatus.TERMINATED,
            termination_date=datetime.utcnow(),
        )
        unit_ids = select(ContractUnit.unit_id).where(ContractUnit.contract_id == contract.id)
        self.db.execute(
            update(Unit)
            .where(Unit.id.in_(unit_ids))
            .values(status=UnitStatus.AVAILABLE.value, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )

    def _reinstate_contract(self, contract: Contract) -> None:
        # Only a contract still waiting on this termination goes back to ACTIVE
        self.db.execute(
            update(Contract)
            .where(
                Contract.id == contract.id,
                Contract.status == ContractStatus.PENDING_TERMINATION.value,
            )
            .values(status=ContractStatus.ACTIVE.value, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )

    def _compare_and_set_contract(
        self,
        contract_id: UUID,
        expected: ContractStatus,
        new: ContractStatus,
        **values,
    ) -> None:
        result = self.db.execute(
            update(Contract)
            .where(Contract.id == contract_id, Contract.status == expected.value)
            .values(status=new.value, updated_at=datetime.utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidState(f"Contract is no longer {expected.value}")

    def _record(self, entry: dict) -> None:
        """Persist one transition entry as produced by the state machine."""
        self.db.add(TerminationHistory(
            request_id=entry["request_id"],
            from_state=entry["from_state"],
            to_state=entry["to_state"],
            action=entry["transition"],
            user_id=entry["user_id"],
            comment=entry["comment"] or None,
            created_at=entry["timestamp"],
        ))

    def _notify(self, request: TerminationRequest) -> None:
        if self.notifier is not None:
            self.notifier.termination_status_changed(request)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list(
        self,
        caller: CallerContext,
        *,
        status: Optional[str] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[List[TerminationRequest], int]:
        """Requests visible to the caller, newest first, with the total count."""
        require(caller, "terminations:list")

        query = self.db.query(TerminationRequest).join(
            Contract, TerminationRequest.contract_id == Contract.id
        )
        query = scope_query(query, caller, Contract.property_id, Contract.tenant_id)

        if status:
            try:
                status = TerminationState(status.upper()).value
            except ValueError:
                raise ValidationError(f"Unknown termination status: {status}")
            query = query.filter(TerminationRequest.status == status)

        total = query.count()
        items = query.order_by(TerminationRequest.created_at.desc()).offset(
            (page - 1) * per_page
        ).limit(per_page).all()
        return items, total

    def get(self, request_id: UUID, caller: CallerContext) -> TerminationRequest:
        require(caller, "terminations:read")
        request = self.db.query(TerminationRequest).filter(
            TerminationRequest.id == request_id
        ).first()
        if not request:
            raise NotFound("Termination request not found")
        require_contract(caller, request.contract)
        return request

    def history(self, request_id: UUID, caller: CallerContext) -> List[TerminationHistory]:
        return list(self.get(request_id, caller).history)
