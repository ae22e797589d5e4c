from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from rentflow.api.deps import get_db, get_caller, get_notifier
from rentflow.api.schemas.common import PaginatedResponse, SuccessResponse
from rentflow.api.schemas.contract import ContractCreate, ContractResponse, ContractSummary, ContractUpdate
from rentflow.api.schemas.termination import TerminateContract, TerminationResponse
from rentflow.core.rbac import CallerContext, require_permission
from rentflow.core.termination import BankDetails, TerminationService
from rentflow.services.contracts import ContractService, NewContract
from rentflow.services.sms import SmsNotifier

router = APIRouter(prefix="/contracts", tags=["contracts"])


@router.get("", response_model=PaginatedResponse[ContractSummary])
@require_permission("contracts:list")
async def list_contracts(
    contract_status: Optional[str] = Query(None, alias="status"),
    property_id: Optional[UUID] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    items, total = ContractService(db).list(
        caller, status=contract_status, property_id=property_id, page=page, per_page=per_page
    )
    return PaginatedResponse.create(
        [ContractSummary.model_validate(c) for c in items], total, page, per_page
    )


@router.post("", response_model=ContractResponse, status_code=status.HTTP_201_CREATED)
@require_permission("contracts:create")
async def create_contract(
    contract_in: ContractCreate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    """Create a contract under review, binding its units and issuing the first invoice."""
    contract = ContractService(db).create(caller, NewContract(**contract_in.model_dump()))
    db.refresh(contract)
    return contract


@router.get("/{contract_id}", response_model=ContractResponse)
@require_permission("contracts:read")
async def get_contract(
    contract_id: UUID,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return ContractService(db).get(caller, contract_id)


@router.put("/{contract_id}", response_model=ContractResponse)
@require_permission("contracts:update")
async def update_contract(
    contract_id: UUID,
    contract_in: ContractUpdate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    contract = ContractService(db).update(caller, contract_id, contract_in.model_dump(exclude_unset=True))
    db.refresh(contract)
    return contract


@router.delete("/{contract_id}", response_model=SuccessResponse)
@require_permission("contracts:delete")
async def delete_contract(
    contract_id: UUID,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    ContractService(db).delete(caller, contract_id)
    return SuccessResponse(message="Contract deleted successfully")


@router.post(
    "/{contract_id}/terminate",
    response_model=TerminationResponse,
    status_code=status.HTTP_201_CREATED,
)
@require_permission("terminations:create")
async def terminate_contract(
    contract_id: UUID,
    body: Optional[TerminateContract] = None,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
    notifier: SmsNotifier = Depends(get_notifier),
):
    """Open a termination request; the contract moves to PENDING_TERMINATION."""
    body = body or TerminateContract()
    service = TerminationService(db, notifier=notifier)
    return service.create(
        contract_id,
        body.reason,
        caller,
        BankDetails(
            account_number=body.bank_account_number,
            bank_name=body.bank_name,
            account_holder_name=body.account_holder_name,
        ),
    )
