"""Property assignments for scoped staff.

Only PROPERTY_ADMIN and ACCOUNTANT users are assigned to properties;
elevated roles already see everything and tenants are scoped by contract.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from rentflow.api.deps import get_db, get_caller
from rentflow.api.schemas.common import SuccessResponse
from rentflow.api.schemas.property import AssignmentCreate, AssignmentResponse
from rentflow.core.errors import Conflict, NotFound, ValidationError
from rentflow.core.rbac import CallerContext, SCOPED_ROLES, require_permission
from rentflow.db.models import Property, PropertyAssignment, User, UserRole

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/assignments", tags=["assignments"])


@router.get("", response_model=List[AssignmentResponse])
@require_permission("assignments:list")
async def list_assignments(
    user_id: Optional[UUID] = None,
    property_id: Optional[UUID] = None,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    query = db.query(PropertyAssignment)
    if user_id:
        query = query.filter(PropertyAssignment.user_id == user_id)
    if property_id:
        query = query.filter(PropertyAssignment.property_id == property_id)
    return query.order_by(PropertyAssignment.created_at.desc()).all()


@router.post("", response_model=AssignmentResponse, status_code=status.HTTP_201_CREATED)
@require_permission("assignments:create")
async def create_assignment(
    assignment_in: AssignmentCreate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    """Assign a scoped staff member to a property."""
    user = db.query(User).filter(User.id == assignment_in.user_id).first()
    if not user:
        raise NotFound("User not found")
    if UserRole(user.role) not in SCOPED_ROLES:
        raise ValidationError("Only property admins and accountants can be assigned to properties")

    prop = db.query(Property).filter(Property.id == assignment_in.property_id).first()
    if not prop:
        raise NotFound("Property not found")

    existing = db.query(PropertyAssignment).filter(
        PropertyAssignment.user_id == user.id,
        PropertyAssignment.property_id == prop.id,
    ).first()
    if existing:
        raise Conflict("User is already assigned to this property")

    assignment = PropertyAssignment(
        user_id=user.id,
        property_id=prop.id,
        assigned_by=caller.user_id,
    )
    db.add(assignment)
    db.commit()
    db.refresh(assignment)

    logger.info("User %s assigned to property %s by %s", user.id, prop.id, caller.user_id)
    return assignment


@router.delete("/{assignment_id}", response_model=SuccessResponse)
@require_permission("assignments:delete")
async def delete_assignment(
    assignment_id: UUID,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    assignment = db.query(PropertyAssignment).filter(PropertyAssignment.id == assignment_id).first()
    if not assignment:
        raise NotFound("Assignment not found")

    db.delete(assignment)
    db.commit()
    return SuccessResponse(message="Assignment removed")
