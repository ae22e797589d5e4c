"""User administration. Elevated roles only."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from rentflow.api.deps import get_db, get_caller
from rentflow.api.schemas.common import PaginatedResponse, SuccessResponse
from rentflow.api.schemas.users import UserCreate, UserPublic, UserUpdate
from rentflow.core.errors import NotFound, ValidationError
from rentflow.core.rbac import CallerContext, require_permission
from rentflow.core.security import get_password_hash, revoke_user_sessions
from rentflow.db.models import User, UserRole

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["users"])


def _get_user(db: Session, user_id: UUID) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFound("User not found")
    return user


def _ensure_not_last_admin(db: Session, user: User, message: str) -> None:
    if user.role != UserRole.SYSTEM_ADMIN.value:
        return
    admins = db.query(User).filter(User.role == UserRole.SYSTEM_ADMIN.value).count()
    if admins <= 1:
        raise ValidationError(message)


def _ensure_email_free(db: Session, email: str, exclude: Optional[UUID] = None) -> None:
    query = db.query(User).filter(User.email == email)
    if exclude is not None:
        query = query.filter(User.id != exclude)
    if query.first():
        raise ValidationError("Email already exists")


@router.get("", response_model=PaginatedResponse[UserPublic])
@require_permission("users:list")
async def list_users(
    role: Optional[UserRole] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    query = db.query(User)
    if role:
        query = query.filter(User.role == role.value)

    total = query.count()
    users = query.order_by(User.created_at.desc()).offset((page - 1) * per_page).limit(per_page).all()
    return PaginatedResponse.create(
        [UserPublic.model_validate(u) for u in users], total, page, per_page
    )


@router.post("", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
@require_permission("users:create")
async def create_user(
    user_in: UserCreate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    email = user_in.email.lower()
    _ensure_email_free(db, email)

    user = User(
        email=email,
        password_hash=get_password_hash(user_in.password),
        name=user_in.name,
        phone=user_in.phone or None,
        role=user_in.role.value,
        is_active=user_in.is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("User %s (%s) created by %s", user.id, user.role, caller.user_id)
    return user


@router.get("/{user_id}", response_model=UserPublic)
@require_permission("users:read")
async def get_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return _get_user(db, user_id)


@router.put("/{user_id}", response_model=UserPublic)
@require_permission("users:update")
async def update_user(
    user_id: UUID,
    user_in: UserUpdate,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    user = _get_user(db, user_id)
    changes = user_in.model_dump(exclude_unset=True)

    new_role = changes.get("role")
    if new_role is not None and new_role != UserRole.SYSTEM_ADMIN:
        _ensure_not_last_admin(db, user, "Cannot remove the last system admin")
    if changes.get("is_active") is False:
        _ensure_not_last_admin(db, user, "Cannot deactivate the last system admin")

    if changes.get("email"):
        changes["email"] = changes["email"].lower()
        _ensure_email_free(db, changes["email"], exclude=user.id)

    password = changes.pop("password", None)
    if password:
        user.password_hash = get_password_hash(password)
    if new_role is not None:
        changes["role"] = new_role.value

    for key, value in changes.items():
        setattr(user, key, value)
    db.commit()

    if changes.get("is_active") is False or password:
        revoke_user_sessions(user.id, db)

    db.refresh(user)
    logger.info("User %s updated by %s", user.id, caller.user_id)
    return user


@router.delete("/{user_id}", response_model=SuccessResponse)
@require_permission("users:delete")
async def delete_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    if user_id == caller.user_id:
        raise ValidationError("Cannot delete your own account")

    user = _get_user(db, user_id)
    _ensure_not_last_admin(db, user, "Cannot delete the last system admin")

    db.delete(user)
    db.commit()

    logger.info("User %s deleted by %s", user_id, caller.user_id)
    return SuccessResponse(message="User deleted successfully")
