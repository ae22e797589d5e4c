from datetime import datetime
from fastapi import APIRouter, Depends, Request
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from rentflow.api.deps import get_db, get_current_user
from rentflow.api.schemas.common import SuccessResponse
from rentflow.api.schemas.users import Token, UserPublic
from rentflow.core.errors import Unauthenticated, Unauthorized
from rentflow.core.security import verify_password, create_access_token, revoke_session
from rentflow.db.models import User

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=Token)
def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    """Login and get access token with session tracking."""
    user = db.query(User).filter(User.email == form_data.username.strip().lower()).first()

    if not user or not verify_password(form_data.password, user.password_hash):
        raise Unauthenticated("Incorrect email or password")

    if not user.is_active:
        raise Unauthorized("Account is deactivated")

    user.last_login = datetime.utcnow()
    db.commit()

    ip_address = request.client.host if request.client else None
    user_agent = request.headers.get("user-agent")

    access_token = create_access_token(
        user.id,
        db,
        ip_address=ip_address,
        user_agent=user_agent
    )
    return Token(access_token=access_token, user=UserPublic.model_validate(user))


@router.post("/logout", response_model=SuccessResponse)
def logout(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Revoke the session behind the presented token."""
    revoke_session(request.state.session_id, db)
    return SuccessResponse(message="Logged out")


@router.get("/me", response_model=UserPublic)
def get_me(current_user: User = Depends(get_current_user)):
    """Get current user info."""
    return current_user
