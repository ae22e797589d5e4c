from typing import Generator, Optional
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from rentflow.core.errors import Unauthenticated
from rentflow.core.rbac.context import CallerContext, SqlAssignmentLookup, build_caller_context
from rentflow.core.security import decode_token
from rentflow.db.session import SessionLocal
from rentflow.db.models import User
from rentflow.services.sms import SmsNotifier

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_db() -> Generator:
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    token: Optional[str] = Depends(oauth2_scheme),
) -> User:
    """Get current authenticated user from the bearer token."""
    if token:
        decoded = decode_token(token, db)
        if decoded:
            user_id, jti = decoded
            user = db.query(User).filter(User.id == user_id).first()
            if user and user.is_active:
                # Picked up by the request log middleware and logout
                request.state.user_id = user.id
                request.state.session_id = jti
                return user

    raise Unauthenticated("Could not validate credentials")


def get_caller(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CallerContext:
    """Resolve the caller context once per request."""
    return build_caller_context(db, current_user, SqlAssignmentLookup(db))


def get_notifier(db: Session = Depends(get_db)) -> SmsNotifier:
    return SmsNotifier(db)
