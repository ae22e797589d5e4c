from datetime import datetime, timedelta
from typing import Optional, Tuple
from uuid import UUID
import uuid

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from rentflow.core.config import get_settings
from rentflow.db.models import UserSession

settings = get_settings()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Generate password hash."""
    return pwd_context.hash(password)


def create_access_token(
    user_id: UUID,
    db: Session,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create JWT access token and track session."""
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.access_token_expire_minutes)

    # Unique JWT ID so the session can be revoked on logout
    jti = str(uuid.uuid4())

    to_encode = {
        "sub": str(user_id),
        "exp": expire,
        "jti": jti,
        "type": "access"
    }
    token = jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)

    session = UserSession(
        user_id=user_id,
        token_jti=jti,
        ip_address=ip_address,
        user_agent=user_agent,
        expires_at=expire,
    )
    db.add(session)
    db.commit()

    return token


def decode_token(token: str, db: Session) -> Optional[Tuple[UUID, str]]:
    """Decode and validate a JWT. Returns (user_id, jti) if valid and not revoked."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        user_id: str = payload.get("sub")
        jti: str = payload.get("jti")

        if user_id is None or jti is None:
            return None

        session = db.query(UserSession).filter(
            UserSession.token_jti == jti,
            UserSession.revoked_at.is_(None)
        ).first()

        if session is None:
            # Session was revoked or doesn't exist
            return None

        return UUID(user_id), jti
    except (JWTError, ValueError):
        return None


def revoke_session(jti: str, db: Session) -> bool:
    """Revoke a session by JWT ID."""
    session = db.query(UserSession).filter(UserSession.token_jti == jti).first()
    if session and session.revoked_at is None:
        session.revoked_at = datetime.utcnow()
        db.commit()
        return True
    return False


def revoke_user_sessions(user_id: UUID, db: Session) -> int:
    """Revoke every open session of a user, e.g. after deactivation."""
    sessions = db.query(UserSession).filter(
        UserSession.user_id == user_id,
        UserSession.revoked_at.is_(None)
    ).all()

    for session in sessions:
        session.revoked_at = datetime.utcnow()

    if sessions:
        db.commit()

    return len(sessions)
