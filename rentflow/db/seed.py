"""Database seeding for rentflow.

Creates the system settings row and the bootstrap system administrator.
"""

from typing import Optional

from sqlalchemy.orm import Session

from rentflow.core.config import get_settings
from rentflow.core.security import get_password_hash
from rentflow.db.models import SystemSettings, User, UserRole
from rentflow.services.settings import get_system_settings


def seed_system_settings(db: Session) -> SystemSettings:
    """Create the settings row with defaults. Idempotent."""
    return get_system_settings(db)


def seed_admin(
    db: Session,
    email: str,
    password: str,
    *,
    name: str = "System Administrator",
) -> User:
    """
    Create a SYSTEM_ADMIN user unless one with this email already exists.

    Args:
        db: Database session
        email: Login email
        password: Plain-text password, hashed before storing

    Returns:
        The existing or created user
    """
    email = email.lower()
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        return existing

    admin = User(
        email=email,
        password_hash=get_password_hash(password),
        name=name,
        role=UserRole.SYSTEM_ADMIN.value,
        is_active=True,
    )
    db.add(admin)
    db.flush()
    return admin


def seed(db: Session, admin_email: Optional[str] = None, admin_password: Optional[str] = None) -> User:
    settings = get_settings()
    password = admin_password or settings.bootstrap_admin_password
    if not password:
        raise ValueError("Set RENTFLOW_BOOTSTRAP_ADMIN_PASSWORD to seed the admin account")

    seed_system_settings(db)
    return seed_admin(db, admin_email or settings.bootstrap_admin_email, password)


# CLI script for seeding
if __name__ == "__main__":
    import sys
    from rentflow.db.session import SessionLocal

    db = SessionLocal()
    try:
        admin = seed(db)
        db.commit()
        print(f"System settings ready; admin account: {admin.email}")
    except Exception as e:
        db.rollback()
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        db.close()
