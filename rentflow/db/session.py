"""Engine, session factory and transactional scope."""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from rentflow.core.config import get_settings
from rentflow.core.errors import InternalError, RentflowError

logger = logging.getLogger(__name__)
settings = get_settings()

engine = create_engine(settings.database_url, echo=settings.database_echo, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """Run a block as one transaction on ``db``.

    Commits when the block finishes, rolls back on any exception. Typed
    rentflow errors propagate unchanged; database errors are logged and
    replaced by ``InternalError`` so no driver detail reaches the caller.
    """
    try:
        yield db
        db.commit()
    except RentflowError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Database error, transaction rolled back")
        raise InternalError() from e
    except Exception:
        db.rollback()
        raise
