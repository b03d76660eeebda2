"""
Database configuration and session management
"""

from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel, Session, create_engine
import structlog

from backoffice.core.config import get_settings
from backoffice.core.errors import StoreUnavailable

logger = structlog.get_logger(__name__)


@lru_cache()
def get_engine() -> Engine:
    """Create the engine on first use"""
    settings = get_settings()
    return create_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        pool_pre_ping=True,
    )


def init_db(engine: Engine = None) -> None:
    """Initialize database tables and the global base roles"""
    # Register every table on the metadata before create_all
    import backoffice.models  # noqa: F401
    from backoffice.services.role_store import RoleStore

    engine = engine or get_engine()
    SQLModel.metadata.create_all(engine)
    logger.info("Database tables created")

    with Session(engine) as session:
        RoleStore(session).ensure_base_roles()


def get_session() -> Iterator[Session]:
    """Dependency to get database session"""
    with Session(get_engine()) as session:
        yield session


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """
    Commit everything done inside the block, or nothing.

    Store failures are rolled back and surfaced as StoreUnavailable; access
    errors raised inside the block roll back and propagate unchanged.
    """
    try:
        yield session
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Store transaction failed: {e}")
        raise StoreUnavailable() from e
    except Exception:
        session.rollback()
        raise


@contextmanager
def reading(session: Session) -> Iterator[Session]:
    """Surface store failures during reads as StoreUnavailable"""
    try:
        yield session
    except SQLAlchemyError as e:
        logger.error(f"Store read failed: {e}")
        raise StoreUnavailable() from e
