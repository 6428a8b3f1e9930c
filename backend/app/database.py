"""Database configuration and async SQLAlchemy setup."""
import logging
from contextlib import asynccontextmanager

from sqlalchemy import MetaData
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from app.config import settings
from app.exceptions import LedgerError, InternalPersistenceError

logger = logging.getLogger(__name__)

# Create async engine
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DATABASE_ECHO,
    future=True,
    pool_pre_ping=True,
    pool_recycle=1800,
)

# Create async session factory
AsyncSessionLocal = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    future=True,
)

# Constraint names show up in IntegrityErrors and migrations, keep them stable
metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

# Base class for models
Base = declarative_base(metadata=metadata)


async def get_db():
    """Dependency to get database session."""
    async with AsyncSessionLocal() as session:
        yield session


@asynccontextmanager
async def unit_of_work(db: AsyncSession, operation: str):
    """
    Run a block of writes as one all-or-nothing database transaction.

    Commits when the block exits cleanly. On any failure the session is
    rolled back first; domain errors and IntegrityError propagate unchanged
    (callers translate constraint violations), any other storage error is
    raised as InternalPersistenceError.
    """
    try:
        yield db
        await db.commit()
    except (LedgerError, IntegrityError):
        await db.rollback()
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"[finance] {operation} rolled back: {e}", exc_info=True)
        raise InternalPersistenceError(operation, e) from e
