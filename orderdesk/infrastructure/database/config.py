"""
Database configuration.

Manages engine creation and the session factory for the SQL document store.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from orderdesk.settings.modules.database_settings import DatabaseSettings

logger = logging.getLogger(__name__)


# =============================================================================
# ENGINE CREATION
# =============================================================================

def create_engine(settings: DatabaseSettings) -> AsyncEngine:
    """
    Create async SQLAlchemy engine.

    In-memory sqlite shares one connection so every session sees the
    same database.
    """
    logger.info(f"Creating database engine: {settings.database_url.split('@')[-1]}")

    if settings.database_url.startswith("sqlite"):
        return create_async_engine(
            settings.database_url,
            echo=settings.echo_sql,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    return create_async_engine(
        settings.database_url,
        echo=settings.echo_sql,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_recycle=settings.pool_recycle,
        pool_pre_ping=True,
    )


# =============================================================================
# SESSION FACTORY
# =============================================================================

def get_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# =============================================================================
# DATABASE INITIALIZATION
# =============================================================================

async def init_database(bind: AsyncEngine) -> None:
    """Create all tables if they don't exist."""
    from orderdesk.infrastructure.database.models import Base

    logger.info("Initializing database...")

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database initialized")
