"""Database engine and sessions.

Roadmap writes are best-effort, so connections fail fast instead of queueing:
SQLite waits at most ``PERSISTENCE_TIMEOUT_SECONDS`` on a locked file, and
server databases check connections before handing them out.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from roadmap_gateway.core.config import get_settings
from roadmap_gateway.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


def build_engine(url: str, echo: bool = False, timeout: float = 10.0) -> AsyncEngine:
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=echo, connect_args={"timeout": timeout})
    return create_async_engine(url, echo=echo, pool_pre_ping=True, pool_timeout=timeout)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = build_engine(
    settings.DATABASE_URL,
    echo=settings.DATABASE_ECHO,
    timeout=settings.PERSISTENCE_TIMEOUT_SECONDS,
)
AsyncSessionLocal = build_session_factory(engine)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Create the roadmap tables if they do not exist yet."""
    # Register models on Base.metadata before create_all
    import roadmap_gateway.models  # noqa: F401

    async with (bind or engine).begin() as conn:
        logger.info("Creating database tables")
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    logger.info("Closing database connections")
    await engine.dispose()


async def ping_db(session: AsyncSession) -> bool:
    """True if the database answers a trivial query."""
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning("Database unreachable", error=str(e))
        await session.rollback()
        return False
    return True


@asynccontextmanager
async def get_db_session(
    factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncGenerator[AsyncSession, None]:
    """Open a session that commits on success and rolls back on error."""
    session = (factory or AsyncSessionLocal)()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session for FastAPI dependency injection."""
    async with get_db_session() as session:
        yield session
