"""
Database Session Management

One async engine per process, created lazily from settings.DATABASE_URL.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.pool import StaticPool
from loguru import logger

from config import settings
from .models import Base


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _engine_kwargs(database_url: str) -> dict:
    kwargs = {"echo": settings.LOG_LEVEL == "DEBUG"}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url:
            # Single shared connection, otherwise each session gets its own empty database
            kwargs["poolclass"] = StaticPool
    return kwargs


async def init_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Create the engine and session factory if they do not exist yet.

    Args:
        database_url: Override for settings.DATABASE_URL (first call only)
    """
    global _engine, _session_factory

    if _engine is not None:
        return _engine

    database_url = database_url or settings.DATABASE_URL
    logger.info(f"Initializing database engine: {database_url}")

    _engine = create_async_engine(database_url, **_engine_kwargs(database_url))
    _session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return _engine


async def close_engine() -> None:
    """Dispose of the engine; the next init_engine call starts fresh."""
    global _engine, _session_factory

    if _engine is None:
        return

    await _engine.dispose()
    _engine = None
    _session_factory = None
    logger.info("Database engine closed")


async def create_tables() -> None:
    engine = await init_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready")


async def drop_tables() -> None:
    """Drop every table. Deletes all submissions and queued messages."""
    engine = await init_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.warning("Database tables dropped")


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Session scope: commit when the block exits normally, roll back on error.

    Usage:
        async with get_session() as session:
            await SubmissionRepository(session).mark_processing(submission_id)
    """
    if _session_factory is None:
        await init_engine()

    session = _session_factory()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()
