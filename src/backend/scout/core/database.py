"""Async engine and session helpers for the ATS database."""

from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from scout.core.config import settings

engine = create_async_engine(
    settings.database_url,
    pool_size=10,
    max_overflow=5,
    pool_pre_ping=True,
)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncIterator[AsyncSession]:
    """Request-scoped session for FastAPI dependencies."""
    async with async_session() as session:
        yield session


def open_session() -> AsyncSession:
    """Standalone session for background work that outlives the request."""
    return async_session()
