"""Async database engine and session management."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from scopegate.config import settings


def build_engine(url: str) -> AsyncEngine:
    """Create an async engine for the given URL.

    PostgreSQL connections get a per-statement timeout so that no store call
    can hang past the configured bound.
    """
    if url.startswith("postgresql+asyncpg"):
        return create_async_engine(
            url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
            pool_timeout=settings.store_timeout_seconds,
            connect_args={
                "timeout": settings.store_timeout_seconds,
                "command_timeout": settings.store_timeout_seconds,
            },
        )
    return create_async_engine(url)


engine = build_engine(settings.database_url)

async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a database session."""
    async with async_session_factory() as session:
        yield session


@asynccontextmanager
async def get_session_context() -> AsyncGenerator[AsyncSession, None]:
    """Database session for use outside of request handling (CLI)."""
    async with async_session_factory() as session:
        yield session


async def close_db() -> None:
    """Dispose of the engine's connection pool."""
    await engine.dispose()
