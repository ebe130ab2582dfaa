"""Database session management."""

import ssl
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from studyhub.config import get_settings

settings = get_settings()


def _engine_kwargs() -> dict:
    """Pool and driver options for the configured backend."""
    if settings.database_url.startswith("sqlite"):
        # SQLite (local dev/tests) has no server-side pool to size
        return {"echo": settings.debug}

    kwargs: dict = {
        "echo": settings.debug,
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
    }
    if settings.database_requires_ssl:
        kwargs["connect_args"] = {"ssl": ssl.create_default_context()}
    return kwargs


# Create async engine
engine = create_async_engine(settings.database_url, **_engine_kwargs())

# Session factory
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
