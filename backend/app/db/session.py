"""
Database session configuration.

Async SQLAlchemy engine and session factory. PostgreSQL (asyncpg) in
deployment; SQLite URLs are accepted for local runs and skip pool sizing.
"""

from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from backend.app.core.config import settings


def _engine_options() -> dict:
    options = {"echo": settings.db_echo}
    if not settings.database_url.startswith("sqlite"):
        options.update(pool_size=settings.db_pool_size, max_overflow=settings.db_max_overflow)
    return options


engine = create_async_engine(settings.database_url, **_engine_options())

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

# Declarative base for all models
Base = declarative_base()


def utcnow() -> datetime:
    """Timezone-aware current time used for all persisted timestamps."""
    return datetime.now(timezone.utc)


async def get_db():
    """
    FastAPI dependency yielding one session per request.
    
    The session is closed when the request finishes; uncommitted work is
    rolled back on close.
    """
    async with AsyncSessionLocal() as session:
        yield session
