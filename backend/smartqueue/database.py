"""
Database connection and session management.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from smartqueue.config import get_settings

settings = get_settings()

# Engine creation is lazy: asyncpg only connects on first use
engine = create_async_engine(
    settings.async_database_url,
    echo=settings.debug and settings.log_level.upper() == "DEBUG",
    pool_pre_ping=True,  # Verify connections before using
)

# Session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# Base class for models
Base = declarative_base()


async def init_db() -> None:
    """Initialize database tables."""
    # Register the mapped classes on Base.metadata
    import smartqueue.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
