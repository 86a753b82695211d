"""
Database Connection Module
Wraps the SQLAlchemy async engine and session factory in an explicitly
constructed object that the application factory owns and injects.
"""

import logging

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from menuchat.core.config import Settings

logger = logging.getLogger(__name__)


# Base class for all our models
class Base(DeclarativeBase):
    pass


class Database:
    """Owns one async engine and its session factory."""

    def __init__(self, url: str, echo: bool = False, **engine_kwargs):
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, echo=echo, **engine_kwargs)
        self.session_maker = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False  # Objects remain accessible after commit
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        engine_kwargs = {}
        if not settings.database_url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=settings.database_pool_size,
                max_overflow=settings.database_max_overflow,
            )
        return cls(settings.database_url, echo=settings.database_echo, **engine_kwargs)

    async def create_all(self) -> None:
        """
        Create all tables in database.
        Called at startup in development; migrations own the schema elsewhere.
        """
        # Register the mapped classes on Base.metadata
        import menuchat.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("✅ Database tables created")

    async def dispose(self) -> None:
        await self.engine.dispose()
