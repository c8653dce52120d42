"""
Database engine and session management with async SQLAlchemy.
"""

from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from survey_service.config import Settings, get_settings
from survey_service.shared.logging import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base for every ORM model of the service."""


class DatabaseManager:
    """Manages the database engine and session factory."""

    def __init__(self, database_url: str | None = None, settings: Settings | None = None) -> None:
        """Initialize database manager.

        Args:
            database_url: Optional database URL override.
            settings: Optional settings override.
        """
        self._settings = settings or get_settings()
        self._database_url = database_url or self._settings.database_url
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def database_url(self) -> str:
        return self._database_url

    @property
    def engine(self) -> AsyncEngine:
        """Get or create the database engine."""
        if self._engine is None:
            options: dict[str, Any] = {"echo": self._settings.debug, "pool_pre_ping": True}
            if not self._database_url.startswith("sqlite"):
                options["pool_size"] = self._settings.db_pool_size
                options["max_overflow"] = self._settings.db_max_overflow
            self._engine = create_async_engine(self._database_url, **options)
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
        return self._session_factory

    async def create_all(self) -> None:
        """Create every table registered on ``Base.metadata``."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ensured", extra={"tables": sorted(Base.metadata.tables)})

    async def close(self) -> None:
        """Close the database engine."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None


__all__ = [
    "Base",
    "DatabaseManager",
]
