"""
Config repository for database operations.
"""

from typing import Protocol, Sequence

from sqlalchemy import delete, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from survey_service.configs.models import ConfigRecord


class ConfigRepositoryProtocol(Protocol):
    """Protocol for config repository operations."""

    async def find(self, config_type: str, app_id: str, org_id: str) -> ConfigRecord | None: ...

    async def get_by_id(self, config_id: str) -> ConfigRecord | None: ...

    async def list(self, config_type: str | None = None) -> Sequence[ConfigRecord]: ...

    async def create(self, record: ConfigRecord) -> ConfigRecord: ...

    async def update(self, record: ConfigRecord) -> ConfigRecord: ...

    async def delete(self, config_id: str) -> bool: ...


class ConfigRepository:
    """Repository for the configs table."""

    def __init__(self, session: AsyncSession, change_channel: str | None = None) -> None:
        """Initialize repository with database session.

        Args:
            session: Async database session.
            change_channel: Postgres NOTIFY channel announcing config writes.
        """
        self._session = session
        self._change_channel = change_channel

    async def find(self, config_type: str, app_id: str, org_id: str) -> ConfigRecord | None:
        """Get the config of a type for an exact (app, org) scope."""
        stmt = select(ConfigRecord).where(
            ConfigRecord.type == config_type,
            ConfigRecord.app_id == app_id,
            ConfigRecord.org_id == org_id,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_id(self, config_id: str) -> ConfigRecord | None:
        stmt = select(ConfigRecord).where(ConfigRecord.id == config_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list(self, config_type: str | None = None) -> Sequence[ConfigRecord]:
        """List configs, optionally of a single type."""
        stmt = select(ConfigRecord).order_by(ConfigRecord.date_created)
        if config_type is not None:
            stmt = stmt.where(ConfigRecord.type == config_type)
        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def create(self, record: ConfigRecord) -> ConfigRecord:
        self._session.add(record)
        await self._session.flush()
        await self._publish_change(record.id)
        return record

    async def update(self, record: ConfigRecord) -> ConfigRecord:
        """Flush changes made to an attached record."""
        await self._session.flush()
        await self._publish_change(record.id)
        return record

    async def delete(self, config_id: str) -> bool:
        """Delete a config.

        Returns:
            True if a row was deleted, False if not found.
        """
        result = await self._session.execute(delete(ConfigRecord).where(ConfigRecord.id == config_id))
        if result.rowcount != 1:
            return False
        await self._publish_change(config_id)
        return True

    async def _publish_change(self, config_id: str) -> None:
        # Postgres delivers NOTIFY to listeners only when the transaction commits.
        if not self._change_channel or self._session.bind.dialect.name != "postgresql":
            return
        await self._session.execute(
            text("SELECT pg_notify(:channel, :payload)"),
            {"channel": self._change_channel, "payload": config_id},
        )
