"""
Alert contact repository for database operations.
"""

from typing import Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from survey_service.alerts.models import AlertContactRecord
from survey_service.auth.identity import Tenant


class AlertContactRepository:
    """Repository for the alert_contacts table."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async database session.
        """
        self._session = session

    async def get(self, contact_id: str, tenant: Tenant) -> AlertContactRecord | None:
        stmt = select(AlertContactRecord).where(
            AlertContactRecord.id == contact_id,
            AlertContactRecord.org_id == tenant.org_id,
            AlertContactRecord.app_id == tenant.app_id,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list(self, tenant: Tenant) -> Sequence[AlertContactRecord]:
        stmt = (
            select(AlertContactRecord)
            .where(
                AlertContactRecord.org_id == tenant.org_id,
                AlertContactRecord.app_id == tenant.app_id,
            )
            .order_by(AlertContactRecord.date_created)
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def list_by_key(self, key: str, tenant: Tenant) -> Sequence[AlertContactRecord]:
        """List the contacts registered under an alert key."""
        stmt = (
            select(AlertContactRecord)
            .where(
                AlertContactRecord.key == key,
                AlertContactRecord.org_id == tenant.org_id,
                AlertContactRecord.app_id == tenant.app_id,
            )
            .order_by(AlertContactRecord.date_created)
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def create(self, record: AlertContactRecord) -> AlertContactRecord:
        self._session.add(record)
        await self._session.flush()
        return record

    async def update(self, record: AlertContactRecord) -> AlertContactRecord:
        """Flush changes made to an attached record."""
        await self._session.flush()
        return record

    async def delete(self, contact_id: str, tenant: Tenant) -> bool:
        stmt = delete(AlertContactRecord).where(
            AlertContactRecord.id == contact_id,
            AlertContactRecord.org_id == tenant.org_id,
            AlertContactRecord.app_id == tenant.app_id,
        )
        result = await self._session.execute(stmt.execution_options(synchronize_session=False))
        return result.rowcount == 1
