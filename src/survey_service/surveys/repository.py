"""
Survey and survey response repositories for database operations.
"""

from typing import Any, Sequence

from sqlalchemy import Select, delete, distinct, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from survey_service.auth.identity import Tenant
from survey_service.surveys.models import SurveyRecord, SurveyResponseRecord
from survey_service.surveys.schemas import SurveyFilter, SurveyResponseFilter


def _flag_filter(column: Any, value: bool) -> Any:
    # An unset flag counts as false.
    if value:
        return column.is_(True)
    return or_(column.is_(False), column.is_(None))


class SurveyRepository:
    """Repository for the surveys table.

    Every query is scoped to one tenant. Update and delete also filter on the
    creator unless the caller is elevated.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async database session.
        """
        self._session = session

    def _scoped(self, survey_id: str, tenant: Tenant) -> Select[tuple[SurveyRecord]]:
        return select(SurveyRecord).where(
            SurveyRecord.id == survey_id,
            SurveyRecord.org_id == tenant.org_id,
            SurveyRecord.app_id == tenant.app_id,
        )

    async def get(self, survey_id: str, tenant: Tenant) -> SurveyRecord | None:
        result = await self._session.execute(self._scoped(survey_id, tenant))
        return result.scalar_one_or_none()

    async def get_for_update(self, survey_id: str, tenant: Tenant) -> SurveyRecord | None:
        """Get a survey and lock its row until the transaction ends."""
        result = await self._session.execute(self._scoped(survey_id, tenant).with_for_update())
        return result.scalar_one_or_none()

    async def list(self, tenant: Tenant, filters: SurveyFilter) -> Sequence[SurveyRecord]:
        """List surveys of a tenant matching the filters.

        Surveys without a start or end date pass the corresponding time
        window filters.
        """
        stmt = select(SurveyRecord).where(
            SurveyRecord.org_id == tenant.org_id,
            SurveyRecord.app_id == tenant.app_id,
        )
        if filters.creator_id is not None:
            stmt = stmt.where(SurveyRecord.creator_id == filters.creator_id)
        if filters.survey_ids:
            stmt = stmt.where(SurveyRecord.id.in_(filters.survey_ids))
        if filters.survey_types:
            stmt = stmt.where(SurveyRecord.type.in_(filters.survey_types))
        if filters.calendar_event_id:
            stmt = stmt.where(SurveyRecord.calendar_event_id == filters.calendar_event_id)
        if filters.start_time_after is not None:
            stmt = stmt.where(
                or_(SurveyRecord.start_date.is_(None), SurveyRecord.start_date >= filters.start_time_after)
            )
        if filters.start_time_before is not None:
            stmt = stmt.where(
                or_(SurveyRecord.start_date.is_(None), SurveyRecord.start_date <= filters.start_time_before)
            )
        if filters.end_time_after is not None:
            stmt = stmt.where(
                or_(SurveyRecord.end_date.is_(None), SurveyRecord.end_date >= filters.end_time_after)
            )
        if filters.end_time_before is not None:
            stmt = stmt.where(
                or_(SurveyRecord.end_date.is_(None), SurveyRecord.end_date <= filters.end_time_before)
            )
        if filters.public is not None:
            stmt = stmt.where(_flag_filter(SurveyRecord.public, filters.public))
        if filters.archived is not None:
            stmt = stmt.where(_flag_filter(SurveyRecord.archived, filters.archived))

        if filters.end_time_before is not None:
            stmt = stmt.order_by(SurveyRecord.end_date.desc())
        elif filters.end_time_after is not None:
            stmt = stmt.order_by(SurveyRecord.end_date.asc())
        elif filters.start_time_before is not None:
            stmt = stmt.order_by(SurveyRecord.start_date.desc())
        elif filters.start_time_after is not None:
            stmt = stmt.order_by(SurveyRecord.start_date.asc())
        else:
            stmt = stmt.order_by(SurveyRecord.date_created.desc())

        if filters.offset:
            stmt = stmt.offset(filters.offset)
        if filters.limit:
            stmt = stmt.limit(filters.limit)

        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def create(self, record: SurveyRecord) -> SurveyRecord:
        self._session.add(record)
        await self._session.flush()
        return record

    async def update(
        self,
        survey_id: str,
        tenant: Tenant,
        values: dict[str, Any],
        creator_id: str,
        elevated: bool,
    ) -> bool:
        """Update a survey in place.

        Returns:
            True if exactly one row matched the id, tenant and ownership filter.
        """
        stmt = update(SurveyRecord).where(
            SurveyRecord.id == survey_id,
            SurveyRecord.org_id == tenant.org_id,
            SurveyRecord.app_id == tenant.app_id,
        )
        if not elevated:
            stmt = stmt.where(SurveyRecord.creator_id == creator_id)
        result = await self._session.execute(
            stmt.values(**values).execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def delete(self, survey_id: str, tenant: Tenant, creator_id: str, elevated: bool) -> bool:
        """Delete a survey.

        Returns:
            True if exactly one row matched the id, tenant and ownership filter.
        """
        stmt = delete(SurveyRecord).where(
            SurveyRecord.id == survey_id,
            SurveyRecord.org_id == tenant.org_id,
            SurveyRecord.app_id == tenant.app_id,
        )
        if not elevated:
            stmt = stmt.where(SurveyRecord.creator_id == creator_id)
        result = await self._session.execute(stmt.execution_options(synchronize_session=False))
        return result.rowcount == 1


class SurveyResponseRepository:
    """Repository for the survey_responses table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, response_id: str, tenant: Tenant, user_id: str) -> SurveyResponseRecord | None:
        """Get a response owned by ``user_id``."""
        stmt = select(SurveyResponseRecord).where(
            SurveyResponseRecord.id == response_id,
            SurveyResponseRecord.user_id == user_id,
            SurveyResponseRecord.org_id == tenant.org_id,
            SurveyResponseRecord.app_id == tenant.app_id,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    def _filtered(
        self, stmt: Any, tenant: Tenant | None, user_id: str | None, filters: SurveyResponseFilter
    ) -> Any:
        if tenant is not None:
            stmt = stmt.where(
                SurveyResponseRecord.org_id == tenant.org_id,
                SurveyResponseRecord.app_id == tenant.app_id,
            )
        if user_id is not None:
            stmt = stmt.where(SurveyResponseRecord.user_id == user_id)
        if filters.survey_ids:
            stmt = stmt.where(SurveyResponseRecord.survey_id.in_(filters.survey_ids))
        if filters.survey_types:
            stmt = stmt.where(SurveyResponseRecord.survey_type.in_(filters.survey_types))
        if filters.start_date is not None:
            stmt = stmt.where(SurveyResponseRecord.date_created >= filters.start_date)
        if filters.end_date is not None:
            stmt = stmt.where(SurveyResponseRecord.date_created < filters.end_date)
        return stmt

    async def list(
        self,
        tenant: Tenant,
        user_id: str | None,
        filters: SurveyResponseFilter,
    ) -> Sequence[SurveyResponseRecord]:
        """List responses, newest first.

        Args:
            tenant: Tenant scope.
            user_id: Owner filter; ``None`` lists every user's responses.
            filters: Survey and date filters.
        """
        stmt = self._filtered(select(SurveyResponseRecord), tenant, user_id, filters)
        stmt = stmt.order_by(SurveyResponseRecord.date_created.desc())
        if filters.offset:
            stmt = stmt.offset(filters.offset)
        if filters.limit:
            stmt = stmt.limit(filters.limit)
        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def list_all_tenants(self, filters: SurveyResponseFilter) -> Sequence[SurveyResponseRecord]:
        """List responses of every tenant and user, newest first. Used for analytics only."""
        stmt = self._filtered(select(SurveyResponseRecord), None, None, filters)
        stmt = stmt.order_by(SurveyResponseRecord.date_created.desc())
        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def answered_survey_ids(self, tenant: Tenant, user_id: str, survey_ids: Sequence[str]) -> set[str]:
        """Return the subset of ``survey_ids`` the user has responded to."""
        if not survey_ids:
            return set()
        stmt = select(distinct(SurveyResponseRecord.survey_id)).where(
            SurveyResponseRecord.org_id == tenant.org_id,
            SurveyResponseRecord.app_id == tenant.app_id,
            SurveyResponseRecord.user_id == user_id,
            SurveyResponseRecord.survey_id.in_(survey_ids),
        )
        result = await self._session.execute(stmt)
        return set(result.scalars().all())

    async def create(self, record: SurveyResponseRecord) -> SurveyResponseRecord:
        self._session.add(record)
        await self._session.flush()
        return record

    async def update(
        self,
        response_id: str,
        tenant: Tenant,
        user_id: str,
        values: dict[str, Any],
    ) -> bool:
        stmt = (
            update(SurveyResponseRecord)
            .where(
                SurveyResponseRecord.id == response_id,
                SurveyResponseRecord.user_id == user_id,
                SurveyResponseRecord.org_id == tenant.org_id,
                SurveyResponseRecord.app_id == tenant.app_id,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def delete(self, response_id: str, tenant: Tenant, user_id: str) -> bool:
        stmt = delete(SurveyResponseRecord).where(
            SurveyResponseRecord.id == response_id,
            SurveyResponseRecord.user_id == user_id,
            SurveyResponseRecord.org_id == tenant.org_id,
            SurveyResponseRecord.app_id == tenant.app_id,
        )
        result = await self._session.execute(stmt.execution_options(synchronize_session=False))
        return result.rowcount == 1

    async def delete_many(self, tenant: Tenant, user_id: str, filters: SurveyResponseFilter) -> int:
        """Delete a user's responses matching the filters.

        Returns:
            Number of deleted rows.
        """
        stmt = self._filtered(delete(SurveyResponseRecord), tenant, user_id, filters)
        result = await self._session.execute(stmt.execution_options(synchronize_session=False))
        return result.rowcount


__all__ = [
    "SurveyRepository",
    "SurveyResponseRepository",
]
