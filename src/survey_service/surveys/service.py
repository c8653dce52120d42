"""
Survey service: create, update and delete with event-admin authorization.

Every mutation of an event-linked survey is authorized against the stored
row. The repository re-applies the ownership filter unless the caller is
elevated, so a change in elevation between the decision and the write
cannot let a non-owner through.
"""

import asyncio
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from survey_service.auth.identity import Identity, Tenant
from survey_service.config import Settings, get_settings
from survey_service.shared.exceptions import NotFoundError, PermissionDeniedError, UpstreamUnavailableError
from survey_service.shared.logging import get_logger
from survey_service.shared.unit_of_work import Store, TransactionManager
from survey_service.surveys.authorization import AuthorizationResolver
from survey_service.surveys.models import SurveyRecord
from survey_service.surveys.schemas import (
    UPDATABLE_SURVEY_FIELDS,
    Survey,
    SurveyFilter,
    SurveyListItem,
    SurveyRequest,
    SurveyResponse,
    SurveyResponseFilter,
    UserData,
)

logger = get_logger(__name__)


class DeleteStage(str, Enum):
    """Progress of a survey delete unit of work."""

    STARTED = "started"
    SURVEY_LOADED = "survey_loaded"
    AUTHORIZATION_CONFIRMED = "authorization_confirmed"
    DELETED = "deleted"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _newest_first(items: list[SurveyListItem]) -> list[SurveyListItem]:
    return sorted(items, key=lambda s: (s.date_created is not None, s.date_created), reverse=True)


def order_for_taking(items: list[SurveyListItem]) -> list[SurveyListItem]:
    """Order surveys for a client working through them.

    Open surveys with an end date come first, soonest deadline first. Open
    surveys without an end date follow, latest start first and undated ones
    last. Completed surveys come last, longest estimated completion time
    first.
    """
    due = sorted(
        (s for s in items if not s.completed and s.end_date is not None),
        key=lambda s: s.end_date,
    )
    open_ended = sorted(
        _newest_first([s for s in items if not s.completed and s.end_date is None]),
        key=lambda s: (s.start_date is not None, s.start_date),
        reverse=True,
    )
    completed = sorted(
        _newest_first([s for s in items if s.completed]),
        key=lambda s: (s.estimated_completion_time is not None, s.estimated_completion_time or 0),
        reverse=True,
    )
    return due + open_ended + completed


class SurveyService:
    """Survey reads and mutations for client and admin callers.

    Client entry points pass ``already_admin=False``; admin entry points pass
    ``True`` and skip the calendar lookup on update and delete.
    """

    def __init__(
        self,
        transactions: TransactionManager,
        resolver: AuthorizationResolver,
        settings: Settings | None = None,
    ) -> None:
        """Initialize survey service.

        Args:
            transactions: Unit of work factory.
            resolver: Event admin / attendance decisions.
            settings: Optional settings override.
        """
        self._transactions = transactions
        self._resolver = resolver
        self._settings = settings or get_settings()

    async def get_survey(self, survey_id: str, tenant: Tenant) -> Survey:
        """Get a survey.

        Raises:
            NotFoundError: If the tenant has no survey with this id.
        """
        async with self._transactions.transaction() as store:
            record = await store.surveys.get(survey_id, tenant)
        if record is None:
            raise NotFoundError("Survey not found", details={"survey_id": survey_id})
        return Survey.model_validate(record)

    async def list_surveys(self, tenant: Tenant, filters: SurveyFilter) -> list[Survey]:
        async with self._transactions.transaction() as store:
            records = await store.surveys.list(tenant, filters)
        return [Survey.model_validate(record) for record in records]

    async def list_user_surveys(self, identity: Identity, filters: SurveyFilter) -> list[SurveyListItem]:
        """List surveys for a client, each flagged ``completed`` when the caller answered it.

        The ``completed`` filter applies to the page the other filters
        selected. When only public surveys are requested they come in the
        order a client works through them: see ``order_for_taking``.
        """
        tenant = identity.tenant
        async with self._transactions.transaction() as store:
            records = await store.surveys.list(tenant, filters)
            answered = await store.responses.answered_survey_ids(
                tenant, identity.account_id, [record.id for record in records]
            )

        items = []
        for record in records:
            survey = Survey.model_validate(record)
            items.append(SurveyListItem(**survey.model_dump(), completed=survey.id in answered))
        if filters.completed is not None:
            items = [item for item in items if item.completed == filters.completed]
        if filters.public:
            items = order_for_taking(items)
        return items

    async def create_survey(self, request: SurveyRequest, identity: Identity) -> Survey:
        """Create a survey owned by the acting account.

        Linking a calendar event always needs a confirmed event admin, for
        admin callers too.

        Raises:
            PermissionDeniedError: If the survey is linked to a calendar event
                the caller does not administer.
            UpstreamUnavailableError: If the calendar service could not answer.
        """
        survey = Survey(
            **request.model_dump(),
            id=str(uuid4()),
            creator_id=identity.account_id,
            org_id=identity.org_id,
            app_id=identity.app_id,
            date_created=_utcnow(),
        )

        if survey.event_linked and not await self._resolver.is_elevated(survey, identity, False):
            raise PermissionDeniedError(
                "Account is not an admin of the calendar event",
                details={"calendar_event_id": survey.calendar_event_id},
            )

        record = SurveyRecord(**survey.model_dump(exclude={"date_updated"}))
        async with self._transactions.transaction() as store:
            await store.surveys.create(record)

        logger.info(
            "Survey created",
            extra={
                "survey_id": survey.id,
                "creator_id": survey.creator_id,
                "org_id": survey.org_id,
                "app_id": survey.app_id,
                "calendar_event_id": survey.calendar_event_id or None,
            },
        )
        return survey

    async def update_survey(
        self,
        survey_id: str,
        request: SurveyRequest,
        identity: Identity,
        already_admin: bool,
    ) -> Survey:
        """Update a survey's content.

        Elevation is decided against the stored survey's calendar event.

        Raises:
            NotFoundError: If the survey does not exist or the ownership filter
                matched no row.
            PermissionDeniedError: If the caller neither owns nor administers it.
            UpstreamUnavailableError: If the calendar service could not answer.
        """
        tenant = identity.tenant
        values = request.model_dump(include=set(UPDATABLE_SURVEY_FIELDS))
        values["date_updated"] = _utcnow()

        async with self._transactions.transaction() as store:
            record = await store.surveys.get(survey_id, tenant)
            if record is None:
                raise NotFoundError("Survey not found", details={"survey_id": survey_id})
            stored = Survey.model_validate(record)

            elevated = await self._authorize_owner_or_admin(stored, identity, already_admin)

            updated = await store.surveys.update(survey_id, tenant, values, identity.account_id, elevated)
            if not updated:
                raise NotFoundError("Survey not found", details={"survey_id": survey_id})

        logger.info(
            "Survey updated",
            extra={"survey_id": survey_id, "account_id": identity.account_id, "elevated": elevated},
        )
        return Survey.model_validate({**stored.model_dump(), **values})

    async def delete_survey(
        self,
        survey_id: str,
        tenant: Tenant,
        identity: Identity,
        already_admin: bool,
    ) -> None:
        """Delete a survey in one unit of work.

        The survey is read with a row lock, authorized on that fresh read and
        deleted with the ownership filter. Any failure rolls the whole unit
        back. Of two concurrent deletes of one survey, the second sees
        ``NotFoundError``.

        Raises:
            NotFoundError: If the survey is absent or already deleted.
            PermissionDeniedError: If the caller neither owns nor administers it.
            UpstreamUnavailableError: If the calendar service could not answer.
        """
        stage = DeleteStage.STARTED
        details = {"survey_id": survey_id, "org_id": tenant.org_id, "app_id": tenant.app_id}

        async def work(store: Store) -> None:
            nonlocal stage
            record = await store.surveys.get_for_update(survey_id, tenant)
            if record is None:
                raise NotFoundError("Survey not found", details=details)
            stage = DeleteStage.SURVEY_LOADED

            survey = Survey.model_validate(record)
            elevated = await self._authorize_owner_or_admin(survey, identity, already_admin)
            stage = DeleteStage.AUTHORIZATION_CONFIRMED

            deleted = await store.surveys.delete(survey_id, tenant, identity.account_id, elevated)
            if not deleted:
                raise NotFoundError("Survey not found", details=details)
            stage = DeleteStage.DELETED

        try:
            await self._transactions.run(work)
        except Exception as e:
            logger.warning(
                "Survey delete rolled back",
                extra={
                    **details,
                    "account_id": identity.account_id,
                    "stage": stage.value,
                    "outcome": DeleteStage.ROLLED_BACK.value,
                    "error": str(e),
                },
            )
            raise

        stage = DeleteStage.COMMITTED
        logger.info(
            "Survey deleted",
            extra={**details, "account_id": identity.account_id, "stage": stage.value},
        )

    async def get_user_data(self, identity: Identity) -> UserData:
        """Load the surveys created by and the responses of the acting account.

        Both queries run concurrently in their own sessions under one deadline.

        Raises:
            UpstreamUnavailableError: If the deadline passes.
        """
        tenant = identity.tenant

        async def load_surveys() -> list[Survey]:
            async with self._transactions.transaction() as store:
                records = await store.surveys.list(tenant, SurveyFilter(creator_id=identity.account_id))
                return [Survey.model_validate(record) for record in records]

        async def load_responses() -> list[SurveyResponse]:
            async with self._transactions.transaction() as store:
                records = await store.responses.list(tenant, identity.account_id, SurveyResponseFilter())
                return [SurveyResponse.model_validate(record) for record in records]

        tasks = [asyncio.ensure_future(load_surveys()), asyncio.ensure_future(load_responses())]
        try:
            surveys, responses = await asyncio.wait_for(
                asyncio.gather(*tasks),
                timeout=self._settings.user_data_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.error(
                "User data load timed out",
                extra={"account_id": identity.account_id, "timeout": self._settings.user_data_timeout_seconds},
            )
            raise UpstreamUnavailableError("User data load timed out") from e
        finally:
            for task in tasks:
                task.cancel()

        return UserData(surveys=surveys, survey_responses=responses)

    async def _authorize_owner_or_admin(self, survey: Survey, identity: Identity, already_admin: bool) -> bool:
        """Return the elevation flag, rejecting callers that are neither owner nor elevated."""
        elevated = await self._resolver.is_elevated(survey, identity, already_admin)
        if not elevated and survey.creator_id != identity.account_id:
            logger.warning(
                "Survey mutation denied",
                extra={
                    "survey_id": survey.id,
                    "account_id": identity.account_id,
                    "creator_id": survey.creator_id,
                    "calendar_event_id": survey.calendar_event_id or None,
                },
            )
            raise PermissionDeniedError(
                "Account is neither the creator nor an admin of the survey",
                details={"survey_id": survey.id},
            )
        return elevated


__all__ = [
    "DeleteStage",
    "SurveyService",
    "order_for_taking",
]
