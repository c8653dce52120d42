"""
Survey response service.

Responses belong to the account that submitted them. Creating a response to
an event-linked, non-sensitive survey requires confirmed attendance. Readers
of a survey's responses never see authors of anonymous surveys, nor of
sensitive surveys unless elevated.
"""

from datetime import datetime, timezone
from uuid import uuid4

from survey_service.auth.identity import Identity
from survey_service.shared.exceptions import NotFoundError, PermissionDeniedError
from survey_service.shared.logging import get_logger
from survey_service.shared.unit_of_work import TransactionManager
from survey_service.surveys.authorization import AuthorizationResolver
from survey_service.surveys.models import SurveyResponseRecord
from survey_service.surveys.schemas import (
    Survey,
    SurveyResponse,
    SurveyResponseFilter,
    SurveyResponseRequest,
)

logger = get_logger(__name__)


def strip_authors(responses: list[SurveyResponse], survey: Survey, elevated: bool) -> list[SurveyResponse]:
    """Blank ``user_id`` where the survey hides response authors from this reader."""
    if not (survey.anonymous or (survey.sensitive and not elevated)):
        return responses
    return [response.model_copy(update={"user_id": ""}) for response in responses]


class SurveyResponseService:
    """Response CRUD for the acting account."""

    def __init__(self, transactions: TransactionManager, resolver: AuthorizationResolver) -> None:
        self._transactions = transactions
        self._resolver = resolver

    async def create_response(self, request: SurveyResponseRequest, identity: Identity) -> SurveyResponse:
        """Store a response with the survey snapshot as answered.

        Raises:
            PermissionDeniedError: If the survey is event-linked, not sensitive,
                and the caller did not attend the event.
            UpstreamUnavailableError: If the calendar service could not answer.
        """
        survey = request.survey
        if survey.event_linked and not survey.sensitive:
            if not await self._resolver.has_attended(survey, identity):
                raise PermissionDeniedError(
                    "Account did not attend the calendar event",
                    details={"survey_id": survey.id, "calendar_event_id": survey.calendar_event_id},
                )

        response = SurveyResponse(
            id=str(uuid4()),
            user_id=identity.account_id,
            org_id=identity.org_id,
            app_id=identity.app_id,
            survey=survey,
            date_created=datetime.now(timezone.utc),
        )
        record = SurveyResponseRecord(
            id=response.id,
            user_id=response.user_id,
            org_id=response.org_id,
            app_id=response.app_id,
            survey_id=survey.id,
            survey_type=survey.type,
            survey=survey.model_dump(mode="json"),
            date_created=response.date_created,
        )
        async with self._transactions.transaction() as store:
            await store.responses.create(record)

        logger.info(
            "Survey response created",
            extra={"response_id": response.id, "survey_id": survey.id, "user_id": identity.account_id},
        )
        return response

    async def get_response(self, response_id: str, identity: Identity) -> SurveyResponse:
        async with self._transactions.transaction() as store:
            record = await store.responses.get(response_id, identity.tenant, identity.account_id)
        if record is None:
            raise NotFoundError("Survey response not found", details={"response_id": response_id})
        return SurveyResponse.model_validate(record)

    async def list_responses(self, identity: Identity, filters: SurveyResponseFilter) -> list[SurveyResponse]:
        """List the acting account's own responses."""
        async with self._transactions.transaction() as store:
            records = await store.responses.list(identity.tenant, identity.account_id, filters)
        return [SurveyResponse.model_validate(record) for record in records]

    async def update_response(
        self,
        response_id: str,
        request: SurveyResponseRequest,
        identity: Identity,
    ) -> SurveyResponse:
        """Replace the survey snapshot of an own response.

        Raises:
            NotFoundError: If the account has no response with this id.
        """
        survey = request.survey
        values = {
            "survey": survey.model_dump(mode="json"),
            "survey_id": survey.id,
            "survey_type": survey.type,
            "date_updated": datetime.now(timezone.utc),
        }
        async with self._transactions.transaction() as store:
            updated = await store.responses.update(response_id, identity.tenant, identity.account_id, values)
            if not updated:
                raise NotFoundError("Survey response not found", details={"response_id": response_id})
            record = await store.responses.get(response_id, identity.tenant, identity.account_id)

        if record is None:
            raise NotFoundError("Survey response not found", details={"response_id": response_id})
        return SurveyResponse.model_validate(record).model_copy(
            update={"survey": survey, "date_updated": values["date_updated"]}
        )

    async def delete_response(self, response_id: str, identity: Identity) -> None:
        async with self._transactions.transaction() as store:
            deleted = await store.responses.delete(response_id, identity.tenant, identity.account_id)
        if not deleted:
            raise NotFoundError("Survey response not found", details={"response_id": response_id})
        logger.info("Survey response deleted", extra={"response_id": response_id})

    async def delete_responses(self, identity: Identity, filters: SurveyResponseFilter) -> int:
        """Delete the acting account's responses matching the filters.

        Raises:
            NotFoundError: If nothing matched.
        """
        async with self._transactions.transaction() as store:
            count = await store.responses.delete_many(identity.tenant, identity.account_id, filters)
        if count == 0:
            raise NotFoundError("No survey responses matched")
        logger.info(
            "Survey responses deleted",
            extra={"user_id": identity.account_id, "deleted_count": count},
        )
        return count

    async def _load_survey(self, survey_id: str, identity: Identity) -> Survey:
        async with self._transactions.transaction() as store:
            record = await store.surveys.get(survey_id, identity.tenant)
        if record is None:
            raise NotFoundError("Survey not found", details={"survey_id": survey_id})
        return Survey.model_validate(record)

    async def _survey_responses(
        self, survey: Survey, identity: Identity, filters: SurveyResponseFilter
    ) -> list[SurveyResponse]:
        scoped = SurveyResponseFilter(
            survey_ids=(survey.id,),
            start_date=filters.start_date,
            end_date=filters.end_date,
            limit=filters.limit,
            offset=filters.offset,
        )
        async with self._transactions.transaction() as store:
            records = await store.responses.list(identity.tenant, None, scoped)
        return [SurveyResponse.model_validate(record) for record in records]

    async def list_survey_responses(
        self,
        survey_id: str,
        identity: Identity,
        filters: SurveyResponseFilter,
    ) -> list[SurveyResponse]:
        """List every response to one survey.

        Readable by the survey's creator and by admins of its calendar event.

        Raises:
            NotFoundError: If the survey does not exist.
            PermissionDeniedError: If the caller neither owns nor administers it.
            UpstreamUnavailableError: If the calendar service could not answer.
        """
        survey = await self._load_survey(survey_id, identity)

        elevated = await self._resolver.is_elevated(survey, identity, False)
        if not elevated and survey.creator_id != identity.account_id:
            logger.warning(
                "Survey responses read denied",
                extra={"survey_id": survey_id, "account_id": identity.account_id},
            )
            raise PermissionDeniedError(
                "Account is neither the creator nor an admin of the survey",
                details={"survey_id": survey_id},
            )

        responses = await self._survey_responses(survey, identity, filters)
        return strip_authors(responses, survey, elevated)

    async def admin_list_survey_responses(
        self,
        survey_id: str,
        identity: Identity,
        filters: SurveyResponseFilter,
    ) -> list[SurveyResponse]:
        """List every response to one survey for an admin caller.

        The admin permission alone is not enough: the survey must be a
        non-sensitive calendar event follow-up and the caller a confirmed
        admin of that event. Authors of anonymous surveys are stripped.

        Raises:
            NotFoundError: If the survey does not exist.
            PermissionDeniedError: If the survey's responses are closed to
                admins or the caller is not an admin of its event.
            UpstreamUnavailableError: If the calendar service could not answer.
        """
        survey = await self._load_survey(survey_id, identity)
        details = {"survey_id": survey_id, "account_id": identity.account_id}

        if survey.sensitive:
            logger.warning("Admin read of sensitive survey responses refused", extra=details)
            raise PermissionDeniedError("Survey is sensitive and responses are not available", details=details)
        if not survey.event_linked:
            logger.warning("Admin read of survey responses without calendar event refused", extra=details)
            raise PermissionDeniedError(
                "Only responses to calendar event surveys are available to admins", details=details
            )
        if not await self._resolver.is_elevated(survey, identity, False):
            raise PermissionDeniedError(
                "Account is not an admin of the calendar event",
                details={**details, "calendar_event_id": survey.calendar_event_id},
            )

        responses = await self._survey_responses(survey, identity, filters)
        return strip_authors(responses, survey, elevated=True)


__all__ = [
    "SurveyResponseService",
    "strip_authors",
]
