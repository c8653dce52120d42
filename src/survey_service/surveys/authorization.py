"""
Authorization decisions for event-linked surveys.

An identity is elevated for a survey when it is already an administrator or
when the calendar service lists it with the ``admin`` role for the survey's
calendar event. A calendar failure propagates as ``UpstreamUnavailableError``
and is never read as a decision. A missing env config is an
``InvalidStateError`` raised before any calendar lookup.
"""

from survey_service.auth.identity import Identity, Tenant
from survey_service.calendar.client import EventAccessClientProtocol
from survey_service.calendar.schemas import EVENT_ROLE_ADMIN, EventUser
from survey_service.configs.cache import ConfigCache
from survey_service.shared.exceptions import InvalidStateError, NotFoundError
from survey_service.shared.logging import get_logger
from survey_service.surveys.schemas import Survey

logger = get_logger(__name__)


class AuthorizationResolver:
    """Decides event admin and event attendance for an identity."""

    def __init__(self, calendar: EventAccessClientProtocol, configs: ConfigCache) -> None:
        """Initialize resolver.

        Args:
            calendar: Calendar service client.
            configs: Config cache holding the external identity field name.
        """
        self._calendar = calendar
        self._configs = configs

    def _event_user(self, identity: Identity) -> EventUser:
        """Build the calendar user for ``identity``.

        Raises:
            InvalidStateError: If the env config is missing or undecodable.
        """
        try:
            field_name = self._configs.get_env_config().external_id
        except NotFoundError as e:
            logger.error(
                "Env config missing, cannot match calendar users",
                extra={"account_id": identity.account_id},
            )
            raise InvalidStateError("Env config not found", details=e.details) from e
        return EventUser(account_id=identity.account_id, external_id=identity.external_id(field_name))

    @staticmethod
    def _tenant(survey: Survey, identity: Identity) -> Tenant:
        return Tenant(org_id=survey.org_id or identity.org_id, app_id=survey.app_id or identity.app_id)

    async def is_elevated(self, survey: Survey, identity: Identity, already_admin: bool) -> bool:
        """Decide whether ``identity`` may manage ``survey`` beyond ownership.

        Raises:
            UpstreamUnavailableError: If the calendar service could not answer.
        """
        if already_admin:
            return True
        if not survey.calendar_event_id:
            return already_admin

        user = self._event_user(identity)
        persons = await self._calendar.get_event_persons(
            self._tenant(survey, identity),
            survey.calendar_event_id,
            [user],
            role=EVENT_ROLE_ADMIN,
        )
        elevated = any(person.matches(user) and person.role == EVENT_ROLE_ADMIN for person in persons)

        log = logger.info if elevated else logger.warning
        log(
            "Event admin check",
            extra={
                "survey_id": survey.id,
                "calendar_event_id": survey.calendar_event_id,
                "account_id": identity.account_id,
                "elevated": elevated,
            },
        )
        return elevated

    async def has_attended(self, survey: Survey, identity: Identity) -> bool:
        """Decide whether ``identity`` registered for and attended the survey's event.

        Raises:
            UpstreamUnavailableError: If the calendar service could not answer.
        """
        if not survey.calendar_event_id:
            return False

        user = self._event_user(identity)
        persons = await self._calendar.get_event_persons(
            self._tenant(survey, identity),
            survey.calendar_event_id,
            [user],
            registered=True,
            attended=True,
        )
        attended = any(person.matches(user) and person.attended for person in persons)
        if not attended:
            logger.warning(
                "Event attendance not confirmed",
                extra={
                    "survey_id": survey.id,
                    "calendar_event_id": survey.calendar_event_id,
                    "account_id": identity.account_id,
                },
            )
        return attended


__all__ = ["AuthorizationResolver"]
