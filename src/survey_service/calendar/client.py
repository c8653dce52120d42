"""
HTTP client for the calendar service.

The calendar service knows which accounts are registered for, administer or
attended an event. Failures surface as ``UpstreamUnavailableError`` and are
never turned into an allow or deny decision here.
"""

from typing import Any, Protocol, Sequence

import httpx
from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from survey_service.auth.identity import Tenant
from survey_service.calendar.schemas import EventPerson, EventUser
from survey_service.config import Settings, get_settings
from survey_service.shared.exceptions import UpstreamUnavailableError
from survey_service.shared.logging import get_logger

logger = get_logger(__name__)

_PERSONS = TypeAdapter(list[EventPerson])


class EventAccessClientProtocol(Protocol):
    """Lookup of the people linked to a calendar event."""

    async def get_event_persons(
        self,
        tenant: Tenant,
        event_id: str,
        users: Sequence[EventUser],
        registered: bool | None = None,
        role: str | None = None,
        attended: bool | None = None,
    ) -> list[EventPerson]: ...


class CalendarClient:
    """httpx client for ``POST {base}/event/{event_id}/users``."""

    def __init__(
        self,
        base_url: str,
        service_token: str = "",
        timeout_seconds: float = 5.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize calendar client.

        Args:
            base_url: Calendar service base URL without trailing slash.
            service_token: Bearer token for service-to-service calls.
            timeout_seconds: Per-request timeout.
            http_client: Optional shared client; created and owned otherwise.
        """
        self._base_url = base_url.rstrip("/")
        self._service_token = service_token
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "CalendarClient":
        settings = settings or get_settings()
        return cls(
            base_url=settings.calendar_base_url,
            service_token=settings.service_token,
            timeout_seconds=settings.calendar_timeout_seconds,
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def get_event_persons(
        self,
        tenant: Tenant,
        event_id: str,
        users: Sequence[EventUser],
        registered: bool | None = None,
        role: str | None = None,
        attended: bool | None = None,
    ) -> list[EventPerson]:
        """Get the event persons matching the given users and filters.

        Raises:
            UpstreamUnavailableError: On transport errors, non-200 responses
                or undecodable bodies.
        """
        url = f"{self._base_url}/event/{event_id}/users"
        body: dict[str, Any] = {}
        if users:
            body["users"] = [user.model_dump() for user in users]
        if registered is not None:
            body["registered"] = registered
        if role:
            body["role"] = role
        if attended is not None:
            body["attended"] = attended

        headers = {
            "Content-Type": "application/json",
            "X-App-ID": tenant.app_id,
            "X-Org-ID": tenant.org_id,
        }
        if self._service_token:
            headers["Authorization"] = f"Bearer {self._service_token}"

        details = {"event_id": event_id, "org_id": tenant.org_id, "app_id": tenant.app_id}
        try:
            response = await self._client.post(
                url,
                json=body,
                headers=headers,
                params={"app_id": tenant.app_id, "org_id": tenant.org_id},
            )
        except httpx.HTTPError as e:
            logger.error(
                "Calendar request failed",
                extra={**details, "error": str(e)},
            )
            raise UpstreamUnavailableError("Calendar service unavailable", details=details) from e

        if response.status_code != 200:
            logger.error(
                "Calendar returned an error",
                extra={**details, "status_code": response.status_code, "body": response.text[:500]},
            )
            raise UpstreamUnavailableError(
                f"Calendar service error {response.status_code}",
                details={**details, "status_code": response.status_code},
            )

        try:
            persons = _PERSONS.validate_json(response.content)
        except PydanticValidationError as e:
            logger.error(
                "Calendar response did not decode",
                extra={**details, "error": str(e)},
            )
            raise UpstreamUnavailableError("Calendar response invalid", details=details) from e

        logger.debug(
            "Calendar event persons loaded",
            extra={**details, "person_count": len(persons)},
        )
        return persons


__all__ = [
    "CalendarClient",
    "EventAccessClientProtocol",
]
