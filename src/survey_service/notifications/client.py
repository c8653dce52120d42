"""
HTTP client for the notifications service.
"""

from typing import Protocol

import httpx

from survey_service.config import Settings, get_settings
from survey_service.shared.exceptions import UpstreamUnavailableError
from survey_service.shared.logging import get_logger

logger = get_logger(__name__)


class NotificationsClientProtocol(Protocol):
    async def send_mail(self, to: str, subject: str, body: str) -> None: ...


class NotificationsClient:
    """Sends emails through ``POST {base}/api/bbs/mail``."""

    def __init__(
        self,
        base_url: str,
        service_token: str = "",
        timeout_seconds: float = 5.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._service_token = service_token
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "NotificationsClient":
        settings = settings or get_settings()
        return cls(
            base_url=settings.notifications_base_url,
            service_token=settings.service_token,
            timeout_seconds=settings.notifications_timeout_seconds,
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def send_mail(self, to: str, subject: str, body: str) -> None:
        """Send one email. An empty recipient is a no-op.

        Raises:
            UpstreamUnavailableError: If the service cannot be reached or rejects the mail.
        """
        if not to:
            return

        headers = {"Content-Type": "application/json"}
        if self._service_token:
            headers["Authorization"] = f"Bearer {self._service_token}"

        try:
            response = await self._client.post(
                f"{self._base_url}/api/bbs/mail",
                json={"to_mail": to, "subject": subject, "body": body},
                headers=headers,
            )
        except httpx.HTTPError as e:
            logger.error("Mail request failed", extra={"error": str(e)})
            raise UpstreamUnavailableError("Notifications service unavailable") from e

        if response.status_code != 200:
            logger.error(
                "Notifications returned an error",
                extra={"status_code": response.status_code, "body": response.text[:500]},
            )
            raise UpstreamUnavailableError(
                f"Notifications service error {response.status_code}",
                details={"status_code": response.status_code},
            )

        logger.info("Mail sent", extra={"subject": subject})


__all__ = ["NotificationsClient", "NotificationsClientProtocol"]
