"""
Analytics service: anonymized survey responses across every tenant.

Callers authenticate with a static bearer token whose base64 SHA-256 digest
is stored in the env config as ``analytics_token``.
"""

import base64
import hashlib
import hmac
from datetime import datetime, timedelta, timezone
from typing import Sequence

from survey_service.analytics.schemas import AnonymousSurveyResponse
from survey_service.configs.cache import ConfigCache
from survey_service.shared.exceptions import AuthenticationError, InvalidStateError, NotFoundError, ValidationError
from survey_service.shared.logging import get_logger
from survey_service.shared.unit_of_work import TransactionManager
from survey_service.surveys.schemas import SurveyResponse, SurveyResponseFilter

logger = get_logger(__name__)


def token_digest(token: str) -> str:
    """Return the base64 SHA-256 digest stored for a static token."""
    return base64.b64encode(hashlib.sha256(token.encode("utf-8")).digest()).decode("ascii")


def resolve_window(
    start_date: datetime | None,
    end_date: datetime | None,
    time_offset_hours: int,
    now: datetime | None = None,
) -> tuple[datetime | None, datetime | None]:
    """Resolve the response creation window of an analytics query.

    Each bound is either given or implied by a non-zero ``time_offset_hours``.
    When neither bound is given the window is the last ``time_offset_hours``
    hours.

    Raises:
        ValidationError: If a bound is missing and no offset was given.
    """
    if time_offset_hours == 0:
        missing = [name for name, value in (("start_date", start_date), ("end_date", end_date)) if value is None]
        if missing:
            raise ValidationError(
                "Date bound or time_offset required",
                details={"missing": missing + ["time_offset"]},
            )
    if start_date is None and end_date is None:
        end_date = now or datetime.now(timezone.utc)
        start_date = end_date - timedelta(hours=time_offset_hours)
    return start_date, end_date


class AnalyticsService:
    """Anonymized reads for the analytics consumer."""

    def __init__(self, transactions: TransactionManager, configs: ConfigCache) -> None:
        self._transactions = transactions
        self._configs = configs

    def authenticate(self, token: str) -> None:
        """Check a static analytics token against the env config.

        Raises:
            AuthenticationError: If the token does not match.
            InvalidStateError: If the env config is missing.
        """
        try:
            expected = self._configs.get_env_config().analytics_token
        except NotFoundError as e:
            raise InvalidStateError("Env config not found", details=e.details) from e

        if not expected or not hmac.compare_digest(token_digest(token), expected):
            logger.warning("Invalid analytics token")
            raise AuthenticationError("Invalid analytics token")

    async def list_anonymous_responses(
        self,
        survey_types: Sequence[str],
        start_date: datetime | None,
        end_date: datetime | None,
    ) -> list[AnonymousSurveyResponse]:
        """List every tenant's responses in the window, newest first, as survey summaries."""
        filters = SurveyResponseFilter(survey_types=tuple(survey_types), start_date=start_date, end_date=end_date)
        async with self._transactions.transaction() as store:
            records = await store.responses.list_all_tenants(filters)

        summaries = [AnonymousSurveyResponse.from_response(SurveyResponse.model_validate(r)) for r in records]
        logger.info(
            "Anonymous survey responses listed",
            extra={
                "count": len(summaries),
                "start_date": start_date.isoformat() if start_date else None,
                "end_date": end_date.isoformat() if end_date else None,
            },
        )
        return summaries


__all__ = [
    "AnalyticsService",
    "resolve_window",
    "token_digest",
]
