"""
Analytics API router.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials

from survey_service.analytics.schemas import AnonymousSurveyResponse
from survey_service.analytics.service import AnalyticsService, resolve_window
from survey_service.auth.middleware import security
from survey_service.dependencies import get_analytics_service
from survey_service.shared.exceptions import AuthenticationError
from survey_service.shared.logging import get_logger
from survey_service.surveys.router import split_csv

logger = get_logger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["analytics"])

AnalyticsServiceDep = Annotated[AnalyticsService, Depends(get_analytics_service)]


async def require_analytics_token(
    request: Request,
    service: AnalyticsServiceDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)] = None,
) -> None:
    """Require the static analytics bearer token."""
    if credentials is None:
        logger.warning(
            "Missing analytics credentials",
            extra={"endpoint": str(request.url.path), "method": request.method},
        )
        raise AuthenticationError("Authentication credentials required")
    service.authenticate(credentials.credentials)


@router.get(
    "/survey-responses",
    response_model=list[AnonymousSurveyResponse],
    dependencies=[Depends(require_analytics_token)],
)
async def list_anonymous_survey_responses(
    service: AnalyticsServiceDep,
    survey_types: Annotated[str | None, Query(description="Comma-separated survey types")] = None,
    time_offset: Annotated[int, Query(description="Window length in hours ending now")] = 0,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> list[AnonymousSurveyResponse]:
    """List anonymized responses of every tenant created in the window.

    Either both dates or ``time_offset`` are required.
    """
    start, end = resolve_window(start_date, end_date, time_offset)
    return await service.list_anonymous_responses(split_csv(survey_types), start, end)
