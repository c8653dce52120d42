"""
Survey API routers.

Client routes act on the caller's own tenant with ``already_admin=False``;
admin routes require the admin permission and pass ``already_admin=True``.
Creating an event-linked survey and reading survey responses through the
admin routes still need a confirmed event admin.
"""

from dataclasses import replace
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from survey_service.auth.middleware import AdminIdentityDep, CurrentIdentityDep
from survey_service.dependencies import get_response_service, get_survey_service
from survey_service.surveys.responses import SurveyResponseService
from survey_service.surveys.schemas import (
    Survey,
    SurveyFilter,
    SurveyListItem,
    SurveyRequest,
    SurveyResponse,
    SurveyResponseFilter,
    UserData,
)
from survey_service.surveys.service import SurveyService

router = APIRouter(prefix="/api", tags=["surveys"])
admin_router = APIRouter(prefix="/api/admin", tags=["admin"])

SurveyServiceDep = Annotated[SurveyService, Depends(get_survey_service)]
ResponseServiceDep = Annotated[SurveyResponseService, Depends(get_response_service)]


def split_csv(value: str | None) -> tuple[str, ...]:
    """Split a comma-separated query value, dropping blanks."""
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())


def survey_filters(
    ids: Annotated[str | None, Query(description="Comma-separated survey IDs")] = None,
    types: Annotated[str | None, Query(description="Comma-separated survey types")] = None,
    calendar_event_id: str = "",
    public: bool | None = None,
    archived: bool | None = None,
    completed: Annotated[bool | None, Query(description="Whether the caller already responded")] = None,
    start_time_after: datetime | None = None,
    start_time_before: datetime | None = None,
    end_time_after: datetime | None = None,
    end_time_before: datetime | None = None,
    limit: Annotated[int | None, Query(ge=0)] = None,
    offset: Annotated[int | None, Query(ge=0)] = None,
) -> SurveyFilter:
    return SurveyFilter(
        survey_ids=split_csv(ids),
        survey_types=split_csv(types),
        calendar_event_id=calendar_event_id,
        public=public,
        archived=archived,
        completed=completed,
        start_time_after=start_time_after,
        start_time_before=start_time_before,
        end_time_after=end_time_after,
        end_time_before=end_time_before,
        limit=limit,
        offset=offset,
    )


def response_filters(
    survey_ids: Annotated[str | None, Query(description="Comma-separated survey IDs")] = None,
    survey_types: Annotated[str | None, Query(description="Comma-separated survey types")] = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    limit: Annotated[int | None, Query(ge=0)] = None,
    offset: Annotated[int | None, Query(ge=0)] = None,
) -> SurveyResponseFilter:
    return SurveyResponseFilter(
        survey_ids=split_csv(survey_ids),
        survey_types=split_csv(survey_types),
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )


SurveyFilterDep = Annotated[SurveyFilter, Depends(survey_filters)]
ResponseFilterDep = Annotated[SurveyResponseFilter, Depends(response_filters)]


# Client


@router.get("/surveys", response_model=list[SurveyListItem])
async def list_surveys(
    identity: CurrentIdentityDep,
    service: SurveyServiceDep,
    filters: SurveyFilterDep,
) -> list[SurveyListItem]:
    """List surveys, each flagged ``completed`` when the caller already responded."""
    return await service.list_user_surveys(identity, filters)


@router.post("/surveys", response_model=Survey, status_code=status.HTTP_201_CREATED)
async def create_survey(
    body: SurveyRequest,
    identity: CurrentIdentityDep,
    service: SurveyServiceDep,
) -> Survey:
    """Create a survey owned by the caller.

    Surveys linked to a calendar event require the caller to be an admin of
    that event.
    """
    return await service.create_survey(body, identity)


@router.get("/surveys/{survey_id}", response_model=Survey)
async def get_survey(survey_id: str, identity: CurrentIdentityDep, service: SurveyServiceDep) -> Survey:
    return await service.get_survey(survey_id, identity.tenant)


@router.put("/surveys/{survey_id}", response_model=Survey)
async def update_survey(
    survey_id: str,
    body: SurveyRequest,
    identity: CurrentIdentityDep,
    service: SurveyServiceDep,
) -> Survey:
    return await service.update_survey(survey_id, body, identity, already_admin=False)


@router.delete("/surveys/{survey_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_survey(survey_id: str, identity: CurrentIdentityDep, service: SurveyServiceDep) -> Response:
    await service.delete_survey(survey_id, identity.tenant, identity, already_admin=False)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/surveys/{survey_id}/responses", response_model=list[SurveyResponse])
async def list_survey_responses(
    survey_id: str,
    identity: CurrentIdentityDep,
    service: ResponseServiceDep,
    filters: ResponseFilterDep,
) -> list[SurveyResponse]:
    """List every response to a survey the caller created or administers."""
    return await service.list_survey_responses(survey_id, identity, filters)


@router.get("/creator/surveys", response_model=list[Survey])
async def list_creator_surveys(
    identity: CurrentIdentityDep,
    service: SurveyServiceDep,
    filters: SurveyFilterDep,
) -> list[Survey]:
    """List the surveys created by the caller."""
    scoped = replace(filters, creator_id=identity.account_id)
    return await service.list_surveys(identity.tenant, scoped)


@router.get("/user-data", response_model=UserData)
async def get_user_data(identity: CurrentIdentityDep, service: SurveyServiceDep) -> UserData:
    return await service.get_user_data(identity)


# Admin


@admin_router.get("/surveys", response_model=list[Survey])
async def admin_list_surveys(
    identity: AdminIdentityDep,
    service: SurveyServiceDep,
    filters: SurveyFilterDep,
) -> list[Survey]:
    return await service.list_surveys(identity.tenant, filters)


@admin_router.post("/surveys", response_model=Survey, status_code=status.HTTP_201_CREATED)
async def admin_create_survey(
    body: SurveyRequest,
    identity: AdminIdentityDep,
    service: SurveyServiceDep,
) -> Survey:
    return await service.create_survey(body, identity)


@admin_router.get("/surveys/{survey_id}", response_model=Survey)
async def admin_get_survey(survey_id: str, identity: AdminIdentityDep, service: SurveyServiceDep) -> Survey:
    return await service.get_survey(survey_id, identity.tenant)


@admin_router.put("/surveys/{survey_id}", response_model=Survey)
async def admin_update_survey(
    survey_id: str,
    body: SurveyRequest,
    identity: AdminIdentityDep,
    service: SurveyServiceDep,
) -> Survey:
    return await service.update_survey(survey_id, body, identity, already_admin=True)


@admin_router.delete("/surveys/{survey_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_delete_survey(survey_id: str, identity: AdminIdentityDep, service: SurveyServiceDep) -> Response:
    await service.delete_survey(survey_id, identity.tenant, identity, already_admin=True)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@admin_router.get("/surveys/{survey_id}/responses", response_model=list[SurveyResponse])
async def admin_list_survey_responses(
    survey_id: str,
    identity: AdminIdentityDep,
    service: ResponseServiceDep,
    filters: ResponseFilterDep,
) -> list[SurveyResponse]:
    """List responses to a calendar event survey the caller administers.

    Sensitive surveys and surveys without a calendar event are refused.
    """
    return await service.admin_list_survey_responses(survey_id, identity, filters)
