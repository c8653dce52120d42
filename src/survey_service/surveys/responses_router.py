"""
Survey response API router. Every route acts on the caller's own responses.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from survey_service.auth.middleware import CurrentIdentityDep
from survey_service.dependencies import get_response_service
from survey_service.surveys.responses import SurveyResponseService
from survey_service.surveys.router import ResponseFilterDep
from survey_service.surveys.schemas import SurveyResponse, SurveyResponseRequest

router = APIRouter(prefix="/api/survey-responses", tags=["survey-responses"])

ResponseServiceDep = Annotated[SurveyResponseService, Depends(get_response_service)]


class DeletedCount(BaseModel):
    deleted_count: int


@router.get("", response_model=list[SurveyResponse])
async def list_responses(
    identity: CurrentIdentityDep,
    service: ResponseServiceDep,
    filters: ResponseFilterDep,
) -> list[SurveyResponse]:
    return await service.list_responses(identity, filters)


@router.post("", response_model=SurveyResponse, status_code=status.HTTP_201_CREATED)
async def create_response(
    body: SurveyResponseRequest,
    identity: CurrentIdentityDep,
    service: ResponseServiceDep,
) -> SurveyResponse:
    """Submit a response.

    Responses to event-linked surveys that are not sensitive require the
    caller to have attended the event.
    """
    return await service.create_response(body, identity)


@router.delete("", response_model=DeletedCount)
async def delete_responses(
    identity: CurrentIdentityDep,
    service: ResponseServiceDep,
    filters: ResponseFilterDep,
) -> DeletedCount:
    count = await service.delete_responses(identity, filters)
    return DeletedCount(deleted_count=count)


@router.get("/{response_id}", response_model=SurveyResponse)
async def get_response(
    response_id: str,
    identity: CurrentIdentityDep,
    service: ResponseServiceDep,
) -> SurveyResponse:
    return await service.get_response(response_id, identity)


@router.put("/{response_id}", response_model=SurveyResponse)
async def update_response(
    response_id: str,
    body: SurveyResponseRequest,
    identity: CurrentIdentityDep,
    service: ResponseServiceDep,
) -> SurveyResponse:
    return await service.update_response(response_id, body, identity)


@router.delete("/{response_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_response(
    response_id: str,
    identity: CurrentIdentityDep,
    service: ResponseServiceDep,
) -> Response:
    await service.delete_response(response_id, identity)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
