"""
Survey alert and alert contact API routers.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from survey_service.alerts.schemas import AlertContact, AlertContactRequest, SurveyAlert
from survey_service.alerts.service import AlertService
from survey_service.auth.middleware import AdminIdentityDep, CurrentIdentityDep
from survey_service.dependencies import get_alert_service

router = APIRouter(prefix="/api/survey-alerts", tags=["alerts"])
admin_router = APIRouter(prefix="/api/admin/alert-contacts", tags=["admin", "alerts"])

AlertServiceDep = Annotated[AlertService, Depends(get_alert_service)]


class AlertSent(BaseModel):
    sent_count: int


@router.post("", response_model=AlertSent)
async def send_survey_alert(
    body: SurveyAlert,
    identity: CurrentIdentityDep,
    service: AlertServiceDep,
) -> AlertSent:
    """Email the alert to every email contact registered under its key."""
    sent = await service.send_survey_alert(body, identity.tenant)
    return AlertSent(sent_count=sent)


@admin_router.get("", response_model=list[AlertContact])
async def list_contacts(identity: AdminIdentityDep, service: AlertServiceDep) -> list[AlertContact]:
    return await service.list_contacts(identity.tenant)


@admin_router.post("", response_model=AlertContact, status_code=status.HTTP_201_CREATED)
async def create_contact(
    body: AlertContactRequest,
    identity: AdminIdentityDep,
    service: AlertServiceDep,
) -> AlertContact:
    return await service.create_contact(body, identity.tenant)


@admin_router.get("/{contact_id}", response_model=AlertContact)
async def get_contact(contact_id: str, identity: AdminIdentityDep, service: AlertServiceDep) -> AlertContact:
    return await service.get_contact(contact_id, identity.tenant)


@admin_router.put("/{contact_id}", response_model=AlertContact)
async def update_contact(
    contact_id: str,
    body: AlertContactRequest,
    identity: AdminIdentityDep,
    service: AlertServiceDep,
) -> AlertContact:
    return await service.update_contact(contact_id, body, identity.tenant)


@admin_router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contact(contact_id: str, identity: AdminIdentityDep, service: AlertServiceDep) -> Response:
    await service.delete_contact(contact_id, identity.tenant)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
