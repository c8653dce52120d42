"""
Alert contact and survey alert schemas.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

CONTACT_TYPE_EMAIL = "email"


class AlertContact(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    org_id: str
    app_id: str
    key: str
    type: str
    address: str
    params: dict[str, Any] | None = None
    date_created: datetime
    date_updated: datetime | None = None


class AlertContactRequest(BaseModel):
    """Body of alert contact create and update requests."""

    key: str = Field(..., min_length=1, max_length=255)
    type: str = Field(..., min_length=1, max_length=50)
    address: str = Field(..., min_length=1, max_length=500)
    params: dict[str, Any] | None = None


class SurveyAlert(BaseModel):
    """Alert raised by a client for the contacts registered under ``contact_key``."""

    contact_key: str = Field(..., min_length=1)
    content: dict[str, Any] = Field(default_factory=dict)
