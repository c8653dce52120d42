"""
Calendar service wire models.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

EVENT_ROLE_ADMIN = "admin"


class EventUser(BaseModel):
    """Identity pair the calendar service matches event persons against."""

    model_config = ConfigDict(frozen=True)

    account_id: str = ""
    external_id: str = ""


class EventPerson(BaseModel):
    """A person linked to a calendar event."""

    model_config = ConfigDict(extra="ignore")

    user: EventUser = Field(default_factory=EventUser)
    registered: bool = False
    role: str = ""
    registration_type: str = ""
    attended: bool = False
    time: datetime | None = None

    def matches(self, user: EventUser) -> bool:
        """True when this person is ``user`` by account ID or by non-empty external ID."""
        if user.external_id and self.user.external_id == user.external_id:
            return True
        return bool(user.account_id) and self.user.account_id == user.account_id
