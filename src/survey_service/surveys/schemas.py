"""
Survey domain types and API schemas.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SurveyStats(BaseModel):
    total: int = 0
    complete: int = 0
    scored: int = 0
    scores: dict[str, float] = Field(default_factory=dict)
    maximum_scores: dict[str, float] = Field(default_factory=dict)
    response_data: dict[str, Any] = Field(default_factory=dict)


class SurveyFields(BaseModel):
    """Survey content fields accepted from clients."""

    title: str = Field(default="", max_length=500)
    more_info: str | None = None
    data: dict[str, Any] | None = None
    scored: bool = False
    result_rules: str = ""
    result_json: str = ""
    type: str = Field(default="", max_length=100)
    stats: SurveyStats | None = None
    sensitive: bool = False
    anonymous: bool = False
    default_data_key: str | None = None
    default_data_key_rule: str | None = None
    constants: dict[str, Any] | None = None
    strings: dict[str, Any] | None = None
    sub_rules: dict[str, Any] | None = None
    response_keys: list[str] | None = None
    calendar_event_id: str = Field(default="", max_length=255)
    start_date: datetime | None = None
    end_date: datetime | None = None
    public: bool | None = None
    archived: bool | None = None
    estimated_completion_time: int | None = Field(default=None, ge=0)
    retain_responses: bool = False


class SurveyRequest(SurveyFields):
    """Body of survey create and update requests."""


# Fields an update may change; ownership, tenancy, event link and
# privacy flags are fixed at creation.
UPDATABLE_SURVEY_FIELDS = frozenset(
    {
        "title",
        "more_info",
        "data",
        "scored",
        "result_rules",
        "type",
        "stats",
        "default_data_key",
        "default_data_key_rule",
        "constants",
        "strings",
        "sub_rules",
        "start_date",
        "end_date",
        "public",
        "archived",
        "estimated_completion_time",
        "retain_responses",
    }
)


class Survey(SurveyFields):
    """A stored survey, also used as the snapshot embedded in responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    creator_id: str = ""
    org_id: str = ""
    app_id: str = ""
    date_created: datetime | None = None
    date_updated: datetime | None = None

    @property
    def event_linked(self) -> bool:
        return bool(self.calendar_event_id)


class SurveyListItem(Survey):
    """A survey as listed to a client, flagged when the caller already answered it."""

    completed: bool = False


class SurveyResponse(BaseModel):
    """A user's answers to a survey."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    org_id: str
    app_id: str
    survey: Survey
    date_created: datetime
    date_updated: datetime | None = None


class SurveyResponseRequest(BaseModel):
    """Body of survey response create and update requests."""

    survey: Survey


class UserData(BaseModel):
    """Everything the service stores about one account."""

    surveys: list[Survey] = Field(default_factory=list)
    survey_responses: list[SurveyResponse] = Field(default_factory=list)


@dataclass(frozen=True)
class SurveyFilter:
    """Survey query filters; ``None`` means unfiltered."""

    creator_id: str | None = None
    survey_ids: tuple[str, ...] = field(default_factory=tuple)
    survey_types: tuple[str, ...] = field(default_factory=tuple)
    calendar_event_id: str = ""
    public: bool | None = None
    archived: bool | None = None
    # Applied after paging, on the caller's own responses
    completed: bool | None = None
    start_time_after: datetime | None = None
    start_time_before: datetime | None = None
    end_time_after: datetime | None = None
    end_time_before: datetime | None = None
    limit: int | None = None
    offset: int | None = None


@dataclass(frozen=True)
class SurveyResponseFilter:
    """Survey response query filters.

    ``start_date`` is inclusive and ``end_date`` exclusive, both on the
    response creation time.
    """

    survey_ids: tuple[str, ...] = field(default_factory=tuple)
    survey_types: tuple[str, ...] = field(default_factory=tuple)
    start_date: datetime | None = None
    end_date: datetime | None = None
    limit: int | None = None
    offset: int | None = None
