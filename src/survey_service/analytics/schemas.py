"""
Analytics API schemas.
"""

from datetime import datetime

from pydantic import BaseModel

from survey_service.surveys.schemas import SurveyResponse, SurveyStats


class AnonymousSurveyResponse(BaseModel):
    """A survey response reduced to the answered survey's summary.

    Carries no response ID, author or answers.
    """

    id: str
    creator_id: str
    org_id: str
    app_id: str
    title: str
    type: str
    stats: SurveyStats | None = None
    date_created: datetime | None = None
    date_updated: datetime | None = None

    @classmethod
    def from_response(cls, response: SurveyResponse) -> "AnonymousSurveyResponse":
        survey = response.survey
        return cls(
            id=survey.id,
            creator_id=survey.creator_id,
            org_id=survey.org_id,
            app_id=survey.app_id,
            title=survey.title,
            type=survey.type,
            stats=survey.stats,
            date_created=survey.date_created,
            date_updated=survey.date_updated,
        )
