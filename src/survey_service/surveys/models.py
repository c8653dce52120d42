"""
SQLAlchemy models for surveys and survey responses.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from survey_service.shared.database import Base


class SurveyRecord(Base):
    """Survey definition owned by one creator within a tenant."""

    __tablename__ = "surveys"
    __table_args__ = (
        Index("ix_surveys_tenant", "org_id", "app_id"),
        Index("ix_surveys_creator", "org_id", "app_id", "creator_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    creator_id: Mapped[str] = mapped_column(String(255), nullable=False)
    org_id: Mapped[str] = mapped_column(String(100), nullable=False)
    app_id: Mapped[str] = mapped_column(String(100), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    more_info: Mapped[str | None] = mapped_column(Text, nullable=True)
    data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    scored: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    result_rules: Mapped[str] = mapped_column(Text, nullable=False, default="")
    result_json: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    stats: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    sensitive: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    default_data_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    default_data_key_rule: Mapped[str | None] = mapped_column(Text, nullable=True)
    constants: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    strings: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    sub_rules: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    response_keys: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    calendar_event_id: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    public: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    archived: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    estimated_completion_time: Mapped[int | None] = mapped_column(Integer, nullable=True)
    retain_responses: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    date_created: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    date_updated: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<SurveyRecord(id={self.id}, creator_id={self.creator_id}, event={self.calendar_event_id})>"


class SurveyResponseRecord(Base):
    """A user's answers, stored with the survey as it was answered."""

    __tablename__ = "survey_responses"
    __table_args__ = (
        Index("ix_survey_responses_user", "org_id", "app_id", "user_id"),
        Index("ix_survey_responses_survey", "org_id", "app_id", "survey_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    org_id: Mapped[str] = mapped_column(String(100), nullable=False)
    app_id: Mapped[str] = mapped_column(String(100), nullable=False)
    # Copied from the snapshot for filtering
    survey_id: Mapped[str] = mapped_column(String(36), nullable=False)
    survey_type: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    survey: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    date_created: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    date_updated: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<SurveyResponseRecord(id={self.id}, user_id={self.user_id}, survey_id={self.survey_id})>"
