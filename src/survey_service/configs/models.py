"""
SQLAlchemy model for configuration records.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from survey_service.shared.database import Base


class ConfigRecord(Base):
    """A tenant- or system-scoped configuration row."""

    __tablename__ = "configs"
    __table_args__ = (
        UniqueConstraint("type", "app_id", "org_id", name="uq_configs_type_app_org"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    type: Mapped[str] = mapped_column(String(100), nullable=False)
    app_id: Mapped[str] = mapped_column(String(100), nullable=False)
    org_id: Mapped[str] = mapped_column(String(100), nullable=False)
    system: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    date_created: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    date_updated: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<ConfigRecord(id={self.id}, type={self.type}, app_id={self.app_id}, org_id={self.org_id})>"
