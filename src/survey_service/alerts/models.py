"""
SQLAlchemy model for alert contacts.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from survey_service.shared.database import Base


class AlertContactRecord(Base):
    """Where survey alerts registered under ``key`` are delivered."""

    __tablename__ = "alert_contacts"
    __table_args__ = (Index("ix_alert_contacts_key", "org_id", "app_id", "key"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    org_id: Mapped[str] = mapped_column(String(100), nullable=False)
    app_id: Mapped[str] = mapped_column(String(100), nullable=False)
    key: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    params: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    date_created: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    date_updated: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<AlertContactRecord(id={self.id}, key={self.key}, type={self.type})>"
