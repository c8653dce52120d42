"""
Pytest configuration and fixtures.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, AsyncGenerator, Sequence

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

import survey_service.alerts.models  # noqa: F401
import survey_service.surveys.models  # noqa: F401
from survey_service.auth.identity import ALL_APPS, ALL_ORGS, Identity, Tenant
from survey_service.calendar.schemas import EventPerson, EventUser
from survey_service.config import Settings
from survey_service.configs.cache import ConfigCache
from survey_service.configs.models import ConfigRecord
from survey_service.shared.database import Base
from survey_service.shared.unit_of_work import TransactionManager
from survey_service.surveys.authorization import AuthorizationResolver
from survey_service.surveys.models import SurveyRecord

ORG_ID = "o1"
APP_ID = "a1"
EXTERNAL_ID_FIELD = "uin"


class FakeCalendar:
    """Calendar client stub recording every lookup."""

    def __init__(self, persons: Sequence[EventPerson] = (), error: Exception | None = None) -> None:
        self.persons = list(persons)
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def get_event_persons(
        self,
        tenant: Tenant,
        event_id: str,
        users: Sequence[EventUser],
        registered: bool | None = None,
        role: str | None = None,
        attended: bool | None = None,
    ) -> list[EventPerson]:
        self.calls.append(
            {
                "tenant": tenant,
                "event_id": event_id,
                "users": list(users),
                "registered": registered,
                "role": role,
                "attended": attended,
            }
        )
        if self.error is not None:
            raise self.error
        return list(self.persons)


def event_person(
    account_id: str = "",
    external_id: str = "",
    role: str = "",
    registered: bool = False,
    attended: bool = False,
) -> EventPerson:
    return EventPerson(
        user=EventUser(account_id=account_id, external_id=external_id),
        role=role,
        registered=registered,
        attended=attended,
    )


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        app_env="dev",
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret_key="test-secret-key-for-testing-only",
        calendar_base_url="http://calendar.test/calendar",
        notifications_base_url="http://notifications.test/notifications",
        service_token="service-token",
        config_listener_enabled=False,
        user_data_timeout_seconds=2.0,
    )


@pytest_asyncio.fixture
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a file-backed SQLite engine so every session sees the same data."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'surveys.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
def transactions(session_factory: async_sessionmaker[AsyncSession]) -> TransactionManager:
    return TransactionManager(session_factory)


@pytest_asyncio.fixture
async def env_config(transactions: TransactionManager) -> ConfigRecord:
    """Store the service-wide env config naming the external ID field."""
    record = ConfigRecord(
        id="env-config",
        type="env",
        app_id=ALL_APPS,
        org_id=ALL_ORGS,
        system=True,
        data={"external_id": EXTERNAL_ID_FIELD},
        date_created=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    async with transactions.transaction() as store:
        await store.configs.create(record)
    return record


@pytest_asyncio.fixture
async def config_cache(transactions: TransactionManager, env_config: ConfigRecord) -> ConfigCache:
    cache = ConfigCache(transactions)
    await cache.refresh_all()
    return cache


@pytest.fixture
def calendar() -> FakeCalendar:
    return FakeCalendar()


@pytest.fixture
def resolver(calendar: FakeCalendar, config_cache: ConfigCache) -> AuthorizationResolver:
    return AuthorizationResolver(calendar, config_cache)


@pytest.fixture
def creator() -> Identity:
    return Identity(
        account_id="u1",
        org_id=ORG_ID,
        app_id=APP_ID,
        external_ids={EXTERNAL_ID_FIELD: "ext-u1"},
    )


@pytest.fixture
def other_user() -> Identity:
    return Identity(
        account_id="u2",
        org_id=ORG_ID,
        app_id=APP_ID,
        external_ids={EXTERNAL_ID_FIELD: "ext-u2"},
    )


@pytest.fixture
def admin() -> Identity:
    """Holder of the admin permission with no calendar role of its own."""
    return Identity(
        account_id="u3",
        org_id=ORG_ID,
        app_id=APP_ID,
        external_ids={EXTERNAL_ID_FIELD: "ext-u3"},
        permissions=frozenset({"surveys_admin"}),
    )


@pytest.fixture
def tenant() -> Tenant:
    return Tenant(org_id=ORG_ID, app_id=APP_ID)


def survey_record(
    survey_id: str = "s1",
    creator_id: str = "u1",
    calendar_event_id: str = "",
    **overrides: Any,
) -> SurveyRecord:
    values: dict[str, Any] = {
        "id": survey_id,
        "creator_id": creator_id,
        "org_id": ORG_ID,
        "app_id": APP_ID,
        "title": f"Survey {survey_id}",
        "type": "user",
        "calendar_event_id": calendar_event_id,
        "date_created": datetime(2024, 1, 1, tzinfo=timezone.utc),
    }
    values.update(overrides)
    return SurveyRecord(**values)


@pytest_asyncio.fixture
async def event_survey(transactions: TransactionManager) -> SurveyRecord:
    """Survey s1 created by u1 and linked to calendar event e1."""
    record = survey_record("s1", "u1", calendar_event_id="e1")
    async with transactions.transaction() as store:
        await store.surveys.create(record)
    return record


@pytest_asyncio.fixture
async def plain_survey(transactions: TransactionManager) -> SurveyRecord:
    """Survey s2 created by u1 without a calendar event."""
    record = survey_record("s2", "u1")
    async with transactions.transaction() as store:
        await store.surveys.create(record)
    return record
