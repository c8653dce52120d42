"""
Tests for anonymized survey response analytics.
"""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from survey_service.analytics.service import AnalyticsService, resolve_window, token_digest
from survey_service.auth.identity import ALL_APPS, ALL_ORGS
from survey_service.configs.cache import ConfigCache
from survey_service.configs.models import ConfigRecord
from survey_service.shared.exceptions import AuthenticationError, InvalidStateError, ValidationError
from survey_service.shared.unit_of_work import TransactionManager
from survey_service.surveys.models import SurveyResponseRecord

STATIC_TOKEN = "analytics-static-token"


async def _cache_with_env(transactions: TransactionManager, data: dict) -> ConfigCache:
    async with transactions.transaction() as store:
        await store.configs.create(
            ConfigRecord(
                id="env-config",
                type="env",
                app_id=ALL_APPS,
                org_id=ALL_ORGS,
                system=True,
                data=data,
                date_created=datetime(2024, 1, 1, tzinfo=timezone.utc),
            )
        )
    cache = ConfigCache(transactions)
    await cache.refresh_all()
    return cache


def _response(response_id: str, org_id: str, survey_type: str, created: datetime) -> SurveyResponseRecord:
    return SurveyResponseRecord(
        id=response_id,
        user_id=f"user-{response_id}",
        org_id=org_id,
        app_id="a1",
        survey_id=f"s-{response_id}",
        survey_type=survey_type,
        survey={
            "id": f"s-{response_id}",
            "creator_id": "u1",
            "org_id": org_id,
            "app_id": "a1",
            "title": "Wellness",
            "type": survey_type,
            "data": {"q1": "private answer"},
            "stats": {"total": 3, "complete": 2},
        },
        date_created=created,
    )


@pytest_asyncio.fixture
async def service(transactions: TransactionManager) -> AnalyticsService:
    cache = await _cache_with_env(transactions, {"external_id": "uin", "analytics_token": token_digest(STATIC_TOKEN)})
    return AnalyticsService(transactions, cache)


class TestAuthenticate:
    @pytest.mark.asyncio
    async def test_matching_token(self, service: AnalyticsService) -> None:
        service.authenticate(STATIC_TOKEN)

    @pytest.mark.asyncio
    async def test_wrong_token(self, service: AnalyticsService) -> None:
        with pytest.raises(AuthenticationError):
            service.authenticate("guess")

    @pytest.mark.asyncio
    async def test_unset_digest_rejects_everything(self, transactions: TransactionManager) -> None:
        service = AnalyticsService(transactions, await _cache_with_env(transactions, {"external_id": "uin"}))

        with pytest.raises(AuthenticationError):
            service.authenticate("")

    @pytest.mark.asyncio
    async def test_missing_env_config(self, transactions: TransactionManager) -> None:
        cache = ConfigCache(transactions)
        await cache.refresh_all()

        with pytest.raises(InvalidStateError):
            AnalyticsService(transactions, cache).authenticate(STATIC_TOKEN)


class TestResolveWindow:
    def test_explicit_bounds(self) -> None:
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        end = datetime(2024, 2, 1, tzinfo=timezone.utc)

        assert resolve_window(start, end, 0) == (start, end)

    def test_offset_ends_now(self) -> None:
        now = datetime(2024, 5, 1, 12, tzinfo=timezone.utc)

        assert resolve_window(None, None, 6, now=now) == (now - timedelta(hours=6), now)

    def test_missing_bound_without_offset(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            resolve_window(None, datetime(2024, 2, 1, tzinfo=timezone.utc), 0)

        assert exc_info.value.details["missing"] == ["start_date", "time_offset"]


class TestListAnonymousResponses:
    @pytest.mark.asyncio
    async def test_every_tenant_without_authors_or_answers(
        self, service: AnalyticsService, transactions: TransactionManager
    ) -> None:
        async with transactions.transaction() as store:
            await store.responses.create(_response("r1", "o1", "user", datetime(2024, 1, 10, tzinfo=timezone.utc)))
            await store.responses.create(_response("r2", "o2", "user", datetime(2024, 1, 20, tzinfo=timezone.utc)))
            await store.responses.create(_response("r3", "o1", "bessi", datetime(2024, 1, 15, tzinfo=timezone.utc)))
            await store.responses.create(_response("r4", "o1", "user", datetime(2023, 12, 1, tzinfo=timezone.utc)))

        summaries = await service.list_anonymous_responses(
            ["user"], datetime(2024, 1, 1, tzinfo=timezone.utc), datetime(2024, 2, 1, tzinfo=timezone.utc)
        )

        assert [s.id for s in summaries] == ["s-r2", "s-r1"]
        assert {s.org_id for s in summaries} == {"o1", "o2"}
        assert summaries[0].stats.complete == 2
        dumped = summaries[0].model_dump()
        assert "user_id" not in dumped
        assert "data" not in dumped
