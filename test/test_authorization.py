"""
Tests for event admin and attendance decisions.
"""

import pytest

from conftest import FakeCalendar, event_person
from survey_service.auth.identity import Identity, Tenant
from survey_service.configs.cache import ConfigCache
from survey_service.shared.exceptions import InvalidStateError, UpstreamUnavailableError
from survey_service.shared.unit_of_work import TransactionManager
from survey_service.surveys.authorization import AuthorizationResolver
from survey_service.surveys.schemas import Survey


def _survey(calendar_event_id: str = "e1", **overrides: object) -> Survey:
    values = {"id": "s1", "creator_id": "u1", "org_id": "o1", "app_id": "a1", "calendar_event_id": calendar_event_id}
    values.update(overrides)
    return Survey(**values)


class TestIsElevated:
    @pytest.mark.asyncio
    async def test_survey_without_event_makes_no_remote_call(
        self, resolver: AuthorizationResolver, calendar: FakeCalendar, other_user: Identity
    ) -> None:
        assert await resolver.is_elevated(_survey(""), other_user, already_admin=False) is False
        assert await resolver.is_elevated(_survey(""), other_user, already_admin=True) is True
        assert calendar.calls == []

    @pytest.mark.asyncio
    async def test_already_admin_short_circuits(
        self, resolver: AuthorizationResolver, calendar: FakeCalendar, other_user: Identity
    ) -> None:
        assert await resolver.is_elevated(_survey(), other_user, already_admin=True) is True
        assert calendar.calls == []

    @pytest.mark.asyncio
    async def test_event_admin_is_elevated(
        self, resolver: AuthorizationResolver, calendar: FakeCalendar, other_user: Identity
    ) -> None:
        calendar.persons = [event_person(account_id="u2", role="admin")]

        assert await resolver.is_elevated(_survey(), other_user, already_admin=False) is True

        (call,) = calendar.calls
        assert call["event_id"] == "e1"
        assert call["role"] == "admin"
        assert call["tenant"] == Tenant(org_id="o1", app_id="a1")
        assert call["users"][0].account_id == "u2"
        assert call["users"][0].external_id == "ext-u2"

    @pytest.mark.asyncio
    async def test_event_member_is_not_elevated(
        self, resolver: AuthorizationResolver, calendar: FakeCalendar, other_user: Identity
    ) -> None:
        calendar.persons = [event_person(account_id="u2", role="member")]

        assert await resolver.is_elevated(_survey(), other_user, already_admin=False) is False

    @pytest.mark.asyncio
    async def test_admin_entry_for_someone_else_does_not_count(
        self, resolver: AuthorizationResolver, calendar: FakeCalendar, other_user: Identity
    ) -> None:
        calendar.persons = [event_person(account_id="u9", external_id="ext-u9", role="admin")]

        assert await resolver.is_elevated(_survey(), other_user, already_admin=False) is False

    @pytest.mark.asyncio
    async def test_matches_on_external_id(
        self, resolver: AuthorizationResolver, calendar: FakeCalendar, other_user: Identity
    ) -> None:
        calendar.persons = [event_person(external_id="ext-u2", role="admin")]

        assert await resolver.is_elevated(_survey(), other_user, already_admin=False) is True

    @pytest.mark.asyncio
    async def test_upstream_failure_propagates(
        self, resolver: AuthorizationResolver, calendar: FakeCalendar, other_user: Identity
    ) -> None:
        calendar.error = UpstreamUnavailableError("Calendar service unavailable")

        with pytest.raises(UpstreamUnavailableError):
            await resolver.is_elevated(_survey(), other_user, already_admin=False)

    @pytest.mark.asyncio
    async def test_survey_tenant_scopes_lookup(
        self, resolver: AuthorizationResolver, calendar: FakeCalendar, other_user: Identity
    ) -> None:
        await resolver.is_elevated(_survey(org_id="o7", app_id="a7"), other_user, already_admin=False)

        assert calendar.calls[0]["tenant"] == Tenant(org_id="o7", app_id="a7")

    @pytest.mark.asyncio
    async def test_missing_env_config_fails_before_calendar(
        self, transactions: TransactionManager, other_user: Identity
    ) -> None:
        cache = ConfigCache(transactions)
        await cache.refresh_all()
        calendar = FakeCalendar([event_person(account_id="u2", role="admin")])
        resolver = AuthorizationResolver(calendar, cache)

        with pytest.raises(InvalidStateError):
            await resolver.is_elevated(_survey(), other_user, already_admin=False)
        with pytest.raises(InvalidStateError):
            await resolver.has_attended(_survey(), other_user)

        assert calendar.calls == []

    @pytest.mark.asyncio
    async def test_missing_env_config_irrelevant_without_event(
        self, transactions: TransactionManager, other_user: Identity
    ) -> None:
        cache = ConfigCache(transactions)
        await cache.refresh_all()
        resolver = AuthorizationResolver(FakeCalendar(), cache)

        assert await resolver.is_elevated(_survey(""), other_user, already_admin=False) is False


class TestHasAttended:
    @pytest.mark.asyncio
    async def test_survey_without_event(
        self, resolver: AuthorizationResolver, calendar: FakeCalendar, other_user: Identity
    ) -> None:
        assert await resolver.has_attended(_survey(""), other_user) is False
        assert calendar.calls == []

    @pytest.mark.asyncio
    async def test_attendee(
        self, resolver: AuthorizationResolver, calendar: FakeCalendar, other_user: Identity
    ) -> None:
        calendar.persons = [event_person(account_id="u2", registered=True, attended=True)]

        assert await resolver.has_attended(_survey(), other_user) is True

        (call,) = calendar.calls
        assert call["registered"] is True
        assert call["attended"] is True
        assert call["role"] is None

    @pytest.mark.asyncio
    async def test_registered_but_absent(
        self, resolver: AuthorizationResolver, calendar: FakeCalendar, other_user: Identity
    ) -> None:
        calendar.persons = [event_person(account_id="u2", registered=True, attended=False)]

        assert await resolver.has_attended(_survey(), other_user) is False

    @pytest.mark.asyncio
    async def test_upstream_failure_propagates(
        self, resolver: AuthorizationResolver, calendar: FakeCalendar, other_user: Identity
    ) -> None:
        calendar.error = UpstreamUnavailableError("Calendar service unavailable")

        with pytest.raises(UpstreamUnavailableError):
            await resolver.has_attended(_survey(), other_user)
