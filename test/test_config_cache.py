"""
Tests for the in-memory config cache.
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from survey_service.auth.identity import ALL_APPS, ALL_ORGS
from survey_service.configs.cache import ConfigCache
from survey_service.configs.models import ConfigRecord
from survey_service.configs.schemas import Config, EnvConfigData
from survey_service.shared.exceptions import InvalidStateError, NotFoundError
from survey_service.shared.unit_of_work import TransactionManager


def _record(config_id: str, config_type: str = "feature", org_id: str = "o1", **data: object) -> ConfigRecord:
    return ConfigRecord(
        id=config_id,
        type=config_type,
        app_id="a1",
        org_id=org_id,
        system=False,
        data=dict(data),
        date_created=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


class TestConfigCacheReads:
    @pytest.mark.asyncio
    async def test_empty_before_first_refresh(self, transactions: TransactionManager) -> None:
        cache = ConfigCache(transactions)

        assert cache.get("anything") is None
        assert cache.list() == []

    @pytest.mark.asyncio
    async def test_refresh_loads_every_config(self, transactions: TransactionManager) -> None:
        async with transactions.transaction() as store:
            await store.configs.create(_record("c1", flag=True))
            await store.configs.create(_record("c2", config_type="other", org_id="o2"))

        cache = ConfigCache(transactions)
        await cache.refresh_all()

        assert cache.get("c1").data == {"flag": True}
        assert cache.find("other", "a1", "o2").id == "c2"
        assert [c.id for c in cache.list("feature")] == ["c1"]
        assert len(cache.list()) == 2

    @pytest.mark.asyncio
    async def test_env_config_decoded_once_at_refresh(self, config_cache: ConfigCache) -> None:
        env = config_cache.get_env_config()

        assert isinstance(env, EnvConfigData)
        assert env.external_id == "uin"
        assert config_cache.find("env", ALL_APPS, ALL_ORGS).data is env

    @pytest.mark.asyncio
    async def test_get_env_config_missing(self, transactions: TransactionManager) -> None:
        cache = ConfigCache(transactions)
        await cache.refresh_all()

        with pytest.raises(NotFoundError):
            cache.get_env_config()

    @pytest.mark.asyncio
    async def test_get_env_config_invalid_payload(self, transactions: TransactionManager) -> None:
        async with transactions.transaction() as store:
            await store.configs.create(
                ConfigRecord(
                    id="env",
                    type="env",
                    app_id=ALL_APPS,
                    org_id=ALL_ORGS,
                    system=True,
                    data={"external_id": {"not": "a string"}},
                    date_created=datetime(2024, 1, 1, tzinfo=timezone.utc),
                )
            )
        cache = ConfigCache(transactions)
        await cache.refresh_all()

        with pytest.raises(InvalidStateError):
            cache.get_env_config()

    @pytest.mark.asyncio
    async def test_snapshot_is_read_only(self, config_cache: ConfigCache) -> None:
        with pytest.raises(TypeError):
            config_cache.snapshot.by_id["new"] = MagicMock()  # type: ignore[index]


class TestConfigCacheConsistency:
    @pytest.mark.asyncio
    async def test_write_is_invisible_until_change_callback(self, transactions: TransactionManager) -> None:
        async with transactions.transaction() as store:
            await store.configs.create(_record("c1", value=1))
        cache = ConfigCache(transactions)
        await cache.refresh_all()

        async with transactions.transaction() as store:
            record = await store.configs.get_by_id("c1")
            record.data = {"value": 2}
            await store.configs.update(record)
            await store.configs.create(_record("c2", config_type="late", value=3))

        # Stale until notified
        assert cache.get("c1").data == {"value": 1}
        assert cache.get("c2") is None

        await cache.on_upstream_change()

        assert cache.get("c1").data == {"value": 2}
        assert cache.get("c2").data == {"value": 3}

    @pytest.mark.asyncio
    async def test_refresh_is_idempotent(self, config_cache: ConfigCache) -> None:
        first = dict(config_cache.snapshot.by_id)
        await config_cache.refresh_all()
        second = dict(config_cache.snapshot.by_id)

        assert first == second

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_last_good_snapshot(self, config_cache: ConfigCache) -> None:
        before = config_cache.snapshot
        failing = MagicMock(spec=TransactionManager)
        failing.run = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("db down")))
        config_cache._transactions = failing

        with pytest.raises(OperationalError):
            await config_cache.refresh_all()

        assert config_cache.snapshot is before
        assert config_cache.get_env_config().external_id == "uin"

    @pytest.mark.asyncio
    async def test_older_refresh_does_not_overwrite_newer(self) -> None:
        """A slow refresh finishing after a newer one is discarded."""
        old = Config(
            id="c1", type="t", app_id="a1", org_id="o1", system=False,
            data={"value": "old"}, date_created=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        new = Config(
            id="c1", type="t", app_id="a1", org_id="o1", system=False,
            data={"value": "new"}, date_created=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        slow_started = asyncio.Event()
        release_slow = asyncio.Event()
        results = iter([old, new])

        async def run(work: object) -> list[Config]:
            config = next(results)
            if config is old:
                slow_started.set()
                await release_slow.wait()
            return [config]

        transactions = MagicMock(spec=TransactionManager)
        transactions.run = run
        cache = ConfigCache(transactions)

        slow = asyncio.create_task(cache.refresh_all())
        await slow_started.wait()
        await cache.refresh_all()
        release_slow.set()
        await slow

        assert cache.get("c1").data == {"value": "new"}
