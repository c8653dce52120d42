"""
Tests for the config change notifier and the Postgres listener bridge.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from survey_service.configs.listener import PostgresConfigListener, to_asyncpg_dsn
from survey_service.configs.notifier import ConfigChangeNotifier


async def _wait_for(condition, timeout: float = 1.0) -> None:
    async def _poll() -> None:
        while not condition():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(_poll(), timeout)


class TestConfigChangeNotifier:
    @pytest.mark.asyncio
    async def test_notify_runs_callback_on_consumer(self) -> None:
        callback = AsyncMock()
        notifier = ConfigChangeNotifier(callback)
        notifier.start()
        try:
            notifier.notify()
            await _wait_for(lambda: callback.await_count == 1)
        finally:
            await notifier.stop()

        assert not notifier.running

    @pytest.mark.asyncio
    async def test_burst_of_notifications_coalesces(self) -> None:
        callback = AsyncMock()
        notifier = ConfigChangeNotifier(callback)

        for _ in range(5):
            notifier.notify()
        await notifier.drain()
        await notifier.drain()

        assert callback.await_count == 1

    @pytest.mark.asyncio
    async def test_notification_during_refresh_triggers_one_more(self) -> None:
        release = asyncio.Event()
        calls = 0

        async def callback() -> None:
            nonlocal calls
            calls += 1
            if calls == 1:
                await release.wait()

        notifier = ConfigChangeNotifier(callback)
        notifier.start()
        try:
            notifier.notify()
            await _wait_for(lambda: calls == 1)
            notifier.notify()
            notifier.notify()
            release.set()
            await _wait_for(lambda: calls == 2)
            await asyncio.sleep(0.05)
        finally:
            await notifier.stop()

        assert calls == 2

    @pytest.mark.asyncio
    async def test_callback_failure_keeps_consumer_alive(self) -> None:
        callback = AsyncMock(side_effect=[RuntimeError("db down"), None])
        notifier = ConfigChangeNotifier(callback)
        notifier.start()
        try:
            notifier.notify()
            await _wait_for(lambda: callback.await_count == 1)
            notifier.notify()
            await _wait_for(lambda: callback.await_count == 2)
            assert notifier.running
        finally:
            await notifier.stop()

    @pytest.mark.asyncio
    async def test_notify_without_consumer_does_not_block(self) -> None:
        notifier = ConfigChangeNotifier(AsyncMock())

        notifier.notify()
        notifier.notify()

        assert not notifier.running


class TestPostgresConfigListener:
    def test_dsn_drops_driver(self) -> None:
        assert to_asyncpg_dsn("postgresql+asyncpg://u:p@db:5432/surveys") == "postgresql://u:p@db:5432/surveys"
        assert to_asyncpg_dsn("postgresql://u:p@db/surveys") == "postgresql://u:p@db/surveys"

    @pytest.mark.asyncio
    async def test_listens_and_forwards_notifications(self) -> None:
        connection = MagicMock()
        connection.add_listener = AsyncMock()
        connection.remove_listener = AsyncMock()
        connection.close = AsyncMock()
        notifier = MagicMock(spec=ConfigChangeNotifier)

        with patch("survey_service.configs.listener.asyncpg.connect", AsyncMock(return_value=connection)) as connect:
            listener = PostgresConfigListener(
                "postgresql+asyncpg://u:p@db/surveys", "survey_configs_changed", notifier
            )
            await listener.start()

            connect.assert_awaited_once_with("postgresql://u:p@db/surveys")
            channel, handler = connection.add_listener.await_args.args
            assert channel == "survey_configs_changed"

            handler(connection, 42, channel, "config-id")
            notifier.notify.assert_called_once_with()

            await listener.stop()

        connection.remove_listener.assert_awaited_once()
        connection.close.assert_awaited_once()


def _connection() -> MagicMock:
    connection = MagicMock()
    connection.add_listener = AsyncMock()
    connection.remove_listener = AsyncMock()
    connection.close = AsyncMock()
    return connection


class TestListenerReconnect:
    @pytest.mark.asyncio
    async def test_reconnects_after_connection_loss(self) -> None:
        first, second = _connection(), _connection()
        notifier = MagicMock(spec=ConfigChangeNotifier)

        with patch(
            "survey_service.configs.listener.asyncpg.connect", AsyncMock(side_effect=[first, second])
        ) as connect:
            listener = PostgresConfigListener("postgresql://db/surveys", "chan", notifier, retry_delay=0.01)
            await listener.start()

            on_terminated = first.add_termination_listener.call_args.args[0]
            on_terminated(first)
            assert not listener.connected

            await _wait_for(lambda: listener.connected)

            assert connect.await_count == 2
            second.add_listener.assert_awaited_once()
            # Changes missed while disconnected trigger one refresh.
            notifier.notify.assert_called_once_with()

            await listener.stop()

        second.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_retries_until_database_is_back(self) -> None:
        first, second = _connection(), _connection()
        notifier = MagicMock(spec=ConfigChangeNotifier)

        with patch(
            "survey_service.configs.listener.asyncpg.connect",
            AsyncMock(side_effect=[first, OSError("connection refused"), second]),
        ) as connect:
            listener = PostgresConfigListener("postgresql://db/surveys", "chan", notifier, retry_delay=0.01)
            await listener.start()

            first.add_termination_listener.call_args.args[0](first)
            await _wait_for(lambda: listener.connected)

            assert connect.await_count == 3
            await listener.stop()

    @pytest.mark.asyncio
    async def test_stop_does_not_reconnect(self) -> None:
        connection = _connection()
        notifier = MagicMock(spec=ConfigChangeNotifier)

        with patch(
            "survey_service.configs.listener.asyncpg.connect", AsyncMock(return_value=connection)
        ) as connect:
            listener = PostgresConfigListener("postgresql://db/surveys", "chan", notifier)
            await listener.start()
            await listener.stop()

            # asyncpg fires termination listeners on close
            connection.add_termination_listener.call_args.args[0](connection)
            await asyncio.sleep(0.02)

        assert connect.await_count == 1
        assert not listener.connected
        notifier.notify.assert_not_called()
