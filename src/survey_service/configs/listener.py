"""
Postgres LISTEN bridge for config changes made by other instances.

The dedicated connection is re-opened when it drops. Changes made while it
was down are covered by one notification after reconnecting.
"""

import asyncio
from typing import Any

import asyncpg

from survey_service.configs.notifier import ConfigChangeNotifier
from survey_service.shared.logging import get_logger

logger = get_logger(__name__)


def to_asyncpg_dsn(database_url: str) -> str:
    """Strip the SQLAlchemy driver suffix from a Postgres URL."""
    scheme, sep, rest = database_url.partition("://")
    return f"{scheme.split('+', 1)[0]}{sep}{rest}"


class PostgresConfigListener:
    """Forwards notifications on the config channel to the notifier."""

    def __init__(
        self,
        database_url: str,
        channel: str,
        notifier: ConfigChangeNotifier,
        retry_delay: float = 1.0,
        max_retry_delay: float = 30.0,
    ) -> None:
        self._dsn = to_asyncpg_dsn(database_url)
        self._channel = channel
        self._notifier = notifier
        self._retry_delay = retry_delay
        self._max_retry_delay = max_retry_delay
        self._connection: asyncpg.Connection | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._stopping = False

    @property
    def connected(self) -> bool:
        return self._connection is not None

    async def start(self) -> None:
        """Open a dedicated connection and LISTEN on the channel."""
        if self._connection is not None:
            return
        self._stopping = False
        await self._connect()
        logger.info("Config listener started", extra={"channel": self._channel})

    async def stop(self) -> None:
        self._stopping = True
        if self._reconnect_task is not None:
            self._reconnect_task.cancel()
            try:
                await self._reconnect_task
            except asyncio.CancelledError:
                pass
            self._reconnect_task = None

        if self._connection is None:
            return
        connection = self._connection
        self._connection = None
        try:
            await connection.remove_listener(self._channel, self._handle)
        finally:
            await connection.close()
        logger.info("Config listener stopped", extra={"channel": self._channel})

    async def _connect(self) -> None:
        connection = await asyncpg.connect(self._dsn)
        try:
            await connection.add_listener(self._channel, self._handle)
        except BaseException:
            await connection.close()
            raise
        connection.add_termination_listener(self._on_terminated)
        self._connection = connection

    def _on_terminated(self, connection: Any) -> None:
        if self._stopping or connection is not self._connection:
            return
        logger.warning("Config listener connection lost", extra={"channel": self._channel})
        self._connection = None
        self._reconnect_task = asyncio.get_running_loop().create_task(
            self._reconnect(), name="config-listener-reconnect"
        )

    async def _reconnect(self) -> None:
        delay = self._retry_delay
        while not self._stopping:
            try:
                await self._connect()
            except Exception as e:
                logger.error(
                    "Config listener reconnect failed",
                    extra={"channel": self._channel, "error": str(e), "retry_in": delay},
                )
                await asyncio.sleep(delay)
                delay = min(delay * 2, self._max_retry_delay)
                continue

            logger.info("Config listener reconnected", extra={"channel": self._channel})
            self._notifier.notify()
            return

    def _handle(self, connection: Any, pid: int, channel: str, payload: str) -> None:
        logger.debug(
            "Config change notification received",
            extra={"channel": channel, "pid": pid, "config_id": payload},
        )
        self._notifier.notify()


__all__ = [
    "PostgresConfigListener",
    "to_asyncpg_dsn",
]
