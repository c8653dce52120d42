"""
In-memory cache of the configs table.

The cache holds one immutable snapshot. Readers dereference the current
snapshot without locking; a refresh reads the table, decodes every payload,
builds a complete new snapshot and publishes it by swapping one reference.
Writes to the table never touch the cache: it catches up when a change
notification reaches ``on_upstream_change``.
"""

from dataclasses import dataclass, field
import threading
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping

from survey_service.auth.identity import ALL_APPS, ALL_ORGS
from survey_service.configs.schemas import CONFIG_TYPE_ENV, Config, EnvConfigData
from survey_service.shared.exceptions import InvalidStateError, NotFoundError
from survey_service.shared.logging import get_logger

if TYPE_CHECKING:
    from survey_service.shared.unit_of_work import Store, TransactionManager

logger = get_logger(__name__)

ScopeKey = tuple[str, str, str]


@dataclass(frozen=True)
class ConfigSnapshot:
    """A consistent, read-only view of every config."""

    by_id: Mapping[str, Config] = field(default_factory=lambda: MappingProxyType({}))
    by_scope: Mapping[ScopeKey, Config] = field(default_factory=lambda: MappingProxyType({}))
    generation: int = 0

    @classmethod
    def build(cls, configs: list[Config], generation: int) -> "ConfigSnapshot":
        by_id = {config.id: config for config in configs}
        by_scope = {(config.type, config.app_id, config.org_id): config for config in configs}
        return cls(
            by_id=MappingProxyType(by_id),
            by_scope=MappingProxyType(by_scope),
            generation=generation,
        )


async def _load_configs(store: "Store") -> list[Config]:
    records = await store.configs.list()
    return [Config.from_record(record) for record in records]


class ConfigCache:
    """Owner of the in-memory config snapshot."""

    def __init__(self, transactions: "TransactionManager") -> None:
        """Initialize an empty cache.

        Args:
            transactions: Transaction manager used to read the configs table.
        """
        self._transactions = transactions
        self._snapshot = ConfigSnapshot()
        self._swap_lock = threading.Lock()
        self._generation = 0

    @property
    def snapshot(self) -> ConfigSnapshot:
        return self._snapshot

    def get(self, config_id: str) -> Config | None:
        return self._snapshot.by_id.get(config_id)

    def find(self, config_type: str, app_id: str, org_id: str) -> Config | None:
        """Get the config of a type for an exact (app, org) scope."""
        return self._snapshot.by_scope.get((config_type, app_id, org_id))

    def list(self, config_type: str | None = None) -> list[Config]:
        configs = self._snapshot.by_id.values()
        if config_type is None:
            return list(configs)
        return [config for config in configs if config.type == config_type]

    def get_env_config(self) -> EnvConfigData:
        """Get the service-wide ``env`` config payload.

        Raises:
            NotFoundError: If no env config is stored for all apps and orgs.
            InvalidStateError: If the stored payload did not decode.
        """
        details = {"type": CONFIG_TYPE_ENV, "app_id": ALL_APPS, "org_id": ALL_ORGS}
        config = self.find(CONFIG_TYPE_ENV, ALL_APPS, ALL_ORGS)
        if config is None:
            raise NotFoundError("Env config not found", details=details)
        data = config.data_as_env()
        if data is None:
            raise InvalidStateError("Env config data is invalid", details=details)
        return data

    async def refresh_all(self) -> ConfigSnapshot:
        """Reload every config and publish a new snapshot.

        Returns:
            The snapshot current after the refresh.

        Raises:
            Any error raised while reading the store. The previous snapshot
            stays published.
        """
        with self._swap_lock:
            self._generation += 1
            generation = self._generation

        try:
            configs = await self._transactions.run(_load_configs)
        except Exception as e:
            logger.error(
                "Config cache refresh failed",
                extra={"generation": generation, "error": str(e)},
                exc_info=True,
            )
            raise

        snapshot = ConfigSnapshot.build(configs, generation)
        with self._swap_lock:
            # A newer read already published; drop this one.
            if self._snapshot.generation > generation:
                logger.info(
                    "Discarded stale config snapshot",
                    extra={"generation": generation, "published": self._snapshot.generation},
                )
                return self._snapshot
            self._snapshot = snapshot

        logger.info(
            "Config cache refreshed",
            extra={"generation": generation, "config_count": len(configs)},
        )
        return snapshot

    async def on_upstream_change(self) -> None:
        """Change-notification callback."""
        await self.refresh_all()


__all__ = [
    "ConfigCache",
    "ConfigSnapshot",
]
