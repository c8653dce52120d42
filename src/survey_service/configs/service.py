"""
Admin config management.

Reads are served from the config cache. Writes go to the database and then
signal the change notifier; they never touch the cache, which catches up
when the notification is delivered.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy.exc import IntegrityError

from survey_service.auth.identity import ALL_ORGS, Identity
from survey_service.configs.cache import ConfigCache
from survey_service.configs.models import ConfigRecord
from survey_service.configs.notifier import ConfigChangeNotifier
from survey_service.configs.schemas import Config, ConfigRequest
from survey_service.shared.exceptions import InvalidStateError, NotFoundError, PermissionDeniedError
from survey_service.shared.logging import get_logger
from survey_service.shared.unit_of_work import TransactionManager

logger = get_logger(__name__)


def _check_global_scope(request: ConfigRequest) -> None:
    if request.org_id == ALL_ORGS and not request.system:
        raise InvalidStateError(
            "Configs applying to all organizations must be system configs",
            details={"org_id": request.org_id, "system": request.system},
        )


class ConfigService:
    """Config CRUD with tenant access checks."""

    def __init__(
        self,
        transactions: TransactionManager,
        cache: ConfigCache,
        notifier: ConfigChangeNotifier,
    ) -> None:
        """Initialize config service.

        Args:
            transactions: Unit of work factory for writes.
            cache: Config cache serving reads.
            notifier: Change notifier signalled after every committed write.
        """
        self._transactions = transactions
        self._cache = cache
        self._notifier = notifier

    def get_config(self, config_id: str, identity: Identity) -> Config:
        """Get a cached config the identity may access.

        Raises:
            NotFoundError: If the config is not cached.
            PermissionDeniedError: If the config is outside the identity's scope.
        """
        config = self._cache.get(config_id)
        if config is None:
            raise NotFoundError("Config not found", details={"config_id": config_id})
        identity.can_access(config.app_id, config.org_id, config.system)
        return config

    def list_configs(self, identity: Identity, config_type: str | None = None) -> list[Config]:
        """List cached configs, silently dropping those the identity may not access."""
        allowed = []
        for config in self._cache.list(config_type):
            try:
                identity.can_access(config.app_id, config.org_id, config.system)
            except PermissionDeniedError:
                continue
            allowed.append(config)
        return allowed

    async def create_config(self, request: ConfigRequest, identity: Identity) -> Config:
        """Insert a config.

        Raises:
            InvalidStateError: If a config for all orgs is not a system config,
                or the (type, app, org) scope already has a config.
            PermissionDeniedError: If the scope is outside the identity's claims.
        """
        _check_global_scope(request)
        identity.can_access(request.app_id, request.org_id, request.system)

        record = ConfigRecord(
            id=str(uuid4()),
            type=request.type,
            app_id=request.app_id,
            org_id=request.org_id,
            system=request.system,
            data=request.data,
            date_created=datetime.now(timezone.utc),
        )
        try:
            async with self._transactions.transaction() as store:
                await store.configs.create(record)
        except IntegrityError as e:
            raise InvalidStateError(
                "Config already exists for this scope",
                details={"type": request.type, "app_id": request.app_id, "org_id": request.org_id},
            ) from e

        self._notifier.notify()
        logger.info(
            "Config created",
            extra={"config_id": record.id, "config_type": record.type, "account_id": identity.account_id},
        )
        return Config.from_record(record)

    async def update_config(self, config_id: str, request: ConfigRequest, identity: Identity) -> Config:
        """Replace a config.

        Raises:
            NotFoundError: If the config does not exist.
            InvalidStateError: If a config for all orgs is not a system config.
            PermissionDeniedError: If the stored config is a system config and
                the identity lacks the system claim, or the new scope is
                outside the identity's claims.
        """
        _check_global_scope(request)

        try:
            async with self._transactions.transaction() as store:
                record = await store.configs.get_by_id(config_id)
                if record is None:
                    raise NotFoundError("Config not found", details={"config_id": config_id})
                if record.system and not identity.system:
                    raise PermissionDeniedError(
                        "System claim required to modify a system config",
                        details={"config_id": config_id},
                    )
                identity.can_access(record.app_id, record.org_id, record.system)
                identity.can_access(request.app_id, request.org_id, request.system)

                record.type = request.type
                record.app_id = request.app_id
                record.org_id = request.org_id
                record.system = request.system
                record.data = request.data
                record.date_updated = datetime.now(timezone.utc)
                await store.configs.update(record)
        except IntegrityError as e:
            raise InvalidStateError(
                "Config already exists for this scope",
                details={"type": request.type, "app_id": request.app_id, "org_id": request.org_id},
            ) from e

        self._notifier.notify()
        logger.info(
            "Config updated",
            extra={"config_id": config_id, "config_type": request.type, "account_id": identity.account_id},
        )
        return Config.from_record(record)

    async def delete_config(self, config_id: str, identity: Identity) -> None:
        """Delete a config.

        Raises:
            NotFoundError: If the config does not exist.
            PermissionDeniedError: If the config is outside the identity's scope.
        """
        async with self._transactions.transaction() as store:
            record = await store.configs.get_by_id(config_id)
            if record is None:
                raise NotFoundError("Config not found", details={"config_id": config_id})
            identity.can_access(record.app_id, record.org_id, record.system)
            if not await store.configs.delete(config_id):
                raise NotFoundError("Config not found", details={"config_id": config_id})

        self._notifier.notify()
        logger.info("Config deleted", extra={"config_id": config_id, "account_id": identity.account_id})


__all__ = ["ConfigService"]
