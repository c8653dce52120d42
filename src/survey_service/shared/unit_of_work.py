"""
Transaction management for multi-repository units of work.

A unit of work receives a ``Store`` bound to one session. The transaction
commits when the work returns and rolls back when it raises; the session is
closed in both cases.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from survey_service.alerts.repository import AlertContactRepository
from survey_service.configs.repository import ConfigRepository
from survey_service.shared.logging import get_logger
from survey_service.surveys.repository import SurveyRepository, SurveyResponseRepository

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Store:
    """Repositories sharing one session and therefore one transaction."""

    session: AsyncSession
    surveys: SurveyRepository
    responses: SurveyResponseRepository
    configs: ConfigRepository
    alert_contacts: AlertContactRepository

    @classmethod
    def bind(cls, session: AsyncSession, config_channel: str | None = None) -> "Store":
        return cls(
            session=session,
            surveys=SurveyRepository(session),
            responses=SurveyResponseRepository(session),
            configs=ConfigRepository(session, change_channel=config_channel),
            alert_contacts=AlertContactRepository(session),
        )


class TransactionManager:
    """Opens sessions and scopes them to a single transaction."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        config_channel: str | None = None,
    ) -> None:
        """Initialize transaction manager.

        Args:
            session_factory: Factory for new sessions.
            config_channel: Postgres NOTIFY channel passed to the config repository.
        """
        self._session_factory = session_factory
        self._config_channel = config_channel

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Store]:
        """Yield a store whose writes commit together or not at all."""
        async with self._session_factory() as session:
            try:
                yield Store.bind(session, self._config_channel)
                await session.commit()
            except BaseException:
                # Cancellation also rolls back.
                await session.rollback()
                raise

    async def run(self, work: Callable[[Store], Awaitable[T]]) -> T:
        """Run ``work`` in one transaction and return its result.

        Raises:
            Whatever ``work`` or the commit raised, after rolling back.
        """
        async with self.transaction() as store:
            return await work(store)


__all__ = [
    "Store",
    "TransactionManager",
]
