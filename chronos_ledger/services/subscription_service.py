"""
Subscription service: real-time views of a banco's movements.

A subscription delivers the full current list immediately and
then again after every committed change to that list, the way a
live query would. Each snapshot is loaded in its own short
session so it only ever reflects committed data.

Every subscribe_* call returns an unsubscribe function. Until it
is called the listener stays registered for the lifetime of the
ChangeFeed.
"""

from typing import Callable

from sqlalchemy.orm import sessionmaker

from chronos_ledger.config import get_settings
from chronos_ledger.logging_config import get_logger
from chronos_ledger.models.banco import Banco
from chronos_ledger.realtime import BANCO, GASTOS, INGRESOS, ChangeFeed
from chronos_ledger.schemas.banco import BancoResponse
from chronos_ledger.schemas.movimiento import MovimientoResponse
from chronos_ledger.services.banco_service import BancoService
from chronos_ledger.services.ledger_service import LedgerService

logger = get_logger("subscriptions")

ErrorHandler = Callable[[Exception], None]


class SubscriptionService:

    def __init__(
        self,
        feed: ChangeFeed,
        session_factory: sessionmaker,
        limit: int | None = None,
    ):
        self.feed = feed
        self.session_factory = session_factory
        self.limit = get_settings().SUBSCRIPTION_LIMIT if limit is None else limit

    def subscribe_to_ingresos(
        self,
        banco_id: str,
        callback: Callable[[list[MovimientoResponse]], None],
        on_error: ErrorHandler | None = None,
    ) -> Callable[[], None]:
        """Live list of a banco's income, newest first."""
        return self._subscribe(
            (INGRESOS, banco_id),
            lambda db: [
                MovimientoResponse.model_validate(m)
                for m in LedgerService(db).get_ingresos(banco_id, self.limit)
            ],
            callback,
            on_error,
        )

    def subscribe_to_gastos(
        self,
        banco_id: str,
        callback: Callable[[list[MovimientoResponse]], None],
        on_error: ErrorHandler | None = None,
    ) -> Callable[[], None]:
        """Live list of a banco's expenses, newest first."""
        return self._subscribe(
            (GASTOS, banco_id),
            lambda db: [
                MovimientoResponse.model_validate(m)
                for m in LedgerService(db).get_gastos(banco_id, self.limit)
            ],
            callback,
            on_error,
        )

    def subscribe_to_banco(
        self,
        banco_id: str,
        callback: Callable[[BancoResponse | None], None],
        on_error: ErrorHandler | None = None,
    ) -> Callable[[], None]:
        """Live view of one banco's record, including its capital."""

        def load(db) -> BancoResponse | None:
            banco = db.get(Banco, banco_id)
            return BancoResponse.model_validate(banco) if banco else None

        return self._subscribe((BANCO, banco_id), load, callback, on_error)

    def _subscribe(self, channel, load, callback, on_error):
        collection, banco_id = channel

        # Fail fast on an unknown banco instead of listening forever
        with self.session_factory() as db:
            BancoService(db).require_banco(banco_id)

        def deliver() -> None:
            # Runs inside the committing session's after_commit hook, so
            # nothing may escape: the write has already been committed.
            try:
                with self.session_factory() as db:
                    snapshot = load(db)
                callback(snapshot)
            except Exception as exc:
                logger.exception(
                    "Could not deliver %s snapshot", collection,
                    extra={"banco_id": banco_id, "action": "snapshot"},
                )
                if on_error is not None:
                    on_error(exc)

        unlisten = self.feed.listen(channel, deliver)
        deliver()
        logger.debug(
            "Subscribed to %s", collection,
            extra={"banco_id": banco_id, "action": "subscribe"},
        )
        return unlisten
