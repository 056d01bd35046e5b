"""
Change feed for real-time subscriptions.

Services call mark_changed() while they work; the channels they
touch are kept in Session.info and only published after the
session commits. A rolled-back transaction publishes nothing,
so listeners never see a state that did not happen.

Listeners run synchronously on the thread that committed. They
must return quickly: a slow listener delays the request that
triggered it.
"""

from threading import RLock
from typing import Callable

from sqlalchemy import event
from sqlalchemy.orm import Session, sessionmaker

from chronos_ledger.logging_config import get_logger

logger = get_logger("realtime")

# Session.info key holding the channels touched by the open transaction
PENDING_KEY = "chronos_pending_channels"

INGRESOS = "ingresos"
GASTOS = "gastos"
BANCO = "banco"

Channel = tuple[str, str]


def mark_changed(db: Session, collection: str, banco_id: str) -> None:
    """Record that `collection` of `banco_id` changed in this transaction."""
    db.info.setdefault(PENDING_KEY, set()).add((collection, banco_id))


class ChangeFeed:
    """
    Publish/subscribe registry keyed by (collection, banco_id).

    Attach it to the sessionmaker whose sessions should feed it.
    """

    def __init__(self):
        self._listeners: dict[Channel, list[Callable[[], None]]] = {}
        self._lock = RLock()
        self._attached: list[sessionmaker] = []

    def attach(self, session_factory: sessionmaker) -> None:
        event.listen(session_factory, "after_commit", self._on_commit)
        event.listen(session_factory, "after_rollback", self._on_rollback)
        self._attached.append(session_factory)

    def detach(self) -> None:
        for session_factory in self._attached:
            event.remove(session_factory, "after_commit", self._on_commit)
            event.remove(session_factory, "after_rollback", self._on_rollback)
        self._attached.clear()

    def listen(
        self, channel: Channel, listener: Callable[[], None]
    ) -> Callable[[], None]:
        """
        Register a listener; returns a function that removes it.

        Calling the returned function more than once is harmless.
        """
        with self._lock:
            self._listeners.setdefault(channel, []).append(listener)

        def unlisten() -> None:
            with self._lock:
                listeners = self._listeners.get(channel, [])
                if listener in listeners:
                    listeners.remove(listener)
                if not listeners:
                    self._listeners.pop(channel, None)

        return unlisten

    def listener_count(self, channel: Channel) -> int:
        with self._lock:
            return len(self._listeners.get(channel, []))

    def publish(self, channel: Channel) -> None:
        """
        Call every listener of `channel`.

        A failing listener is logged and skipped; it never stops the
        others and never reaches the session that committed.
        """
        # Copy under the lock so listeners may unsubscribe while running
        with self._lock:
            listeners = list(self._listeners.get(channel, []))
        for listener in listeners:
            try:
                listener()
            except Exception:
                logger.exception("Listener on %s/%s failed", *channel)

    def _on_commit(self, session: Session) -> None:
        channels = session.info.pop(PENDING_KEY, set())
        for channel in sorted(channels):
            logger.debug("Publishing change on %s/%s", *channel)
            self.publish(channel)

    def _on_rollback(self, session: Session) -> None:
        session.info.pop(PENDING_KEY, None)
