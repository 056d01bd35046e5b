"""
Transaction runner for ledger-mutating operations.

Every operation that changes capital runs as one unit of work:
read, check, write, commit. If another transaction changed the
same banco between our read and our write, the database (row
lock) or the ORM (version check) refuses the write; we roll
back and run the whole unit again from a fresh read. The funds
check therefore always sees the balance it is writing against.
"""

import time
from typing import Callable, TypeVar

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from chronos_ledger.exceptions import TransactionConflictError
from chronos_ledger.logging_config import get_logger

logger = get_logger("unit_of_work")

T = TypeVar("T")

# serialization_failure, deadlock_detected
PG_CONFLICT_CODES = {"40001", "40P01"}


def is_conflict(exc: BaseException) -> bool:
    """True for errors that mean "someone else wrote first, try again"."""
    if isinstance(exc, StaleDataError):
        return True
    if isinstance(exc, DBAPIError):
        if getattr(exc.orig, "pgcode", None) in PG_CONFLICT_CODES:
            return True
        if "database is locked" in str(exc.orig):
            return True
    return False


def run_transaction(
    db: Session,
    work: Callable[[], T],
    max_retries: int = 3,
    backoff_seconds: float = 0.05,
) -> T:
    """
    Run `work` and commit, retrying on write conflicts.

    `work` must do all of its reads through `db` so that a retry
    sees fresh state. Any error rolls the session back. Conflicts
    are retried up to `max_retries` times, then raised as
    TransactionConflictError; every other error propagates as is.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            result = work()
            db.commit()
            return result
        except Exception as exc:
            db.rollback()
            if not is_conflict(exc):
                raise
            if attempt > max_retries:
                logger.error(
                    "Giving up after %d attempts: %s", attempt, exc,
                    extra={"action": "transaction_conflict"},
                )
                raise TransactionConflictError(attempt) from exc
            logger.warning(
                "Write conflict on attempt %d, retrying: %s", attempt, exc,
                extra={"action": "transaction_retry"},
            )
            time.sleep(backoff_seconds * attempt)
