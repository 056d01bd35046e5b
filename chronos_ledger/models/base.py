"""
Database engine, session management, and base model.

This module is the foundation for all database operations.
Every model inherits from Base. Every request gets a session
from get_db().
"""

from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from chronos_ledger.config import get_settings

settings = get_settings()


def utcnow() -> datetime:
    """Naive UTC now; all timestamp columns are stored as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def create_db_engine(url: str, timeout: float) -> Engine:
    """
    Build an engine with explicit timeouts.

    Nothing in the ledger should wait forever: a transfer blocked
    on a row lock gives up after `timeout` seconds and surfaces
    as an error instead of hanging the request.
    """
    if url.startswith("sqlite"):
        # SQLite's busy timeout doubles as the lock-wait timeout
        connect_args = {"check_same_thread": False, "timeout": timeout}
    elif url.startswith("postgresql"):
        millis = int(timeout * 1000)
        connect_args = {
            "connect_timeout": max(1, int(timeout)),
            "options": (
                f"-c statement_timeout={millis} "
                f"-c lock_timeout={millis}"
            ),
        }
    else:
        connect_args = {}

    # pool_pre_ping=True tests connections before using them,
    # which handles a database restart or a stale connection.
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_timeout=timeout,
        connect_args=connect_args,
    )


def create_session_factory(bind: Engine) -> sessionmaker:
    """
    autocommit=False: the ledger decides when a unit of work commits.
    autoflush=False: SQL is only sent when we flush or commit, so a
    rejected operation never leaves half-written rows behind.
    """
    return sessionmaker(
        bind=bind,
        autocommit=False,
        autoflush=False,
    )


engine = create_db_engine(settings.DATABASE_URL, settings.DB_TIMEOUT_SECONDS)

SessionLocal = create_session_factory(engine)


class Base(DeclarativeBase):
    pass


def get_db():
    """
    Provide a database session for a single request.

    The try/finally guarantees the session is closed even when the
    endpoint raises, so connections are never leaked from the pool.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
