"""
Shared test fixtures.

Sets up an isolated SQLite database so tests never touch the
real database. Tables are created before and dropped after
every test.
"""

import os

# Must be set before chronos_ledger.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("LEDGER_RETRY_BACKOFF_SECONDS", "0.01")

import pytest
from fastapi.testclient import TestClient

from chronos_ledger.main import app
from chronos_ledger.models.base import (
    Base,
    create_db_engine,
    create_session_factory,
    get_db,
)
from chronos_ledger.realtime import ChangeFeed


TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_db_engine(TEST_DATABASE_URL, timeout=15)

TestSessionLocal = create_session_factory(engine)


@pytest.fixture(autouse=True)
def setup_database():
    """
    Create all tables before each test, drop them after.

    autouse=True means every test starts with a clean database.
    """
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory():
    """Factory for tests that need several independent sessions."""
    return TestSessionLocal


@pytest.fixture
def db_session():
    """Provide a database session for direct service testing."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def change_feed():
    """A feed attached to the test sessionmaker, detached afterwards."""
    feed = ChangeFeed()
    feed.attach(TestSessionLocal)
    yield feed
    feed.detach()


@pytest.fixture
def client(db_session, change_feed):
    """
    Provide a test client wired to the test database.

    get_db is overridden so endpoints use the test session, and
    the app's feed and session factory point at the test ones so
    WebSocket subscriptions see the same data.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    original_feed = app.state.change_feed
    original_factory = app.state.session_factory
    app.dependency_overrides[get_db] = override_get_db
    app.state.change_feed = change_feed
    app.state.session_factory = TestSessionLocal
    yield TestClient(app)
    app.dependency_overrides.clear()
    app.state.change_feed = original_feed
    app.state.session_factory = original_factory
