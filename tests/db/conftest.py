"""
Fixtures for persistence tests.

Each test gets a fresh in-memory SQLite database with the Booking and
Shipment tables, and the DateTz ORM listeners registered.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from datetz.db.base import Base
from datetz.db.listeners import register_datetz_listeners, unregister_datetz_listeners
from tests.db import models  # noqa: F401  (registers the tables on Base)


@pytest.fixture(autouse=True, scope="session")
def _datetz_listeners():
    register_datetz_listeners()
    yield
    unregister_datetz_listeners()


@pytest.fixture
def engine():
    # StaticPool: every session shares the one in-memory database.
    engine = create_engine(
        "sqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def fresh_session(session_factory):
    """Opens a second session on the same database, with an empty identity map."""
    return session_factory
