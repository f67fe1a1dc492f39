# Set test environment before any application or db imports.
import os

os.environ["TESTING"] = "true"
os.environ["TESTING_DATABASE_URL"] = "sqlite:///:memory:"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from cache_sync.coordinator import SyncCoordinator
from cache_sync.local_cache import LocalCache
from cache_sync.remote_store import InMemoryRemoteStore
from db import SessionLocal, build_engine
from main import app
from models import Base
from models.city import City  # noqa: F401 - register with Base
from models.location import Location  # noqa: F401


def _get_engine():
    """Engine used by the app (in-memory when TESTING=true)."""
    return SessionLocal.kw["bind"]


@pytest.fixture(scope="session")
def engine():
    """One in-memory engine per test run; create tables once."""
    eng = _get_engine()
    Base.metadata.create_all(eng)
    return eng


@pytest.fixture
def db_session(engine):
    """Function-scoped session; each test runs in a transaction that is rolled back."""
    connection = engine.connect()
    trans = connection.begin()
    session = Session(bind=connection)
    session.begin_nested()
    try:
        yield session
    finally:
        session.close()
        if trans.is_active:
            trans.rollback()
        connection.close()


@pytest.fixture
def cache_session_factory():
    """Sessionmaker over a fresh in-memory database (the cache commits, so no shared engine)."""
    eng = build_engine("sqlite:///:memory:")
    Base.metadata.create_all(eng)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=eng)
    finally:
        eng.dispose()


@pytest.fixture
def cache(cache_session_factory):
    return LocalCache(cache_session_factory)


@pytest.fixture
def remote():
    """Remote store seeded with one city and one legacy-shaped location."""
    store = InMemoryRemoteStore()
    store.put_city("c1", {"name": "Antwerp", "imageUrl": "https://img/antwerp.jpg", "latitude": 51.2, "longitude": 4.4})
    store.put_location("c1", "l1", {"name": "Cathedral", "category": "Culture", "latitude": 51.22, "longitude": 4.40})
    return store


@pytest.fixture
def coordinator(remote, cache):
    return SyncCoordinator(remote, cache)


@pytest.fixture
def client(coordinator):
    """API test client wired to the test coordinator; cleared on teardown."""
    app.state.coordinator = coordinator
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.state.coordinator = None
