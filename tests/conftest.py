from datetime import date

import pytest
from fastapi.testclient import TestClient

from catalog import CatalogStore
from main import app, get_catalog, get_sessions
from session import SessionRegistry, StoreSession
from storage import MemoryStorage
from tests.helpers import FakeDb


@pytest.fixture
def today():
    return date(2026, 3, 2)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def session(storage):
    return StoreSession(storage)


@pytest.fixture
def fake_db():
    return FakeDb()


@pytest.fixture
def client(fake_db):
    stores = {}
    registry = SessionRegistry(lambda sid: stores.setdefault(sid, MemoryStorage()))
    app.dependency_overrides[get_catalog] = lambda: CatalogStore(fake_db)
    app.dependency_overrides[get_sessions] = lambda: registry
    yield TestClient(app)
    app.dependency_overrides.clear()
