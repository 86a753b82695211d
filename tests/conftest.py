"""
Shared fixtures.

The application is always built with an explicit in-memory datastore, so
no database is needed except for the SQL datastore tests (SQLite via
aiosqlite).
"""

import os

os.environ["DATASTORE_BACKEND"] = "memory"
os.environ["ENV_MODE"] = "development"
os.environ.pop("DASHBOARD_API_KEY", None)

# THEN import anything else
import uuid
from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient

from menuchat.core.config import Settings
from menuchat.main import create_app
from menuchat.schemas import MenuItemView
from menuchat.services.datastore.base import Tenant
from menuchat.services.datastore.memory import MemoryDataStore

ORIGIN = "https://example.com"


def make_settings(**overrides: Any) -> Settings:
    values = {
        "env_mode": "development",
        "datastore_backend": "memory",
        "session_cookie_secure": False,
        "dashboard_api_key": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_item(name: str, **values: Any) -> MenuItemView:
    values.setdefault("id", str(uuid.uuid4()))
    values.setdefault("price_cents", 10000)
    values.setdefault("currency", "SEK")
    return MenuItemView(name=name, **values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def store() -> MemoryDataStore:
    return MemoryDataStore()


@pytest.fixture
def tenant(store: MemoryDataStore) -> Tenant:
    return store.add_tenant(name="Trattoria Test")


@pytest.fixture
def other_tenant(store: MemoryDataStore) -> Tenant:
    return store.add_tenant(name="Curry House")


@pytest.fixture
def client(settings: Settings, store: MemoryDataStore) -> TestClient:
    return TestClient(create_app(settings, store))


@pytest.fixture
def make_client(store: MemoryDataStore) -> Callable[..., TestClient]:
    """Client over the shared store with custom settings."""
    def factory(**overrides: Any) -> TestClient:
        return TestClient(create_app(make_settings(**overrides), store), raise_server_exceptions=False)
    return factory


@pytest.fixture
def session_token(client: TestClient, tenant: Tenant) -> str:
    response = client.post("/sessions", json={"tenantId": tenant.id}, headers={"Origin": ORIGIN})
    assert response.status_code == 200
    return response.json()["data"]["sessionToken"]
