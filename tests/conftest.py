"""Shared fixtures: a file-backed SQLite database per test and an API client bound to it."""

import pytest
from fastapi.testclient import TestClient

from inventory_service.database import build_gateway, get_gateway, init_db
from inventory_service.main import app


@pytest.fixture
def database_url(tmp_path):
    # A file, not :memory:, so that every thread gets its own connection
    return f"sqlite:///{tmp_path / 'inventory.db'}"


@pytest.fixture
def gateway(database_url):
    gateway = build_gateway(database_url, lock_timeout_ms=5000)
    init_db(gateway)
    yield gateway
    gateway.engine.dispose()


@pytest.fixture(name="client")
def client_fixture(gateway):
    """Create a test client whose requests use the test database."""
    app.dependency_overrides[get_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()
