# conftest.py
# Shared fixtures for the KeliLink API tests
#
# Every test gets a fresh in-memory Firestore/Auth, a fresh in-process rate
# limiter and a fresh DataProtection singleton.

# @see: api/config.py - reset_clients()
# @see: api/limiter.py - set_rate_limiter()

import pytest
from fastapi.testclient import TestClient

from api.config import get_auth, get_db, reset_clients
from api.data_rights import DataProtection
from api.limiter import MemoryCounterStore, RateLimiter, set_rate_limiter
from api.main import app


@pytest.fixture(autouse=True)
def fresh_state():
    """Isolate database, identity, limiter and singleton state per test."""
    reset_clients()
    set_rate_limiter(RateLimiter(MemoryCounterStore()))
    DataProtection._instance = None
    app.dependency_overrides = {}
    yield
    app.dependency_overrides = {}
    set_rate_limiter(None)
    reset_clients()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def db():
    return get_db()


@pytest.fixture
def auth_client():
    return get_auth()


def _register_peddler(
    client: TestClient,
    prefix: str = "/api/peddlers",
    email: str = "budi@example.com",
    password: str = "rahasia123",
    **fields,
):
    payload = {
        "name": "Bakso Pak Budi",
        "email": email,
        "password": password,
        "vendorType": "Bakso",
        "description": "Bakso sapi asli",
        "phone": "",
        **fields,
    }
    return client.post(f"{prefix}/register", json=payload)


def _login(client: TestClient, prefix: str, email: str, password: str = "rahasia123") -> str:
    response = client.post(f"{prefix}/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["token"]


@pytest.fixture
def register_peddler(client):
    """Register an account through the API; returns the response."""
    return lambda **kwargs: _register_peddler(client, **kwargs)


@pytest.fixture
def peddler_token(client, register_peddler):
    """Register and log in a peddler; returns (token, uid)."""
    response = register_peddler()
    assert response.status_code == 201, response.text
    uid = response.json()["peddler"]["id"]
    return _login(client, "/api/peddlers", "budi@example.com"), uid


@pytest.fixture
def login(client):
    return lambda prefix, email, password="rahasia123": _login(client, prefix, email, password)
