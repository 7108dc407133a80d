"""
Shared pytest fixtures.

Every test gets its own app and storage; hashing runs with a low iteration
count so registration stays fast.
"""

import pytest
from fastapi.testclient import TestClient

from notevault.config import Settings
from notevault.main import create_app
from notevault.services import Services

TEST_SECRET = "test-secret-key"


def make_settings(tmp_path, backend: str = "memory", **overrides) -> Settings:
    values = dict(
        SECRET_KEY=TEST_SECRET,
        PASSWORD_HASH_ITERATIONS=1000,
        STORAGE_BACKEND=backend,
        DATABASE_PATH=str(tmp_path / "notevault.db"),
        LOG_LEVEL="WARNING",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture(params=["memory", "sqlite"])
def backend(request):
    return request.param


@pytest.fixture
def settings(tmp_path, backend):
    return make_settings(tmp_path, backend)


@pytest.fixture
def services(settings):
    services = Services(settings)
    yield services
    services.close()


@pytest.fixture
def client(settings, services):
    app = create_app(settings, services=services)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def register(client):
    """Register a user through the API; returns ``(user, auth_headers)``."""

    def _register(name="Alice", email="alice@example.com", password="secret1"):
        res = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
        assert res.status_code == 201, res.text
        data = res.json()["data"]
        return data["user"], {"Authorization": f"Bearer {data['token']}"}

    return _register


@pytest.fixture
def alice(register):
    return register()


@pytest.fixture
def bob(register):
    return register(name="Bob", email="bob@example.com", password="hunter22")
