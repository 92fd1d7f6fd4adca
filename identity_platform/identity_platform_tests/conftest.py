import uuid

import pytest
from fastapi.testclient import TestClient

from identity_platform.identity_platform.auth_service.config import Settings
from identity_platform.identity_platform.auth_service.db import (
    create_db_engine,
    create_session_factory,
    init_db,
)
from identity_platform.identity_platform.auth_service.main import create_app
from identity_platform.identity_platform.auth_service.service import AuthService

TEST_SECRET = "test_secret"
TEST_PASSWORD = "Test123!@#"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}",
        JWT_SECRET=TEST_SECRET,
        JWT_EXPIRY_HOURS=24,
        LOG_DIR=None,
    )


@pytest.fixture
def engine(settings):
    engine = create_db_engine(settings)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def auth_service(session_factory, settings):
    return AuthService(session_factory, settings)


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture
def unique():
    return uuid.uuid4().hex[:8]


@pytest.fixture
def registered(client, unique):
    """Register a fresh user over HTTP and return (request body, response body)."""
    body = {
        "email": f"user_{unique}@example.com",
        "username": f"user_{unique}",
        "password": TEST_PASSWORD,
        "full_name": "Test User",
    }
    response = client.post("/auth/register", json=body)
    assert response.status_code == 201
    return body, response.json()


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
