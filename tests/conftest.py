# tests/conftest.py
import os

# Keep module import of main from building a MySQL engine or reading a local .env
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from auth.clerk_auth import get_current_user
from config import Settings
from database import Base
from main import create_app

TEST_ISSUER = "https://issuer.test"


@pytest.fixture
def settings() -> Settings:
    return Settings(database_url="sqlite://", clerk_issuer=TEST_ISSUER)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def app(settings, engine):
    return create_app(settings, engine=engine)


@pytest.fixture
def client(app) -> TestClient:
    """Client with authentication bypassed."""
    app.dependency_overrides[get_current_user] = lambda: {"sub": "user_test"}
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_state(client):
    def _make(name: str) -> dict:
        r = client.post("/states", json={"stateName": name})
        assert r.status_code == 201, r.text
        return r.json()

    return _make
