"""
Pytest fixtures shared across all test modules.
Uses an in-memory SQLite database with StaticPool so all connections
share a single in-memory DB, no real Postgres or Redis required for tests.
"""

import os

# Set env vars BEFORE any linguaroom module is imported
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["REDIS_URL"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Import app modules AFTER env vars are set
from linguaroom.database import Base, get_db  # noqa: E402
from linguaroom.main import app  # noqa: E402

# Single shared in-memory SQLite engine; StaticPool ensures all
# connections share the same DB instance.
engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def setup_db():
    """Create tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def make_room(client):
    """Factory: create a room through the API and return its JSON."""

    def _make(name="Spanish practice", language_code="es", host_id="host-1", **extra):
        body = {"name": name, "language_code": language_code, "host_id": host_id, **extra}
        resp = client.post("/api/rooms", json=body)
        assert resp.status_code == 201, resp.json()
        return resp.json()

    return _make
