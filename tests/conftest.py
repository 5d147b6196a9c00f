"""
Pytest configuration and fixtures.

Provides reusable fixtures for FastAPI testing:
- app: The FastAPI application instance
- db_session: Session on an in-memory SQLite database, rebuilt per test
- client: TestClient with database, Redis and storage overridden
- admin_user / regular_user: Persisted users with bearer headers
"""

import os

# Settings are cached on first read; point them at SQLite before any app import
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from collections.abc import Generator
from dataclasses import dataclass
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import db.models  # noqa: F401  (register tables)
from apps.api.auth.models import User, UserRole
from apps.api.auth.security import create_access_token, hash_password
from apps.api.db import get_db
from apps.api.redis_client import get_redis
from apps.api.storage import get_storage
from db.base import Base
from packages.shared.storage import LocalFileStorage

TEST_PASSWORD = "SecureTestPass123"


# =============================================================================
# Redis Double
# =============================================================================


class FakePipeline:
    """Pipeline supporting the INCR + EXPIRE pair used by the rate limiter."""

    def __init__(self, store: dict[str, int]):
        self.store = store
        self.ops: list[tuple[str, str]] = []

    def incr(self, key: str) -> "FakePipeline":
        self.ops.append(("incr", key))
        return self

    def expire(self, key: str, seconds: int) -> "FakePipeline":
        self.ops.append(("expire", key))
        return self

    def execute(self) -> list:
        results: list = []
        for op, key in self.ops:
            if op == "incr":
                self.store[key] = self.store.get(key, 0) + 1
                results.append(self.store[key])
            else:
                results.append(True)
        self.ops = []
        return results


class FakeRedis:
    """In-memory stand-in for the few Redis calls the API makes."""

    def __init__(self):
        self.store: dict[str, int] = {}

    def pipeline(self) -> FakePipeline:
        return FakePipeline(self.store)

    def ping(self) -> bool:
        return True


# =============================================================================
# App & Database Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def app() -> FastAPI:
    """Import and return the FastAPI application."""
    from apps.api.main import app as fastapi_app

    return fastapi_app


@pytest.fixture
def test_engine():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> sessionmaker:
    return sessionmaker(bind=test_engine)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def storage(tmp_path) -> LocalFileStorage:
    return LocalFileStorage(str(tmp_path / "uploads"))


@pytest.fixture
def client(
    app: FastAPI,
    session_factory,
    fake_redis: FakeRedis,
    storage: LocalFileStorage,
) -> Generator[TestClient, None, None]:
    """
    TestClient wired to the per-test database, fake Redis and tmp storage.

    Clears dependency_overrides before and after each test.
    """
    app.dependency_overrides.clear()

    def override_get_db() -> Generator[Session, None, None]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    def override_get_redis() -> Generator[FakeRedis, None, None]:
        yield fake_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_storage] = lambda: storage

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def broken_redis() -> MagicMock:
    """Redis client whose every call fails, for fail-open checks."""
    import redis

    mock = MagicMock()
    mock.pipeline.return_value.execute.side_effect = redis.ConnectionError("refused")
    mock.ping.side_effect = redis.ConnectionError("refused")
    return mock


# =============================================================================
# User Fixtures
# =============================================================================


@dataclass
class AuthedUser:
    user: User
    email: str
    password: str
    headers: dict[str, str]


def _make_user(
    db: Session,
    name: str,
    email: str,
    role: UserRole,
    has_access: bool = True,
) -> AuthedUser:
    user = User(
        name=name,
        email=email,
        password_hash=hash_password(TEST_PASSWORD),
        role=role,
        has_access=has_access,
        created_at=datetime.now(UTC),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    token = create_access_token(user.id, role.value)
    return AuthedUser(
        user=user,
        email=email,
        password=TEST_PASSWORD,
        headers={"Authorization": f"Bearer {token}"},
    )


@pytest.fixture
def admin_user(db_session: Session) -> AuthedUser:
    return _make_user(db_session, "Admin", "admin@example.com", UserRole.ADMIN)


@pytest.fixture
def regular_user(db_session: Session) -> AuthedUser:
    return _make_user(db_session, "Coordinator", "coordinator@example.com", UserRole.USER)


@pytest.fixture
def blocked_user(db_session: Session) -> AuthedUser:
    return _make_user(
        db_session, "Blocked", "blocked@example.com", UserRole.USER, has_access=False
    )


@pytest.fixture
def admin_headers(admin_user: AuthedUser) -> dict[str, str]:
    return admin_user.headers


# =============================================================================
# Data Helpers
# =============================================================================


@pytest.fixture
def make_study(client: TestClient, admin_headers):
    """Factory creating studies through the API."""
    counter = {"n": 0}

    def _make(**overrides) -> dict:
        counter["n"] += 1
        payload = {
            "study_name": f"Study {counter['n']}",
            "protocol_number": f"PROT-{counter['n']:03d}",
            "study_title": f"A study of things, part {counter['n']}",
            "study_start_date": "2025-01-01T00:00:00Z",
        }
        payload.update(overrides)
        response = client.post("/api/studies", json=payload, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _make
