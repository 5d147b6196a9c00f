"""
Rate limiting tests.

Counters live in the FakeRedis from conftest, so windows never roll over
during a test.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from apps.api.auth.models import ActivityLog
from apps.api.config import get_settings
from apps.api.ratelimit import check_rate_limit
from apps.api.redis_client import get_redis


@pytest.fixture
def low_limits(monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "rate_limit_requests", 3)
    monkeypatch.setattr(settings, "rate_limit_auth_requests", 2)
    return settings


class TestCheckRateLimit:
    def test_counts_up_to_limit(self, fake_redis) -> None:
        results = [check_rate_limit(fake_redis, "ratelimit:test", 2, 60) for _ in range(3)]

        assert [r.allowed for r in results] == [True, True, False]
        assert [r.remaining for r in results] == [1, 0, 0]
        assert results[2].retry_after is not None
        assert 0 < results[2].retry_after <= 60

    def test_keys_are_independent(self, fake_redis) -> None:
        check_rate_limit(fake_redis, "ratelimit:a", 1, 60)

        assert check_rate_limit(fake_redis, "ratelimit:b", 1, 60).allowed is True


class TestApiLimits:
    def test_default_tier_blocks_after_limit(
        self, client: TestClient, admin_headers, low_limits
    ) -> None:
        for _ in range(3):
            assert client.get("/api/studies", headers=admin_headers).status_code == 200

        response = client.get("/api/studies", headers=admin_headers)

        assert response.status_code == 429
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Too many requests from this client, please try again later."
        assert body["limit"] == 3
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert "Retry-After" in response.headers

    def test_users_have_separate_buckets(
        self, client, admin_headers, regular_user, low_limits
    ) -> None:
        for _ in range(4):
            client.get("/api/studies", headers=admin_headers)

        assert client.get("/api/studies", headers=regular_user.headers).status_code == 200

    def test_remaining_header_counts_down(self, client, admin_headers, low_limits) -> None:
        first = client.get("/api/studies", headers=admin_headers)
        second = client.get("/api/studies", headers=admin_headers)

        assert first.headers["X-RateLimit-Limit"] == "3"
        assert first.headers["X-RateLimit-Remaining"] == "2"
        assert second.headers["X-RateLimit-Remaining"] == "1"

    def test_login_has_its_own_stricter_tier(self, client, admin_user, low_limits) -> None:
        payload = {"email": admin_user.email, "password": "wrong-password"}

        statuses = [client.post("/api/auth/login", json=payload).status_code for _ in range(3)]

        assert statuses == [401, 401, 429]

    def test_audit_and_bucket_share_client_ip(
        self, client, admin_user, fake_redis, db_session
    ) -> None:
        response = client.post(
            "/api/auth/login",
            json={"email": admin_user.email, "password": admin_user.password},
            headers={"X-Real-IP": "203.0.113.9"},
        )
        assert response.status_code == 200

        assert fake_redis.store
        assert all(key.startswith("ratelimit:ip:203.0.113.9:") for key in fake_redis.store)
        logged_ips = db_session.execute(
            select(ActivityLog.ip_address).where(ActivityLog.action == "login")
        ).scalars().all()
        assert logged_ips == ["203.0.113.9"]

    def test_fails_open_when_redis_is_down(
        self, app, client, admin_headers, broken_redis, low_limits
    ) -> None:
        app.dependency_overrides[get_redis] = lambda: broken_redis

        statuses = {client.get("/api/studies", headers=admin_headers).status_code for _ in range(5)}

        assert statuses == {200}
