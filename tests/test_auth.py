"""
Tests for login, profile and logout, plus route authorization.
"""

from fastapi.testclient import TestClient
from sqlalchemy import select

from apps.api.auth.models import ActivityLog, User
from apps.api.auth.security import create_access_token


class TestLogin:
    def test_login_returns_token_and_profile(self, client: TestClient, admin_user) -> None:
        response = client.post(
            "/api/auth/login",
            json={"email": admin_user.email, "password": admin_user.password},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["token"]
        assert data["token_type"] == "bearer"
        assert data["user"]["email"] == admin_user.email
        assert data["user"]["role"] == "admin"
        assert data["user"]["loginCount"] == 1
        assert "password_hash" not in data["user"]

    def test_login_email_is_case_insensitive(self, client: TestClient, admin_user) -> None:
        response = client.post(
            "/api/auth/login",
            json={"email": admin_user.email.upper(), "password": admin_user.password},
        )
        assert response.status_code == 200

    def test_wrong_password_returns_401(self, client: TestClient, admin_user) -> None:
        response = client.post(
            "/api/auth/login",
            json={"email": admin_user.email, "password": "wrong-password"},
        )

        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Invalid credentials"}

    def test_unknown_email_returns_401(self, client: TestClient) -> None:
        response = client.post(
            "/api/auth/login",
            json={"email": "nobody@example.com", "password": "whatever"},
        )
        assert response.status_code == 401

    def test_user_without_access_returns_403(self, client: TestClient, blocked_user) -> None:
        response = client.post(
            "/api/auth/login",
            json={"email": blocked_user.email, "password": blocked_user.password},
        )

        assert response.status_code == 403
        assert response.json()["message"] == "Access denied. Contact administrator."

    def test_login_updates_counters_and_logs(
        self, client: TestClient, admin_user, db_session
    ) -> None:
        for _ in range(2):
            client.post(
                "/api/auth/login",
                json={"email": admin_user.email, "password": admin_user.password},
            )

        db_session.expire_all()
        user = db_session.get(User, admin_user.user.id)
        assert user.login_count == 2
        assert user.last_login is not None
        actions = db_session.execute(
            select(ActivityLog.action).where(ActivityLog.user_id == user.id)
        ).scalars().all()
        assert actions.count("login") == 2

    def test_malformed_email_is_400(self, client: TestClient) -> None:
        response = client.post("/api/auth/login", json={"email": "nope", "password": "x"})

        assert response.status_code == 400
        assert response.json()["message"] == "Validation error"


class TestProfile:
    def test_me_returns_profile_and_activity(self, client: TestClient, admin_user) -> None:
        client.post("/api/auth/logout", headers=admin_user.headers)

        response = client.get("/api/auth/me", headers=admin_user.headers)

        assert response.status_code == 200
        body = response.json()
        assert body["data"]["_id"] == admin_user.user.id
        assert body["activity"][0]["action"] == "logout"

    def test_logout_records_activity(self, client: TestClient, regular_user) -> None:
        response = client.post("/api/auth/logout", headers=regular_user.headers)

        assert response.status_code == 200
        assert response.json()["message"] == "Logged out successfully"


class TestAuthorization:
    def test_missing_token_is_401(self, client: TestClient) -> None:
        response = client.get("/api/studies")

        assert response.status_code == 401
        assert response.json()["message"] == "Not authorized to access this route"

    def test_invalid_token_is_401(self, client: TestClient) -> None:
        response = client.get("/api/studies", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_token_for_deleted_user_is_401(self, client: TestClient) -> None:
        token = create_access_token("0" * 24, "admin")
        response = client.get("/api/studies", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_user_role_can_read(self, client: TestClient, regular_user) -> None:
        assert client.get("/api/studies", headers=regular_user.headers).status_code == 200

    def test_user_role_cannot_mutate(self, client: TestClient, regular_user) -> None:
        response = client.post(
            "/api/study-designs",
            json={"study_design": "Parallel"},
            headers=regular_user.headers,
        )

        assert response.status_code == 403
        assert response.json()["message"] == "User role user is not authorized to access this route"

    def test_revoked_access_blocks_existing_token(
        self, client: TestClient, regular_user, db_session
    ) -> None:
        user = db_session.get(User, regular_user.user.id)
        user.has_access = False
        db_session.commit()

        response = client.get("/api/studies", headers=regular_user.headers)
        assert response.status_code == 403
