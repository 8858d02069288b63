"""Tests for the authentication endpoints.

Tests cover:
- Registration (token issued, duplicates, weak passwords)
- Login and administrator login outcomes
- Token verification for any user and for administrators
"""

from datetime import UTC, datetime, timedelta

from petitiondesk.services.identity import IdentityService
from tests.factories import (
    ADMIN_EMAIL,
    ADMIN_PASSWORD,
    CITIZEN_EMAIL,
    CITIZEN_PASSWORD,
    bearer,
)


class TestRegister:
    """Tests for POST /api/auth/register."""

    async def test_register_returns_token(self, api_client):
        response = await api_client.post(
            "/api/auth/register",
            json={
                "name": "Asha",
                "email": "asha@example.org",
                "password": "long-enough",
                "phone": "9876543210",
            },
        )

        assert response.status_code == 201
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["user"]["email"] == "asha@example.org"
        assert body["user"]["role"] == "citizen"
        assert "password_hash" not in body["user"]

        verify = await api_client.get("/api/auth/verify", headers=bearer(body["access_token"]))
        assert verify.status_code == 200
        assert verify.json()["user_id"] == body["user"]["user_id"]

    async def test_register_persists_account(self, api_client, session_factory):
        await api_client.post(
            "/api/auth/register",
            json={"name": "Asha", "email": "asha@example.org", "password": "long-enough"},
        )

        async with session_factory() as session:
            user = await IdentityService(session).get_by_email("asha@example.org")
        assert user is not None

    async def test_duplicate_email_is_409(self, api_client, citizen_user):
        response = await api_client.post(
            "/api/auth/register",
            json={"name": "Other", "email": CITIZEN_EMAIL, "password": "long-enough"},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    async def test_weak_password_is_400(self, api_client):
        response = await api_client.post(
            "/api/auth/register",
            json={"name": "Asha", "email": "asha@example.org", "password": "short"},
        )

        assert response.status_code == 400
        assert response.json()["detail"]["fields"] == ["password"]

    async def test_role_cannot_be_chosen(self, api_client):
        response = await api_client.post(
            "/api/auth/register",
            json={
                "name": "Asha",
                "email": "asha@example.org",
                "password": "long-enough",
                "role": "admin",
            },
        )

        assert response.status_code == 400


class TestLogin:
    """Tests for POST /api/auth/login."""

    async def test_citizen_login(self, api_client, citizen_user):
        response = await api_client.post(
            "/api/auth/login", json={"email": CITIZEN_EMAIL, "password": CITIZEN_PASSWORD}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["user"]["user_id"] == str(citizen_user.user_id)
        expires_at = datetime.fromisoformat(body["expires_at"])
        assert expires_at > datetime.now(UTC) + timedelta(days=6)

    async def test_wrong_password_and_unknown_email_look_alike(self, api_client, citizen_user):
        wrong_password = await api_client.post(
            "/api/auth/login", json={"email": CITIZEN_EMAIL, "password": "wrong-password"}
        )
        unknown_email = await api_client.post(
            "/api/auth/login", json={"email": "nobody@example.org", "password": "whatever"}
        )

        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json()["error"] == unknown_email.json()["error"] == "invalid_credentials"
        assert wrong_password.json()["message"] == unknown_email.json()["message"]


class TestAdminLogin:
    """Tests for POST /api/auth/admin/login."""

    async def test_admin_gets_token(self, api_client, admin_user):
        response = await api_client.post(
            "/api/auth/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
        )

        assert response.status_code == 200
        token = response.json()["access_token"]
        verify = await api_client.get("/api/auth/admin/verify", headers=bearer(token))
        assert verify.status_code == 200
        assert verify.json()["role"] == "admin"

    async def test_non_admin_with_correct_password_is_403(self, api_client, citizen_user):
        response = await api_client.post(
            "/api/auth/admin/login", json={"email": CITIZEN_EMAIL, "password": CITIZEN_PASSWORD}
        )

        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    async def test_admin_with_wrong_password_is_401(self, api_client, admin_user):
        response = await api_client.post(
            "/api/auth/admin/login", json={"email": ADMIN_EMAIL, "password": "wrong-password"}
        )

        assert response.status_code == 401
        assert response.json()["error"] == "invalid_credentials"


class TestVerify:
    """Tests for GET /api/auth/verify and /api/auth/admin/verify."""

    async def test_verify_returns_claims(self, api_client, citizen_headers, citizen_user):
        response = await api_client.get("/api/auth/verify", headers=citizen_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["valid"] is True
        assert body["email"] == CITIZEN_EMAIL
        assert body["role"] == "citizen"
        assert body["name"] == citizen_user.name

    async def test_missing_token_is_401(self, api_client):
        response = await api_client.get("/api/auth/verify")

        assert response.status_code == 401
        assert response.json()["message"] == "Authentication required"

    async def test_invalid_token_is_401(self, api_client):
        response = await api_client.get("/api/auth/verify", headers=bearer("garbage"))

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"

    async def test_expired_token_is_401(self, api_client, auth_service, citizen_user):
        token, _ = auth_service.issue_token(
            citizen_user, now=datetime.now(UTC) - timedelta(days=30)
        )

        response = await api_client.get("/api/auth/verify", headers=bearer(token))

        assert response.status_code == 401

    async def test_non_bearer_scheme_is_ignored(self, api_client, auth_service, citizen_user):
        token, _ = auth_service.issue_token(citizen_user)

        response = await api_client.get(
            "/api/auth/verify", headers={"Authorization": f"Basic {token}"}
        )

        assert response.status_code == 401

    async def test_admin_verify_refuses_citizen(self, api_client, citizen_headers):
        response = await api_client.get("/api/auth/admin/verify", headers=citizen_headers)

        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"
