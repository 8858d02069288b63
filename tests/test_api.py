"""Tests for PetitionDesk API application structure.

Tests cover:
- App factory (create_app)
- Health endpoint
- Request ID middleware
- Error handling middleware and domain error translation
- OpenAPI documentation endpoints
"""

import uuid

import pytest
from fastapi import FastAPI

from petitiondesk.api import create_app
from petitiondesk.api.middleware.errors import (
    APIError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    InternalAPIError,
    InvalidCredentialsAPIError,
    InvalidTransitionAPIError,
    NotFoundError,
    ValidationAPIError,
    to_api_error,
    translate_domain_errors,
)
from petitiondesk.api.middleware.request_id import REQUEST_ID_HEADER
from petitiondesk.db.models import PetitionStatus
from petitiondesk.services.auth import (
    AdminRoleRequiredError,
    InvalidCredentialsError,
    InvalidTokenError,
    WeakPasswordError,
)
from petitiondesk.services.authz import ForbiddenError, UnauthorizedError
from petitiondesk.services.identity import EmailAlreadyRegisteredError
from petitiondesk.services.lifecycle import InvalidStatusError, InvalidTransitionError
from petitiondesk.services.petition_codes import (
    InvalidPetitionCodeError,
    PetitionNotFoundError,
    PetitionValidationError,
)
from petitiondesk.services.storage import StorageError


class TestAppFactory:
    """Tests for the create_app factory function."""

    def test_create_app_returns_fastapi_instance(self, test_app):
        assert isinstance(test_app, FastAPI)

    def test_metadata(self, test_app, settings):
        assert test_app.title == "PetitionDesk API"
        assert test_app.version == settings.app_version
        assert test_app.docs_url == "/api/docs"
        assert test_app.openapi_url == "/api/openapi.json"

    def test_state_holds_settings_and_storage(self, test_app, settings, storage):
        assert test_app.state.settings is settings
        assert test_app.state.storage is storage

    def test_builds_storage_from_settings(self, settings):
        app = create_app(settings)
        assert app.state.storage.bucket == settings.s3.bucket

    def test_routes_are_mounted(self, test_app):
        paths = {route.path for route in test_app.routes}
        assert {
            "/health",
            "/api/auth/login",
            "/api/auth/admin/login",
            "/api/auth/register",
            "/api/auth/verify",
            "/api/petitions",
            "/api/petitions/track",
            "/api/admin/petitions",
            "/api/admin/petitions/stats",
            "/api/admin/petitions/{code}",
            "/api/admin/petitions/{code}/status",
            "/api/users/me/petitions",
            "/api/users/me/petitions/summary",
        } <= paths


class TestHealthAndDocs:
    """Tests for health and OpenAPI endpoints."""

    async def test_health(self, api_client):
        response = await api_client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    async def test_openapi_schema(self, api_client):
        response = await api_client.get("/api/openapi.json")
        assert response.status_code == 200
        assert "/api/petitions/track" in response.json()["paths"]


class TestRequestID:
    """Tests for the request ID middleware."""

    async def test_generates_request_id(self, api_client):
        response = await api_client.get("/health")
        uuid.UUID(response.headers[REQUEST_ID_HEADER])

    async def test_preserves_acceptable_request_id(self, api_client):
        response = await api_client.get("/health", headers={REQUEST_ID_HEADER: "trace-123"})
        assert response.headers[REQUEST_ID_HEADER] == "trace-123"

    async def test_replaces_unacceptable_request_id(self, api_client):
        response = await api_client.get("/health", headers={REQUEST_ID_HEADER: "bad id!" * 40})
        assert response.headers[REQUEST_ID_HEADER] != "bad id!" * 40
        uuid.UUID(response.headers[REQUEST_ID_HEADER])

    async def test_error_body_carries_request_id(self, api_client):
        response = await api_client.get(
            "/api/admin/petitions", headers={REQUEST_ID_HEADER: "trace-401"}
        )
        assert response.status_code == 401
        assert response.json()["request_id"] == "trace-401"


class TestErrorFormat:
    """Tests for the structured error body."""

    async def test_unknown_route(self, api_client):
        response = await api_client.get("/api/nowhere")

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "not_found"
        assert "request_id" in body

    async def test_request_validation_is_400(self, api_client):
        response = await api_client.post("/api/auth/login", json={"email": "not-an-email"})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert set(body["detail"]["fields"]) == {"email", "password"}

    async def test_unauthenticated_has_challenge_header(self, api_client):
        response = await api_client.get("/api/auth/verify")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["error"] == "unauthorized"


class TestDomainErrorTranslation:
    """Tests for mapping service exceptions onto API errors."""

    @pytest.mark.parametrize(
        ("exc", "api_cls", "status_code", "error"),
        [
            (PetitionValidationError("bad", ["name"]), ValidationAPIError, 400, "validation_error"),
            (InvalidPetitionCodeError("x"), ValidationAPIError, 400, "validation_error"),
            (InvalidStatusError("closed"), ValidationAPIError, 400, "validation_error"),
            (WeakPasswordError(8), ValidationAPIError, 400, "validation_error"),
            (PetitionNotFoundError("PET000001"), NotFoundError, 404, "not_found"),
            (UnauthorizedError("no"), AuthenticationError, 401, "unauthorized"),
            (InvalidTokenError("bad"), AuthenticationError, 401, "unauthorized"),
            (ForbiddenError("no"), AuthorizationError, 403, "forbidden"),
            (AdminRoleRequiredError(), AuthorizationError, 403, "forbidden"),
            (InvalidCredentialsError(), InvalidCredentialsAPIError, 401, "invalid_credentials"),
            (EmailAlreadyRegisteredError("a@example.org"), ConflictError, 409, "conflict"),
            (
                InvalidTransitionError(PetitionStatus.RESOLVED, PetitionStatus.PENDING),
                InvalidTransitionAPIError,
                409,
                "invalid_transition",
            ),
        ],
    )
    def test_mapping(self, exc, api_cls, status_code, error):
        api_error = to_api_error(exc)

        assert isinstance(api_error, api_cls)
        assert api_error.status_code == status_code
        assert api_error.error == error

    def test_validation_fields_are_kept(self):
        api_error = to_api_error(PetitionValidationError("bad", ["name", "phone"]))
        assert api_error.detail == {"fields": ["name", "phone"]}

    def test_storage_failure_is_opaque(self):
        api_error = to_api_error(StorageError("s3://secret-bucket unreachable"))

        assert isinstance(api_error, InternalAPIError)
        assert "secret-bucket" not in api_error.message

    def test_context_manager_reraises_api_errors(self):
        original = APIError("custom", "Custom", 418)

        with pytest.raises(APIError) as exc_info, translate_domain_errors():
            raise original

        assert exc_info.value is original

    def test_context_manager_chains_cause(self):
        with pytest.raises(NotFoundError) as exc_info, translate_domain_errors():
            raise PetitionNotFoundError("PET000001")

        assert isinstance(exc_info.value.__cause__, PetitionNotFoundError)
