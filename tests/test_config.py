"""Tests for configuration management.

Tests cover:
- Loading nested settings from PETITIONDESK_ environment variables
- Field validation (token lifetime, algorithms, log level)
- Production constraints
- Cached accessor and fail-fast behavior
"""

import os

import pytest
from pydantic import ValidationError

from petitiondesk.core.config import (
    DEV_JWT_SECRET,
    AuthSettings,
    ConfigValidationError,
    DatabaseSettings,
    Environment,
    S3Settings,
    Settings,
    validate_settings,
)
from petitiondesk.core.settings import clear_settings_cache, get_settings, get_settings_safe

REQUIRED_ENV = {
    "PETITIONDESK_DATABASE__URL": "postgresql://petitiondesk:secret@db:5432/petitiondesk",
    "PETITIONDESK_S3__ACCESS_KEY": "minio",
    "PETITIONDESK_S3__SECRET_KEY": "minio-secret",
}


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Isolate every test from the caller's environment and any .env file."""
    for name in list(os.environ):
        if name.startswith("PETITIONDESK_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def required_env(monkeypatch):
    for name, value in REQUIRED_ENV.items():
        monkeypatch.setenv(name, value)


def _settings(**overrides) -> Settings:
    values = {
        "database": DatabaseSettings(url="postgresql://u:p@localhost/db"),
        "s3": S3Settings(access_key="k", secret_key="s"),  # noqa: S106
    }
    values.update(overrides)
    return Settings(**values)


class TestEnvironmentLoading:
    """Tests for environment variable loading."""

    def test_loads_nested_sections(self, required_env, monkeypatch):
        monkeypatch.setenv("PETITIONDESK_AUTH__TOKEN_TTL_DAYS", "14")
        monkeypatch.setenv("PETITIONDESK_LIFECYCLE__ENFORCE_FORWARD_TRANSITIONS", "true")
        monkeypatch.setenv("PETITIONDESK_UPLOADS__MAX_ATTACHMENT_BYTES", "2048")

        settings = Settings()

        assert str(settings.database.url).startswith("postgresql://")
        assert settings.s3.access_key.get_secret_value() == "minio"
        assert settings.auth.token_ttl_days == 14
        assert settings.lifecycle.enforce_forward_transitions is True
        assert settings.uploads.max_attachment_bytes == 2048

    def test_defaults(self, required_env):
        settings = Settings()

        assert settings.environment == Environment.DEV
        assert settings.is_development
        assert settings.auth.token_ttl_days == 7
        assert settings.auth.jwt_algorithm == "HS256"
        assert settings.auth.min_password_length == 8
        assert settings.lifecycle.enforce_forward_transitions is False
        assert settings.uploads.max_attachment_bytes == 10 * 1024 * 1024
        assert settings.s3.bucket == "petitiondesk-attachments"


class TestValidation:
    """Tests for field validation."""

    @pytest.mark.parametrize("days", [6, 31])
    def test_token_lifetime_bounds(self, days):
        with pytest.raises(ValidationError):
            AuthSettings(token_ttl_days=days)

    def test_algorithm_is_normalized(self):
        assert AuthSettings(jwt_algorithm="hs512").jwt_algorithm == "HS512"

    def test_asymmetric_algorithm_rejected(self):
        with pytest.raises(ValidationError):
            AuthSettings(jwt_algorithm="RS256")

    def test_log_level(self):
        assert _settings(log_level="debug").log_level == "DEBUG"
        with pytest.raises(ValidationError):
            _settings(log_level="chatty")

    def test_bucket_name_length(self):
        with pytest.raises(ValidationError):
            S3Settings(access_key="k", secret_key="s", bucket="ab")  # noqa: S106

    def test_database_url_must_be_postgres(self):
        with pytest.raises(ValidationError):
            DatabaseSettings(url="mysql://u:p@localhost/db")


class TestProductionConstraints:
    """Tests for production-only checks."""

    def test_default_secret_rejected(self):
        with pytest.raises(ValidationError, match="custom JWT secret"):
            _settings(environment="production")

    def test_short_secret_rejected(self):
        with pytest.raises(ValidationError, match="at least 32 characters"):
            _settings(environment="production", auth=AuthSettings(jwt_secret="too-short"))

    def test_debug_rejected(self):
        with pytest.raises(ValidationError, match="Debug mode"):
            _settings(
                environment="production",
                debug=True,
                auth=AuthSettings(jwt_secret="x" * 40),
            )

    def test_valid_production_settings(self):
        settings = _settings(environment="production", auth=AuthSettings(jwt_secret="x" * 40))
        assert settings.is_production
        assert settings.auth.jwt_secret.get_secret_value() != DEV_JWT_SECRET


class TestPolicySnapshot:
    """Tests for the non-sensitive configuration snapshot."""

    def test_snapshot_has_no_secrets(self):
        snapshot = _settings(auth=AuthSettings(jwt_secret="x" * 40)).get_policy_snapshot()
        assert "x" * 40 not in repr(snapshot)
        assert snapshot["auth"]["token_ttl_days"] == 7

    def test_hash_tracks_policy_changes(self):
        strict = _settings()
        strict.lifecycle.enforce_forward_transitions = True

        assert _settings().get_policy_hash() == _settings().get_policy_hash()
        assert strict.get_policy_hash() != _settings().get_policy_hash()


class TestValidateSettings:
    """Tests for runtime validation."""

    def test_missing_s3_credentials(self):
        settings = _settings(s3=S3Settings(access_key="", secret_key="s"))  # noqa: S106

        with pytest.raises(ConfigValidationError) as exc_info:
            validate_settings(settings)
        assert exc_info.value.field == "s3.access_key"


class TestGetSettings:
    """Tests for the cached accessor."""

    def test_is_cached(self, required_env):
        assert get_settings() is get_settings()

    def test_cache_can_be_cleared(self, required_env, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("PETITIONDESK_AUTH__TOKEN_TTL_DAYS", "30")
        clear_settings_cache()

        second = get_settings()

        assert second is not first
        assert second.auth.token_ttl_days == 30

    def test_invalid_configuration_exits(self):
        """Missing database and S3 settings fail fast."""
        with pytest.raises(SystemExit) as exc_info:
            get_settings()
        assert exc_info.value.code == 1

    def test_safe_accessor_returns_none(self):
        assert get_settings_safe() is None
