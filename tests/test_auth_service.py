"""Tests for the authentication service.

Tests cover:
- bcrypt password hashing
- Access token issue and verification (signature, expiry, type, claims)
- Registration, login and administrator login
- Security events for authentication outcomes
"""

import logging
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from jose import jwt

from petitiondesk.db.models import User, UserRole
from petitiondesk.services.auth import (
    AdminRoleRequiredError,
    AuthService,
    InvalidCredentialsError,
    InvalidTokenError,
    WeakPasswordError,
    hash_password,
    verify_password,
)
from petitiondesk.services.authz import RoleClass
from petitiondesk.services.identity import EmailAlreadyRegisteredError, IdentityService
from petitiondesk.services.security_events import SECURITY_LOGGER_NAME
from tests.factories import (
    ADMIN_EMAIL,
    ADMIN_PASSWORD,
    CITIZEN_EMAIL,
    CITIZEN_PASSWORD,
    TEST_JWT_SECRET,
)


def _transient_user(role: UserRole = UserRole.CITIZEN) -> User:
    return User(user_id=uuid4(), email="asha@example.org", name="Asha", role=role)


@pytest.fixture
def service(settings, db_session) -> AuthService:
    return AuthService(settings.auth, db_session)


class TestPasswordHashing:
    """Tests for bcrypt helpers."""

    def test_round_trip(self):
        hashed = hash_password("correct horse", rounds=4)
        assert hashed.startswith("$2")
        assert verify_password("correct horse", hashed)
        assert not verify_password("wrong horse", hashed)

    def test_hashes_are_salted(self):
        assert hash_password("same", rounds=4) != hash_password("same", rounds=4)

    def test_malformed_hash_is_a_mismatch(self):
        assert not verify_password("anything", "not-a-bcrypt-hash")


class TestTokens:
    """Tests for issue_token and verify_token."""

    def test_claims_round_trip(self, auth_service):
        user = _transient_user(UserRole.ADMIN)

        token, expires_at = auth_service.issue_token(user)
        claims = auth_service.verify_token(token)

        assert claims.user_id == user.user_id
        assert claims.email == "asha@example.org"
        assert claims.role == RoleClass.ADMIN
        assert claims.is_admin
        assert claims.name == "Asha"
        assert claims.expires_at == expires_at.replace(microsecond=0)

    def test_default_expiry_is_seven_days(self, auth_service):
        now = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

        _, expires_at = auth_service.issue_token(_transient_user(), now=now)

        assert expires_at == now + timedelta(days=7)

    def test_payload_carries_access_type(self, auth_service):
        token, _ = auth_service.issue_token(_transient_user())

        payload = jwt.get_unverified_claims(token)

        assert payload["type"] == "access"
        assert payload["role"] == "citizen"
        assert set(payload) == {"sub", "email", "role", "name", "iat", "exp", "type"}

    def test_expired_token_is_rejected(self, auth_service):
        token, _ = auth_service.issue_token(
            _transient_user(), now=datetime.now(UTC) - timedelta(days=8)
        )

        with pytest.raises(InvalidTokenError):
            auth_service.verify_token(token)

    def test_foreign_signature_is_rejected(self, auth_service):
        token = jwt.encode(
            {"sub": str(uuid4()), "email": "x@example.org", "role": "admin", "type": "access",
             "exp": int((datetime.now(UTC) + timedelta(days=1)).timestamp())},
            "some-other-secret",
            algorithm="HS256",
        )

        with pytest.raises(InvalidTokenError):
            auth_service.verify_token(token)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"type": "refresh"},
            {"email": None},
            {"role": "superuser"},
            {"sub": "not-a-uuid"},
        ],
    )
    def test_bad_claims_are_rejected(self, auth_service, overrides):
        claims = {
            "sub": str(uuid4()),
            "email": "x@example.org",
            "role": "admin",
            "type": "access",
            "exp": int((datetime.now(UTC) + timedelta(days=1)).timestamp()),
        }
        claims.update(overrides)
        token = jwt.encode(claims, TEST_JWT_SECRET, algorithm="HS256")

        with pytest.raises(InvalidTokenError):
            auth_service.verify_token(token)

    def test_garbage_is_rejected(self, auth_service):
        with pytest.raises(InvalidTokenError):
            auth_service.verify_token("not.a.token")

    def test_principal_from_claims(self, auth_service):
        user = _transient_user()
        token, _ = auth_service.issue_token(user)

        principal = auth_service.verify_token(token).to_principal()

        assert principal.principal_id == user.user_id
        assert principal.role == RoleClass.CITIZEN

    def test_token_helpers_need_no_session(self, auth_service):
        with pytest.raises(RuntimeError):
            _ = auth_service._identity


class TestRegister:
    """Tests for citizen registration."""

    async def test_creates_citizen_and_returns_token(self, service, db_session):
        result = await service.register(
            name=" Asha ", email="Asha@Example.org", password="long-enough", phone="9876543210"
        )

        assert result.user.email == "asha@example.org"
        assert result.user.name == "Asha"
        assert result.user.role == UserRole.CITIZEN
        assert service.verify_token(result.token).user_id == result.user.user_id

        stored = await IdentityService(db_session).get_by_email("asha@example.org")
        assert stored.password_hash != "long-enough"
        assert verify_password("long-enough", stored.password_hash)

    async def test_short_password_is_rejected(self, service):
        with pytest.raises(WeakPasswordError) as exc_info:
            await service.register(name="Asha", email="asha@example.org", password="short")
        assert exc_info.value.min_length == 8

    async def test_duplicate_email_conflicts(self, service, citizen_user):
        with pytest.raises(EmailAlreadyRegisteredError):
            await service.register(
                name="Other", email=CITIZEN_EMAIL.upper(), password="long-enough"
            )

    async def test_implicit_account_cannot_be_registered(self, service, db_session):
        await IdentityService(db_session).resolve_or_create_owner("asha@example.org")

        with pytest.raises(EmailAlreadyRegisteredError):
            await service.register(name="Asha", email="asha@example.org", password="long-enough")


class TestLogin:
    """Tests for password login."""

    async def test_citizen_login(self, service, citizen_user):
        result = await service.login(CITIZEN_EMAIL, CITIZEN_PASSWORD)

        assert result.user.user_id == citizen_user.user_id
        assert service.verify_token(result.token).role == RoleClass.CITIZEN

    async def test_email_is_case_insensitive(self, service, citizen_user):
        result = await service.login(CITIZEN_EMAIL.upper(), CITIZEN_PASSWORD)
        assert result.user.user_id == citizen_user.user_id

    @pytest.mark.parametrize(
        ("email", "password"),
        [
            (CITIZEN_EMAIL, "wrong-password"),
            ("nobody@example.org", CITIZEN_PASSWORD),
        ],
    )
    async def test_failures_share_one_message(self, service, citizen_user, email, password):
        with pytest.raises(InvalidCredentialsError) as exc_info:
            await service.login(email, password)
        assert str(exc_info.value) == "Invalid email or password"

    async def test_passwordless_account_cannot_log_in(self, service, db_session):
        await IdentityService(db_session).resolve_or_create_owner("asha@example.org")

        with pytest.raises(InvalidCredentialsError):
            await service.login("asha@example.org", "")

    async def test_failure_is_logged(self, service, citizen_user, caplog):
        with (
            caplog.at_level(logging.WARNING, logger=SECURITY_LOGGER_NAME),
            pytest.raises(InvalidCredentialsError),
        ):
            await service.login(CITIZEN_EMAIL, "wrong-password")

        events = [r.security_event for r in caplog.records if hasattr(r, "security_event")]
        assert events[-1]["event_type"] == "auth_failure"
        assert events[-1]["actor"]["actor_id"] == CITIZEN_EMAIL


class TestAdminLogin:
    """Tests for administrator login."""

    async def test_admin_login(self, service, admin_user):
        result = await service.admin_login(ADMIN_EMAIL, ADMIN_PASSWORD)

        assert result.user.user_id == admin_user.user_id
        assert service.verify_token(result.token).is_admin

    async def test_valid_non_admin_credentials_are_forbidden(self, service, citizen_user):
        with pytest.raises(AdminRoleRequiredError):
            await service.admin_login(CITIZEN_EMAIL, CITIZEN_PASSWORD)

    async def test_wrong_password_for_admin_is_invalid_credentials(self, service, admin_user):
        with pytest.raises(InvalidCredentialsError):
            await service.admin_login(ADMIN_EMAIL, "wrong-password")

    async def test_wrong_password_for_citizen_does_not_reveal_role(self, service, citizen_user):
        """The password is checked before the role."""
        with pytest.raises(InvalidCredentialsError):
            await service.admin_login(CITIZEN_EMAIL, "wrong-password")

    async def test_role_refusal_is_logged(self, service, citizen_user, caplog):
        with (
            caplog.at_level(logging.WARNING, logger=SECURITY_LOGGER_NAME),
            pytest.raises(AdminRoleRequiredError),
        ):
            await service.admin_login(CITIZEN_EMAIL, CITIZEN_PASSWORD)

        events = [r.security_event for r in caplog.records if hasattr(r, "security_event")]
        assert events[-1]["outcome"] == "role_required"
