"""Authentication service: password verification and access tokens.

Passwords are hashed with bcrypt. Access tokens are stateless JWTs signed
with the configured HMAC secret and carry:

    sub    user id
    email  account e-mail
    role   "citizen" or "admin"
    name   display name (may be null)
    iat    issue time
    exp    expiry, token_ttl_days after issue
    type   always "access"

Nothing about issued tokens is kept server-side.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any
from uuid import UUID

import bcrypt
from jose import JWTError, jwt

from petitiondesk.db.models import UserRole
from petitiondesk.services.authz import Principal, RoleClass
from petitiondesk.services.identity import IdentityService, normalize_email
from petitiondesk.services.security_events import (
    AuthOutcome,
    SecurityActor,
    SecurityEventLogger,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from petitiondesk.core.config import AuthSettings
    from petitiondesk.db.models import User

logger = logging.getLogger(__name__)

TOKEN_TYPE_ACCESS = "access"

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72

_REQUIRED_CLAIMS = ("sub", "email", "role", "exp", "type")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class AuthenticationError(Exception):
    """Base exception for authentication failures."""


class InvalidCredentialsError(AuthenticationError):
    """Raised for any failed login; never says which part was wrong."""

    def __init__(self) -> None:
        super().__init__("Invalid email or password")


class AdminRoleRequiredError(AuthenticationError):
    """Raised when valid credentials belong to a non-admin account."""

    def __init__(self) -> None:
        super().__init__("Administrator access required")


class InvalidTokenError(AuthenticationError):
    """Raised when a token fails signature, expiry, type or claim checks."""


class WeakPasswordError(AuthenticationError):
    """Raised when a registration password is too short."""

    def __init__(self, min_length: int) -> None:
        self.min_length = min_length
        super().__init__(f"Password must be at least {min_length} characters")


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(password: str, rounds: int = 12) -> str:
    password_bytes = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    password_bytes = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(password_bytes, password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        logger.warning("Stored password hash could not be parsed")
        return False


# ---------------------------------------------------------------------------
# Token claims
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TokenClaims:
    """Verified contents of an access token."""

    user_id: UUID
    email: str
    role: RoleClass
    name: str | None
    issued_at: datetime | None
    expires_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == RoleClass.ADMIN

    def to_principal(self) -> Principal:
        return Principal(
            principal_id=self.user_id,
            role=self.role,
            email=self.email,
            name=self.name,
        )


@dataclass(frozen=True, slots=True)
class AuthResult:
    """Outcome of a successful login or registration."""

    token: str
    user: User
    expires_at: datetime


def _actor_for(user: User) -> SecurityActor:
    return SecurityActor(actor_id=str(user.user_id), actor_type=user.role.value)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class AuthService:
    """Issues and verifies access tokens and checks passwords.

    Token helpers (issue_token, verify_token) need no database session and
    are used directly by the HTTP middleware.

    Example:
        auth = AuthService(settings.auth, session)
        result = await auth.admin_login("admin@example.com", "correct horse")
        claims = auth.verify_token(result.token)
    """

    def __init__(
        self,
        settings: AuthSettings,
        session: AsyncSession | None = None,
        security_events: SecurityEventLogger | None = None,
    ) -> None:
        self._settings = settings
        self._session = session
        self._events = security_events or SecurityEventLogger()
        self._dummy_hash: str | None = None

    @property
    def _identity(self) -> IdentityService:
        if self._session is None:
            msg = "AuthService was created without a database session"
            raise RuntimeError(msg)
        return IdentityService(self._session)

    def _secret(self) -> str:
        return self._settings.jwt_secret.get_secret_value()

    # -- tokens -------------------------------------------------------------

    def issue_token(self, user: User, *, now: datetime | None = None) -> tuple[str, datetime]:
        """Sign an access token for a user.

        Returns:
            The encoded token and its expiry time.
        """
        issued_at = now or datetime.now(UTC)
        expires_at = issued_at + timedelta(days=self._settings.token_ttl_days)
        claims: dict[str, Any] = {
            "sub": str(user.user_id),
            "email": user.email,
            "role": user.role.value,
            "name": user.name,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
            "type": TOKEN_TYPE_ACCESS,
        }
        token = jwt.encode(claims, self._secret(), algorithm=self._settings.jwt_algorithm)
        return token, expires_at

    def verify_token(self, token: str) -> TokenClaims:
        """Verify a token and return its claims.

        Raises:
            InvalidTokenError: On bad signature, expiry, wrong type or
                missing/malformed claims.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret(),
                algorithms=[self._settings.jwt_algorithm],
            )
        except JWTError as e:
            raise InvalidTokenError("Invalid or expired token") from e

        missing = [claim for claim in _REQUIRED_CLAIMS if payload.get(claim) in (None, "")]
        if missing:
            raise InvalidTokenError(f"Token is missing claims: {', '.join(missing)}")

        if payload["type"] != TOKEN_TYPE_ACCESS:
            raise InvalidTokenError("Invalid token type")

        try:
            user_id = UUID(str(payload["sub"]))
            role = RoleClass(payload["role"])
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=UTC)
            issued_at = (
                datetime.fromtimestamp(int(payload["iat"]), tz=UTC)
                if payload.get("iat") is not None
                else None
            )
        except (TypeError, ValueError) as e:
            raise InvalidTokenError("Token claims are malformed") from e

        return TokenClaims(
            user_id=user_id,
            email=str(payload["email"]),
            role=role,
            name=payload.get("name"),
            issued_at=issued_at,
            expires_at=expires_at,
        )

    # -- credentials --------------------------------------------------------

    def _check_password(self, user: User | None, password: str) -> bool:
        if user is None or user.password_hash is None:
            # Spend the same bcrypt time as a real check
            if self._dummy_hash is None:
                self._dummy_hash = hash_password("", rounds=self._settings.bcrypt_rounds)
            verify_password(password, self._dummy_hash)
            return False
        return verify_password(password, user.password_hash)

    async def _authenticate(self, email: str, password: str, *, admin: bool) -> User:
        user = await self._identity.get_by_email(email)
        if not self._check_password(user, password):
            self._events.log_auth_event(
                actor=SecurityActor(actor_id=normalize_email(email), actor_type="anonymous"),
                outcome=AuthOutcome.FAILURE,
                details={"admin_login": admin},
            )
            raise InvalidCredentialsError
        return user  # type: ignore[return-value]

    async def register(
        self,
        *,
        name: str,
        email: str,
        password: str,
        phone: str | None = None,
    ) -> AuthResult:
        """Create a citizen account and sign it in.

        Raises:
            WeakPasswordError: If the password is shorter than configured.
            EmailAlreadyRegisteredError: If the address is taken, including
                by an account created implicitly through a submission.
        """
        if len(password) < self._settings.min_password_length:
            raise WeakPasswordError(self._settings.min_password_length)

        user = await self._identity.create_user(
            email=email,
            name=name.strip() or None,
            phone=phone.strip() if phone else None,
            password_hash=hash_password(password, rounds=self._settings.bcrypt_rounds),
            role=UserRole.CITIZEN,
        )
        token, expires_at = self.issue_token(user)

        self._events.log_account_created(
            actor=_actor_for(user),
            user_id=str(user.user_id),
            role=user.role.value,
        )
        return AuthResult(token=token, user=user, expires_at=expires_at)

    async def login(self, email: str, password: str) -> AuthResult:
        """Sign in any account with a password.

        Raises:
            InvalidCredentialsError: Unknown email, passwordless account or
                wrong password, indistinguishably.
        """
        user = await self._authenticate(email, password, admin=False)
        token, expires_at = self.issue_token(user)

        self._events.log_auth_event(actor=_actor_for(user), outcome=AuthOutcome.SUCCESS)
        return AuthResult(token=token, user=user, expires_at=expires_at)

    async def admin_login(self, email: str, password: str) -> AuthResult:
        """Sign in an administrator.

        The password is verified before the role so that a wrong password
        never reveals whether the account is an administrator.

        Raises:
            InvalidCredentialsError: As for login.
            AdminRoleRequiredError: If the credentials are valid but the
                account is not an administrator.
        """
        user = await self._authenticate(email, password, admin=True)

        if not user.is_admin:
            self._events.log_auth_event(
                actor=_actor_for(user),
                outcome=AuthOutcome.ROLE_REQUIRED,
                details={"admin_login": True},
            )
            raise AdminRoleRequiredError

        token, expires_at = self.issue_token(user)
        self._events.log_auth_event(
            actor=_actor_for(user),
            outcome=AuthOutcome.SUCCESS,
            details={"admin_login": True},
        )
        return AuthResult(token=token, user=user, expires_at=expires_at)
