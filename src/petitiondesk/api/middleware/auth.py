"""Bearer token authentication middleware and route dependencies.

This module provides:
- TokenAuthMiddleware: Verifies `Authorization: Bearer` access tokens
- AuthenticatedUser: The caller established from a verified token
- require_authenticated_user / require_admin_user: Route guards (401 / 403)
- optional_authenticated_user: For routes open to anonymous callers

The middleware never rejects a request itself; public routes keep working
with a bad token and the guards decide what a route needs.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING, Annotated, Any

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.middleware.base import BaseHTTPMiddleware

from petitiondesk.api.middleware.errors import AuthenticationError, AuthorizationError
from petitiondesk.services.auth import InvalidTokenError
from petitiondesk.services.authz import Principal, RoleClass

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from uuid import UUID

    from starlette.responses import Response

    from petitiondesk.services.auth import AuthService, TokenClaims

logger = logging.getLogger(__name__)

# Context variable for the current authenticated user
current_user_ctx: ContextVar[AuthenticatedUser | None] = ContextVar("current_user", default=None)

# Bearer token security scheme for OpenAPI docs
bearer_scheme = HTTPBearer(auto_error=False)

BEARER_PREFIX = "bearer "


@dataclass(frozen=True)
class AuthenticatedUser:
    """The caller behind a verified access token.

    Attributes:
        user_id: Account id (token subject)
        email: Account e-mail
        role: citizen or admin
        name: Display name, if any
        expires_at: Token expiry
        ip_address: Request IP address
    """

    user_id: UUID
    email: str
    role: RoleClass
    name: str | None
    expires_at: datetime
    ip_address: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == RoleClass.ADMIN

    @classmethod
    def from_claims(cls, claims: TokenClaims, ip_address: str | None = None) -> AuthenticatedUser:
        return cls(
            user_id=claims.user_id,
            email=claims.email,
            role=claims.role,
            name=claims.name,
            expires_at=claims.expires_at,
            ip_address=ip_address,
        )

    def to_principal(self) -> Principal:
        """Convert to an authz Principal for service calls."""
        return Principal(
            principal_id=self.user_id,
            role=self.role,
            email=self.email,
            name=self.name,
        )


def get_current_user() -> AuthenticatedUser | None:
    """Get the current authenticated user from context."""
    return current_user_ctx.get()


def set_current_user(user: AuthenticatedUser | None) -> None:
    """Set the current authenticated user in context."""
    current_user_ctx.set(user)


def extract_bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header[: len(BEARER_PREFIX)].lower() != BEARER_PREFIX:
        return None
    token = auth_header[len(BEARER_PREFIX) :].strip()
    return token or None


def _get_client_ip(request: Request) -> str | None:
    # First hop of X-Forwarded-For for proxied requests
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


class TokenAuthMiddleware(BaseHTTPMiddleware):
    """Middleware that verifies bearer tokens and sets user context.

    On success the user is placed in a context variable and in
    ``request.state.user``. On failure ``request.state.auth_error`` records
    why, so the route guards can answer with a precise 401.
    """

    def __init__(self, app: Any, *, auth_service: AuthService) -> None:
        """Initialize the middleware.

        Args:
            app: The ASGI application.
            auth_service: Service used to verify tokens (no DB session needed).
        """
        super().__init__(app)
        self._auth_service = auth_service

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        set_current_user(None)
        request.state.user = None
        request.state.auth_error = None

        token = extract_bearer_token(request)
        if token:
            try:
                claims = self._auth_service.verify_token(token)
            except InvalidTokenError as e:
                logger.debug("Bearer token rejected: %s", e)
                request.state.auth_error = "Invalid or expired token"
            else:
                user = AuthenticatedUser.from_claims(claims, _get_client_ip(request))
                set_current_user(user)
                request.state.user = user

        return await call_next(request)


# ---------------------------------------------------------------------------
# FastAPI Dependencies for route-level auth
# ---------------------------------------------------------------------------


async def optional_authenticated_user(request: Request) -> AuthenticatedUser | None:
    """Dependency that returns the authenticated user, or None if anonymous."""
    user = get_current_user()
    if not user:
        user = getattr(request.state, "user", None)
    return user


async def require_authenticated_user(
    request: Request,
    _credentials: Annotated[
        HTTPAuthorizationCredentials | None,
        Depends(bearer_scheme),
    ] = None,
) -> AuthenticatedUser:
    """Dependency that requires a valid bearer token.

    The _credentials parameter documents the scheme in OpenAPI; the token
    itself has already been verified by the middleware.

    Raises:
        AuthenticationError: If no valid token was presented.
    """
    user = await optional_authenticated_user(request)
    if not user:
        message = getattr(request.state, "auth_error", None) or "Authentication required"
        raise AuthenticationError(message)
    return user


async def require_admin_user(
    user: Annotated[AuthenticatedUser, Depends(require_authenticated_user)],
) -> AuthenticatedUser:
    """Dependency that requires an administrator.

    Raises:
        AuthorizationError: If the user is not an admin.
    """
    if not user.is_admin:
        raise AuthorizationError("Administrator access required")
    return user
