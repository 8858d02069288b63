"""Authentication router.

Endpoints:
- POST /auth/register - Create a citizen account and return a token
- POST /auth/login - Password login for any account
- POST /auth/admin/login - Password login restricted to administrators
- GET /auth/verify - Check a bearer token
- GET /auth/admin/verify - Check a bearer token belongs to an administrator

Tokens are stateless; there is no logout endpoint.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, status

from petitiondesk.api.dependencies import AdminUser, Auth, CurrentUser, DbSession
from petitiondesk.api.middleware.auth import AuthenticatedUser  # noqa: TC001
from petitiondesk.api.middleware.errors import translate_domain_errors
from petitiondesk.api.schemas.auth import (
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
    VerifyResponse,
)
from petitiondesk.services.auth import AuthResult  # noqa: TC001

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
    responses={
        400: {"description": "Validation error"},
        401: {"description": "Invalid credentials or token"},
    },
)


def _token_response(result: AuthResult) -> TokenResponse:
    return TokenResponse(
        access_token=result.token,
        expires_at=result.expires_at,
        user=UserResponse.model_validate(result.user),
    )


def _verify_response(user: AuthenticatedUser) -> VerifyResponse:
    return VerifyResponse(
        user_id=user.user_id,
        email=user.email,
        role=user.role.value,
        name=user.name,
        expires_at=user.expires_at,
    )


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a citizen account",
    responses={409: {"description": "Email already registered"}},
)
async def register(body: RegisterRequest, auth: Auth, db: DbSession) -> TokenResponse:
    """Create a citizen account and sign it in.

    An address already used for a petition submission has an account
    without a password and cannot be registered again.
    """
    with translate_domain_errors():
        result = await auth.register(
            name=body.name,
            email=body.email,
            password=body.password,
            phone=body.phone,
        )
    await db.commit()
    return _token_response(result)


@router.post("/login", response_model=TokenResponse, summary="Log in")
async def login(body: LoginRequest, auth: Auth) -> TokenResponse:
    with translate_domain_errors():
        result = await auth.login(body.email, body.password)
    return _token_response(result)


@router.post(
    "/admin/login",
    response_model=TokenResponse,
    summary="Administrator log in",
    responses={403: {"description": "Account is not an administrator"}},
)
async def admin_login(body: LoginRequest, auth: Auth) -> TokenResponse:
    """Log in an administrator.

    Valid credentials for a non-admin account are refused with 403; a wrong
    password is always 401.
    """
    with translate_domain_errors():
        result = await auth.admin_login(body.email, body.password)
    return _token_response(result)


@router.get("/verify", response_model=VerifyResponse, summary="Verify token")
async def verify(user: CurrentUser) -> VerifyResponse:
    return _verify_response(user)


@router.get(
    "/admin/verify",
    response_model=VerifyResponse,
    summary="Verify administrator token",
    responses={403: {"description": "Token does not belong to an administrator"}},
)
async def verify_admin(user: AdminUser) -> VerifyResponse:
    return _verify_response(user)
