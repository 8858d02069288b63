"""Error handling middleware for consistent JSON error responses.

Provides a standardized error response format across all API endpoints.
All errors are converted to a consistent JSON structure with:
- error: Error type/code
- message: Human-readable description
- detail: Optional additional information
- request_id: Correlation ID for debugging

This ensures clients can reliably parse error responses regardless
of where in the request lifecycle the error occurred.
"""

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from petitiondesk.api.middleware.request_id import get_request_id

logger = logging.getLogger(__name__)

# Fallback codes for bare HTTP exceptions raised by the framework
_STATUS_ERROR_CODES = {
    400: "validation_error",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    413: "payload_too_large",
}


class APIError(Exception):
    """Base exception for API errors with structured details.

    Use this exception to raise errors with consistent formatting.
    Subclass for specific error categories.
    """

    def __init__(
        self,
        error: str,
        message: str,
        status_code: int = 400,
        detail: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Initialize API error.

        Args:
            error: Machine-readable error code (e.g., "validation_error").
            message: Human-readable error description.
            status_code: HTTP status code to return.
            detail: Optional additional details for debugging.
            headers: Optional response headers (e.g., WWW-Authenticate).
        """
        self.error = error
        self.message = message
        self.status_code = status_code
        self.detail = detail
        self.headers = headers
        super().__init__(message)


class NotFoundError(APIError):
    """Resource not found error (404)."""

    def __init__(
        self, resource: str, identifier: str, detail: dict[str, Any] | None = None
    ) -> None:
        super().__init__(
            error="not_found",
            message=f"{resource} not found: {identifier}",
            status_code=404,
            detail=detail,
        )


class ValidationAPIError(APIError):
    """Request validation error (400)."""

    def __init__(self, message: str, detail: dict[str, Any] | None = None) -> None:
        super().__init__(
            error="validation_error",
            message=message,
            status_code=400,
            detail=detail,
        )


class AuthorizationError(APIError):
    """Authorization/permission error (403)."""

    def __init__(self, message: str, detail: dict[str, Any] | None = None) -> None:
        super().__init__(
            error="forbidden",
            message=message,
            status_code=403,
            detail=detail,
        )


class AuthenticationError(APIError):
    """Authentication error (401)."""

    def __init__(
        self, message: str = "Authentication required", detail: dict[str, Any] | None = None
    ) -> None:
        super().__init__(
            error="unauthorized",
            message=message,
            status_code=401,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class InvalidCredentialsAPIError(APIError):
    """Failed login (401). The message never says which part was wrong."""

    def __init__(self, message: str = "Invalid email or password") -> None:
        super().__init__(
            error="invalid_credentials",
            message=message,
            status_code=401,
        )


class ConflictError(APIError):
    """Resource already exists (409)."""

    def __init__(self, message: str, detail: dict[str, Any] | None = None) -> None:
        super().__init__(
            error="conflict",
            message=message,
            status_code=409,
            detail=detail,
        )


class InvalidTransitionAPIError(APIError):
    """Status change refused by the transition policy (409)."""

    def __init__(self, message: str, detail: dict[str, Any] | None = None) -> None:
        super().__init__(
            error="invalid_transition",
            message=message,
            status_code=409,
            detail=detail,
        )


class InternalAPIError(APIError):
    """Opaque server-side failure (500); the cause is logged, not returned."""

    def __init__(self, message: str = "An internal error occurred") -> None:
        super().__init__(
            error="internal_error",
            message=message,
            status_code=500,
        )


# ---------------------------------------------------------------------------
# Domain error translation
# ---------------------------------------------------------------------------


def _field_detail(exc: Exception) -> dict[str, Any] | None:
    fields = getattr(exc, "fields", None)
    return {"fields": list(fields)} if fields else None


def to_api_error(exc: Exception) -> APIError:
    """Map a service-layer exception onto its API error.

    Unknown exceptions become an opaque internal error; their text is
    logged, never returned.
    """
    from petitiondesk.services.auth import (
        AdminRoleRequiredError,
        InvalidCredentialsError,
        InvalidTokenError,
        WeakPasswordError,
    )
    from petitiondesk.services.authz import ForbiddenError, UnauthorizedError
    from petitiondesk.services.identity import EmailAlreadyRegisteredError
    from petitiondesk.services.lifecycle import InvalidTransitionError
    from petitiondesk.services.petition_codes import (
        PetitionNotFoundError,
        PetitionValidationError,
    )

    if isinstance(exc, APIError):
        return exc
    if isinstance(exc, PetitionValidationError):
        return ValidationAPIError(str(exc), detail=_field_detail(exc))
    if isinstance(exc, WeakPasswordError):
        return ValidationAPIError(str(exc), detail={"fields": ["password"]})
    if isinstance(exc, PetitionNotFoundError):
        return NotFoundError("Petition", exc.code)
    if isinstance(exc, UnauthorizedError | InvalidTokenError):
        return AuthenticationError(str(exc))
    if isinstance(exc, ForbiddenError | AdminRoleRequiredError):
        return AuthorizationError(str(exc))
    if isinstance(exc, InvalidCredentialsError):
        return InvalidCredentialsAPIError(str(exc))
    if isinstance(exc, EmailAlreadyRegisteredError):
        return ConflictError(str(exc))
    if isinstance(exc, InvalidTransitionError):
        return InvalidTransitionAPIError(
            str(exc),
            detail={"from_status": exc.from_state.value, "to_status": exc.to_state.value},
        )

    logger.error("Unhandled service error: %s", exc, exc_info=exc)
    return InternalAPIError()


@contextmanager
def translate_domain_errors() -> Iterator[None]:
    """Re-raise service-layer exceptions as API errors.

    Usage:
        with translate_domain_errors():
            petition = await service.set_status(...)
    """
    try:
        yield
    except APIError:
        raise
    except Exception as exc:
        raise to_api_error(exc) from exc


def build_error_response(
    error: str,
    message: str,
    status_code: int,
    detail: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build a standardized error response.

    Args:
        error: Machine-readable error code.
        message: Human-readable description.
        status_code: HTTP status code.
        detail: Optional additional details.
        headers: Optional response headers.

    Returns:
        JSONResponse with consistent error structure.
    """
    body: dict[str, Any] = {
        "error": error,
        "message": message,
    }

    # Include request ID for correlation
    request_id = get_request_id()
    if request_id:
        body["request_id"] = request_id

    # Include detail if provided
    if detail:
        body["detail"] = detail

    return JSONResponse(status_code=status_code, content=body, headers=headers)


def _validation_detail(errors: list[Any]) -> dict[str, Any]:
    fields = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        if loc:
            fields.append(".".join(loc))
    return {"fields": fields, "errors": [{"loc": e.get("loc"), "msg": e.get("msg")} for e in errors]}


async def _request_validation_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    return build_error_response(
        error="validation_error",
        message="Request validation failed",
        status_code=400,
        detail=_validation_detail(list(exc.errors())),
    )


async def _http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return build_error_response(
        error=_STATUS_ERROR_CODES.get(exc.status_code, "http_error"),
        message=str(exc.detail),
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Route framework-raised errors through the same JSON structure."""
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Middleware that catches exceptions and returns consistent JSON errors.

    Handles:
    - APIError and subclasses: Custom application errors
    - HTTPException: FastAPI's built-in HTTP errors
    - ValidationError: Pydantic validation failures
    - Generic exceptions: Unexpected errors (logged, returns 500)
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        try:
            return await call_next(request)
        except APIError as exc:
            # Custom API errors - use their structure directly
            return build_error_response(
                error=exc.error,
                message=exc.message,
                status_code=exc.status_code,
                detail=exc.detail,
                headers=exc.headers,
            )
        except HTTPException as exc:
            return build_error_response(
                error=_STATUS_ERROR_CODES.get(exc.status_code, "http_error"),
                message=str(exc.detail),
                status_code=exc.status_code,
            )
        except ValidationError as exc:
            # Pydantic validation errors raised outside request parsing
            return build_error_response(
                error="validation_error",
                message="Request validation failed",
                status_code=400,
                detail=_validation_detail(list(exc.errors())),
            )
        except Exception:
            # Unexpected errors - log and return generic 500
            logger.exception(
                "Unexpected error processing request: %s %s",
                request.method,
                request.url.path,
            )
            return build_error_response(
                error="internal_error",
                message="An internal error occurred",
                status_code=500,
            )
