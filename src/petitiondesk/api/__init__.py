"""PetitionDesk API service.

FastAPI application providing:
- Citizen petition submission and tracking
- Administrator review, editing and deletion of petitions
- Password login with stateless bearer tokens

This module provides the app factory pattern for creating configured
FastAPI instances suitable for testing and production deployment.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from petitiondesk.api.middleware import (
    ErrorHandlerMiddleware,
    RequestIDMiddleware,
    TokenAuthMiddleware,
    register_exception_handlers,
)
from petitiondesk.api.routers import (
    admin_router,
    auth_router,
    citizens_router,
    petitions_router,
)
from petitiondesk.services.auth import AuthService
from petitiondesk.services.storage import ObjectStoreClient, StorageError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from petitiondesk.core.config import Settings

logger = logging.getLogger(__name__)

# Application metadata
API_TITLE = "PetitionDesk API"
API_DESCRIPTION = """
Civic grievance petition portal.

## Namespaces

- **/api/petitions** - Submission and tracking (public)
- **/api/auth** - Registration, login and token verification
- **/api/users/me** - A signed-in citizen's own petitions and counts
- **/api/admin/petitions** - Petition management (administrator token)

## Documentation

- OpenAPI spec: `/api/openapi.json`
- Swagger UI: `/api/docs`
- ReDoc: `/api/redoc`
"""


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    storage: ObjectStoreClient = app.state.storage
    try:
        storage.ensure_bucket()
    except StorageError:
        # Submissions without attachments keep working
        logger.exception("Attachment bucket %s is not available", storage.bucket)

    yield

    from petitiondesk.db import close_engine

    await close_engine()


def create_app(
    settings: Settings | None = None,
    *,
    storage: ObjectStoreClient | None = None,
) -> FastAPI:
    """Create and configure a FastAPI application instance.

    This factory function creates a fully configured FastAPI app with:
    - API routers mounted under /api
    - Request ID middleware for log correlation
    - Error handling middleware for consistent JSON responses
    - Bearer token middleware
    - CORS middleware (origins from settings)
    - OpenAPI documentation at /api/docs and /api/redoc

    Args:
        settings: Optional Settings instance. Loaded from the environment
            when omitted.
        storage: Optional attachment store; built from settings.s3 when
            omitted.

    Returns:
        Configured FastAPI application ready to serve requests.

    Example:
        app = create_app()

        # For testing
        app = create_app(test_settings, storage=moto_backed_client)
    """
    if settings is None:
        from petitiondesk.core.settings import get_settings

        settings = get_settings()

    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=settings.app_version,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=_lifespan,
    )

    # Store shared objects in app state for access in dependencies
    app.state.settings = settings
    app.state.storage = storage or ObjectStoreClient.from_settings(settings.s3)

    register_exception_handlers(app)
    _add_middleware(app, settings)
    _include_routers(app)

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint for container orchestration."""
        return {"status": "healthy"}

    logger.info("PetitionDesk API application created (version=%s)", settings.app_version)

    return app


def _add_middleware(app: FastAPI, settings: Settings) -> None:
    """Add middleware to the application.

    The last middleware added is the outermost. Resulting order, outside in:
    CORS, request ID, error handler, token auth.
    """
    app.add_middleware(TokenAuthMiddleware, auth_service=AuthService(settings.auth))
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )


def _include_routers(app: FastAPI) -> None:
    app.include_router(auth_router, prefix="/api")
    app.include_router(petitions_router, prefix="/api")
    app.include_router(citizens_router, prefix="/api")
    app.include_router(admin_router, prefix="/api")
