"""Shared FastAPI dependencies.

Routers get their database session, settings, object store and services
from here, so tests can swap any of them through app.dependency_overrides.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from petitiondesk.api.middleware.auth import (
    AuthenticatedUser,
    optional_authenticated_user,
    require_admin_user,
    require_authenticated_user,
)
from petitiondesk.core.config import Settings
from petitiondesk.services.auth import AuthService
from petitiondesk.services.lifecycle import PetitionLifecycleService
from petitiondesk.services.petition_codes import PetitionLookupService
from petitiondesk.services.storage import ObjectStoreClient

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session.

    Uses the application's async session factory. Routers commit explicitly.
    """
    from petitiondesk.db import get_async_session

    async with get_async_session() as session:
        yield session


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_storage_client(request: Request) -> ObjectStoreClient:
    """Attachment store shared by the application."""
    return request.app.state.storage


DbSession = Annotated[AsyncSession, Depends(get_db_session)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Storage = Annotated[ObjectStoreClient, Depends(get_storage_client)]

CurrentUser = Annotated[AuthenticatedUser, Depends(require_authenticated_user)]
AdminUser = Annotated[AuthenticatedUser, Depends(require_admin_user)]
OptionalUser = Annotated[AuthenticatedUser | None, Depends(optional_authenticated_user)]


def get_auth_service(db: DbSession, settings: AppSettings) -> AuthService:
    return AuthService(settings.auth, db)


def get_lifecycle_service(
    db: DbSession,
    settings: AppSettings,
    storage: Storage,
) -> PetitionLifecycleService:
    return PetitionLifecycleService(
        db,
        storage=storage,
        enforce_forward_transitions=settings.lifecycle.enforce_forward_transitions,
        max_attachment_bytes=settings.uploads.max_attachment_bytes,
    )


def get_lookup_service(db: DbSession) -> PetitionLookupService:
    return PetitionLookupService(db)


Auth = Annotated[AuthService, Depends(get_auth_service)]
Lifecycle = Annotated[PetitionLifecycleService, Depends(get_lifecycle_service)]
Lookup = Annotated[PetitionLookupService, Depends(get_lookup_service)]
