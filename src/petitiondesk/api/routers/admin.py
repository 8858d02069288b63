"""Administrator petition router.

All endpoints require an administrator bearer token.

Endpoints:
- GET /admin/petitions - Filtered, paginated listing
- GET /admin/petitions/stats - Counters for the dashboard
- GET /admin/petitions/{code} - Single petition
- PATCH /admin/petitions/{code}/status - Change status and remarks
- PUT /admin/petitions/{code} - Edit submitter fields
- DELETE /admin/petitions/{code} - Delete a petition and its attachment
"""

from __future__ import annotations

import logging
from datetime import date  # noqa: TC003
from typing import Annotated

from fastapi import APIRouter, Query

from petitiondesk.api.dependencies import AdminUser, DbSession, Lifecycle, Lookup
from petitiondesk.api.middleware.errors import translate_domain_errors
from petitiondesk.api.schemas.petitions import (
    AdminPetitionResponse,
    DeletionResponse,
    PetitionEditRequest,
    PetitionListResponse,
    PetitionStatsResponse,
    StatusUpdateRequest,
)
from petitiondesk.db.models import PetitionCategory, PetitionStatus  # noqa: TC001
from petitiondesk.services.petition_codes import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    PetitionFilters,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/petitions",
    tags=["admin"],
    responses={
        401: {"description": "Admin authentication required"},
        403: {"description": "Administrator role required"},
    },
)


@router.get("", response_model=PetitionListResponse, summary="List petitions")
async def list_petitions(
    admin: AdminUser,
    lookup: Lookup,
    q: Annotated[str | None, Query(max_length=200, description="Search code, name, title, phone, email")] = None,
    category: PetitionCategory | None = None,
    status: PetitionStatus | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    offset: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_PAGE_SIZE,
) -> PetitionListResponse:
    """List petitions newest first. Date bounds are inclusive whole days (UTC)."""
    filters = PetitionFilters(
        q=q,
        category=category,
        status=status,
        date_from=date_from,
        date_to=date_to,
        offset=offset,
        limit=limit,
    )
    with translate_domain_errors():
        page = await lookup.list_all(filters, admin.to_principal())

    return PetitionListResponse(
        items=[AdminPetitionResponse.model_validate(p) for p in page.items],
        total=page.total,
        offset=offset,
        limit=limit,
    )


@router.get("/stats", response_model=PetitionStatsResponse, summary="Petition counters")
async def petition_stats(admin: AdminUser, service: Lifecycle) -> PetitionStatsResponse:
    with translate_domain_errors():
        stats = await service.get_stats(actor=admin.to_principal())
    return PetitionStatsResponse(
        total=stats.total,
        pending=stats.pending,
        review=stats.review,
        resolved=stats.resolved,
        rejected=stats.rejected,
    )


@router.get(
    "/{code}",
    response_model=AdminPetitionResponse,
    summary="Get a petition",
    responses={404: {"description": "Petition not found"}},
)
async def get_petition(code: str, admin: AdminUser, lookup: Lookup) -> AdminPetitionResponse:
    with translate_domain_errors():
        petition = await lookup.get_by_code(code, admin.to_principal())
    return AdminPetitionResponse.model_validate(petition)


@router.patch(
    "/{code}/status",
    response_model=AdminPetitionResponse,
    summary="Change petition status",
    responses={
        404: {"description": "Petition not found"},
        409: {"description": "Transition refused by forward-only mode"},
    },
)
async def update_status(
    code: str,
    body: StatusUpdateRequest,
    admin: AdminUser,
    service: Lifecycle,
    db: DbSession,
) -> AdminPetitionResponse:
    """Set status and remarks. Other fields are left untouched."""
    with translate_domain_errors():
        petition = await service.set_status(
            code,
            body.status,
            body.remarks,
            actor=admin.to_principal(),
        )
    await db.commit()
    return AdminPetitionResponse.model_validate(petition)


@router.put(
    "/{code}",
    response_model=AdminPetitionResponse,
    summary="Edit petition fields",
    responses={404: {"description": "Petition not found"}},
)
async def edit_petition(
    code: str,
    body: PetitionEditRequest,
    admin: AdminUser,
    service: Lifecycle,
    db: DbSession,
) -> AdminPetitionResponse:
    """Replace the supplied submitter fields; omitted fields keep their values."""
    with translate_domain_errors():
        petition = await service.edit_fields(
            code,
            body.model_dump(exclude_unset=True),
            actor=admin.to_principal(),
        )
    await db.commit()
    return AdminPetitionResponse.model_validate(petition)


@router.delete(
    "/{code}",
    response_model=DeletionResponse,
    summary="Delete a petition",
    responses={404: {"description": "Petition not found"}},
)
async def delete_petition(
    code: str,
    admin: AdminUser,
    service: Lifecycle,
    db: DbSession,
) -> DeletionResponse:
    with translate_domain_errors():
        result = await service.delete(code, actor=admin.to_principal())
    await db.commit()

    # Only once the deletion is durable
    result = service.remove_attachment(result)

    if result.attachment_removed is False:
        logger.warning(
            "Petition deleted but attachment left behind",
            extra={"petition_code": result.petition_code, "attachment_key": result.attachment_key},
        )
    return DeletionResponse(
        petition_code=result.petition_code,
        attachment_removed=result.attachment_removed,
    )
