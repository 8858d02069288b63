"""Signed-in citizen router.

Endpoints:
- GET /users/me/petitions - Petitions owned by the caller's account
- GET /users/me/petitions/summary - Status counts over those petitions

A petition belongs to an account when it was submitted with that account's
token, or anonymously with its email address.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query

from petitiondesk.api.dependencies import CurrentUser, Lookup
from petitiondesk.api.middleware.errors import translate_domain_errors
from petitiondesk.api.schemas.petitions import (
    OwnPetitionListResponse,
    PetitionResponse,
    PetitionStatsResponse,
)
from petitiondesk.services.petition_codes import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

router = APIRouter(
    prefix="/users/me",
    tags=["citizen"],
    responses={
        401: {"description": "Authentication required"},
        403: {"description": "Only citizen accounts own petitions"},
    },
)


@router.get("/petitions", response_model=OwnPetitionListResponse, summary="My petitions")
async def list_my_petitions(
    user: CurrentUser,
    lookup: Lookup,
    offset: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_PAGE_SIZE,
) -> OwnPetitionListResponse:
    with translate_domain_errors():
        page = await lookup.list_own(user.to_principal(), offset=offset, limit=limit)

    return OwnPetitionListResponse(
        items=[PetitionResponse.model_validate(p) for p in page.items],
        total=page.total,
        offset=offset,
        limit=limit,
    )


@router.get(
    "/petitions/summary",
    response_model=PetitionStatsResponse,
    summary="My petition counts",
)
async def summarize_my_petitions(user: CurrentUser, lookup: Lookup) -> PetitionStatsResponse:
    with translate_domain_errors():
        stats = await lookup.summarize_own(user.to_principal())
    return PetitionStatsResponse(
        total=stats.total,
        pending=stats.pending,
        review=stats.review,
        resolved=stats.resolved,
        rejected=stats.rejected,
    )
