"""Public petition router.

Endpoints:
- POST /petitions - Submit a petition (multipart form, optional file)
- GET /petitions/track - Look a petition up by code and phone

Submission works anonymously; with a citizen token the petition is owned by
that account. Tracking needs both the code and the phone number on file; a
bare code lookup is never public.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, File, Form, Query, UploadFile, status

from petitiondesk.api.dependencies import AppSettings, DbSession, Lifecycle, Lookup, OptionalUser
from petitiondesk.api.middleware.errors import ValidationAPIError, translate_domain_errors
from petitiondesk.api.schemas.petitions import PetitionResponse
from petitiondesk.services.lifecycle import AttachmentUpload

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/petitions",
    tags=["petitions"],
    responses={400: {"description": "Validation error"}},
)


async def _read_attachment(file: UploadFile | None, max_bytes: int) -> AttachmentUpload | None:
    # Browsers send an empty part when no file was chosen
    if file is None or not file.filename:
        return None

    # Read one byte past the limit to detect oversize uploads without
    # buffering arbitrarily large bodies
    data = await file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise ValidationAPIError(
            f"Attachment exceeds {max_bytes} bytes",
            detail={"fields": ["file"]},
        )
    if not data:
        return None

    return AttachmentUpload(
        filename=file.filename,
        content_type=file.content_type or "application/octet-stream",
        data=data,
    )


@router.post(
    "",
    response_model=PetitionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a petition",
)
async def submit_petition(
    service: Lifecycle,
    db: DbSession,
    settings: AppSettings,
    user: OptionalUser,
    name: Annotated[str, Form()] = "",
    address: Annotated[str, Form()] = "",
    phone: Annotated[str, Form()] = "",
    pincode: Annotated[str, Form()] = "",
    title: Annotated[str, Form()] = "",
    category: Annotated[str, Form()] = "",
    description: Annotated[str, Form()] = "",
    email: Annotated[str | None, Form()] = None,
    file: Annotated[UploadFile | None, File()] = None,
) -> PetitionResponse:
    """Submit a petition.

    Form fields all default to empty so that the response lists every
    missing field at once instead of failing on the first.
    """
    attachment = await _read_attachment(file, settings.uploads.max_attachment_bytes)
    fields = {
        "name": name,
        "address": address,
        "phone": phone,
        "pincode": pincode,
        "title": title,
        "category": category,
        "description": description,
        "email": email,
    }

    with translate_domain_errors():
        petition = await service.create(
            fields,
            submitter=user.to_principal() if user else None,
            attachment=attachment,
        )
    await db.commit()

    return PetitionResponse.model_validate(petition)


@router.get(
    "/track",
    response_model=PetitionResponse,
    summary="Track a petition",
    responses={404: {"description": "No petition matches this code and phone"}},
)
async def track_petition(
    lookup: Lookup,
    code: Annotated[str, Query(max_length=32)] = "",
    phone: Annotated[str, Query(max_length=32)] = "",
) -> PetitionResponse:
    """Look a petition up by its code and the submitter's phone number.

    The code is case-insensitive and may carry surrounding whitespace.
    """
    with translate_domain_errors():
        petition = await lookup.track_by_code_and_phone(code, phone)
    return PetitionResponse.model_validate(petition)
