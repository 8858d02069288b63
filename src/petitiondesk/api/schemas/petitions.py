"""Pydantic schemas for petition endpoints.

Submission arrives as a multipart form and is validated by the lifecycle
service so that every missing field is reported at once; the JSON bodies
of the administrator endpoints are validated here.
"""

from __future__ import annotations

# NOTE: datetime must remain at runtime for Pydantic validation
from datetime import datetime  # noqa: TC003

from pydantic import BaseModel, ConfigDict, Field

from petitiondesk.db.models import PetitionCategory, PetitionStatus  # noqa: TC001
from petitiondesk.services.lifecycle import FIELD_MAX_LENGTHS

# -----------------------------------------------------------------------------
# Responses
# -----------------------------------------------------------------------------


class PetitionResponse(BaseModel):
    """Full petition record, as seen by administrators and the submitter."""

    petition_code: str = Field(..., description="Public code, e.g. PET000001")
    name: str
    address: str
    phone: str
    pincode: str
    email: str | None
    title: str
    category: PetitionCategory
    description: str
    has_attachment: bool = Field(False, description="Whether a file was attached")
    status: PetitionStatus
    remarks: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AdminPetitionResponse(PetitionResponse):
    """Petition record with store details for the dashboard."""

    attachment: str | None = Field(None, description="Object store key of the attachment")


class PetitionListResponse(BaseModel):
    """One page of the administrator listing."""

    items: list[AdminPetitionResponse]
    total: int = Field(..., description="Rows matching the filters, ignoring pagination")
    offset: int
    limit: int


class OwnPetitionListResponse(BaseModel):
    """One page of a citizen's own petitions."""

    items: list[PetitionResponse]
    total: int
    offset: int
    limit: int


class PetitionStatsResponse(BaseModel):
    """Petition counts in total and per status."""

    total: int
    pending: int
    review: int
    resolved: int
    rejected: int


class DeletionResponse(BaseModel):
    """Outcome of deleting a petition."""

    petition_code: str
    deleted: bool = True
    attachment_removed: bool | None = Field(
        None,
        description="False if the attachment could not be removed; null if there was none",
    )


# -----------------------------------------------------------------------------
# Requests
# -----------------------------------------------------------------------------


class StatusUpdateRequest(BaseModel):
    """Status change with optional remarks."""

    # Left as a plain string so unknown values get the lifecycle's own error
    status: str = Field(..., description="pending, review, resolved or rejected")
    remarks: str | None = Field(
        None,
        max_length=5000,
        description="Remarks shown to the citizen; omitted keeps the current remarks",
    )

    model_config = ConfigDict(extra="forbid")


class PetitionEditRequest(BaseModel):
    """Any subset of the submitter-supplied fields."""

    name: str | None = Field(None, max_length=FIELD_MAX_LENGTHS["name"])
    address: str | None = Field(None, max_length=FIELD_MAX_LENGTHS["address"])
    phone: str | None = Field(None, max_length=FIELD_MAX_LENGTHS["phone"])
    pincode: str | None = Field(None, max_length=FIELD_MAX_LENGTHS["pincode"])
    title: str | None = Field(None, max_length=FIELD_MAX_LENGTHS["title"])
    category: str | None = Field(None, description="road, water, health, education, electricity or other")
    description: str | None = Field(None, max_length=FIELD_MAX_LENGTHS["description"])

    model_config = ConfigDict(extra="forbid")
