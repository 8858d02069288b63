"""Pydantic schemas for the PetitionDesk API.

This package contains request/response schemas organized by API namespace.
"""

from petitiondesk.api.schemas.auth import (
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
    VerifyResponse,
)
from petitiondesk.api.schemas.petitions import (
    AdminPetitionResponse,
    DeletionResponse,
    OwnPetitionListResponse,
    PetitionEditRequest,
    PetitionListResponse,
    PetitionResponse,
    PetitionStatsResponse,
    StatusUpdateRequest,
)

__all__ = [
    "AdminPetitionResponse",
    "DeletionResponse",
    "LoginRequest",
    "OwnPetitionListResponse",
    "PetitionEditRequest",
    "PetitionListResponse",
    "PetitionResponse",
    "PetitionStatsResponse",
    "RegisterRequest",
    "StatusUpdateRequest",
    "TokenResponse",
    "UserResponse",
    "VerifyResponse",
]
