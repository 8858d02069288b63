"""Pydantic schemas for authentication endpoints.

Login, admin login and registration all answer with a bearer token plus a
public view of the account. Password hashes never leave the service.
"""

from __future__ import annotations

# NOTE: datetime and UUID must remain at runtime for Pydantic validation
from datetime import datetime  # noqa: TC003
from uuid import UUID  # noqa: TC003

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from petitiondesk.db.models import UserRole  # noqa: TC001


class LoginRequest(BaseModel):
    """Credentials for citizen or administrator login."""

    email: EmailStr = Field(..., description="Account email address")
    password: str = Field(..., min_length=1, max_length=256, description="Account password")

    model_config = ConfigDict(extra="forbid")


class RegisterRequest(BaseModel):
    """New citizen account."""

    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    email: EmailStr = Field(..., description="Account email address")
    password: str = Field(..., max_length=256, description="Password (minimum length is configurable)")
    phone: str | None = Field(None, max_length=20, description="Contact phone number")

    model_config = ConfigDict(extra="forbid")


class UserResponse(BaseModel):
    """Public view of an account."""

    user_id: UUID
    name: str | None
    email: str
    phone: str | None
    role: UserRole

    model_config = ConfigDict(from_attributes=True)


class TokenResponse(BaseModel):
    """Issued access token."""

    access_token: str = Field(..., description="Signed JWT to send as a bearer token")
    token_type: str = Field("bearer", description="Always 'bearer'")
    expires_at: datetime = Field(..., description="Token expiry (UTC)")
    user: UserResponse


class VerifyResponse(BaseModel):
    """Claims of a verified token."""

    valid: bool = True
    user_id: UUID
    email: str
    role: str
    name: str | None
    expires_at: datetime
