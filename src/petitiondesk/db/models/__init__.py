"""SQLAlchemy ORM models for PetitionDesk.

This package contains all database models organized by domain:
- base: Common metadata, column types and enums
- users: Citizen and admin accounts
- petitions: Petition records and lifecycle columns
"""

from petitiondesk.db.models.base import (
    Base,
    PetitionCategory,
    PetitionStatus,
    UserRole,
    metadata,
)
from petitiondesk.db.models.petitions import Petition
from petitiondesk.db.models.users import User

__all__ = [
    "Base",
    "Petition",
    "PetitionCategory",
    "PetitionStatus",
    "User",
    "UserRole",
    "metadata",
]
