"""Base model definitions, mixins, and common types.

This module provides:
- SQLAlchemy declarative base with naming conventions
- Common column type annotations
- Enum types used across multiple models

Column types stay dialect-neutral (generic Uuid, DateTime, func.now())
so the same models run on PostgreSQL in deployment and SQLite in tests.
"""

import enum
import uuid
from datetime import datetime
from typing import Annotated

from sqlalchemy import DateTime, MetaData, Uuid, func
from sqlalchemy.orm import DeclarativeBase, mapped_column, registry

# Naming convention for constraints ensures consistent migration generation.
# See: https://alembic.sqlalchemy.org/en/latest/naming.html
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Shared metadata with naming convention
metadata = MetaData(naming_convention=NAMING_CONVENTION)

# Custom type registry for reusable type annotations
type_registry = registry()

# UUID primary key generated on the application side
UUIDPrimaryKey = Annotated[
    uuid.UUID,
    mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4),
]

# Timestamp with timezone, defaults to now
TimestampTZ = Annotated[
    datetime,
    mapped_column(DateTime(timezone=True), server_default=func.now()),
]


class Base(DeclarativeBase):
    """Declarative base for all PetitionDesk models.

    All models inherit from this base, which provides:
    - Consistent metadata with naming conventions
    - Type annotation support via mapped_column
    """

    metadata = metadata
    registry = type_registry


# =============================================================================
# Common Enums
# =============================================================================


class UserRole(enum.Enum):
    """Role carried by a user account and embedded in its tokens.

    Values:
        CITIZEN: May submit petitions and track them by code and phone
        ADMIN: May list, edit, update status of and delete any petition
    """

    CITIZEN = "citizen"
    ADMIN = "admin"


class PetitionStatus(enum.Enum):
    """Petition lifecycle states.

    States:
        PENDING: Submitted, not yet looked at
        REVIEW: Under review by an administrator
        RESOLVED: Grievance addressed (terminal)
        REJECTED: Grievance declined (terminal)
    """

    PENDING = "pending"
    REVIEW = "review"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class PetitionCategory(enum.Enum):
    """Department a petition is routed to."""

    ROAD = "road"
    WATER = "water"
    HEALTH = "health"
    EDUCATION = "education"
    ELECTRICITY = "electricity"
    OTHER = "other"
