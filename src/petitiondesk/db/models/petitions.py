"""Petition records and their lifecycle columns."""

from __future__ import annotations

import uuid  # noqa: TC003 - required at runtime for SQLAlchemy type resolution
from typing import TYPE_CHECKING

from sqlalchemy import Enum, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from petitiondesk.db.models.base import (
    Base,
    PetitionCategory,
    PetitionStatus,
    TimestampTZ,
)

if TYPE_CHECKING:
    from petitiondesk.db.models.users import User


class Petition(Base):
    """A citizen grievance petition.

    The integer id is assigned by the store and never reused; the public
    petition_code is derived from it right after insert, inside the same
    transaction, and never changes afterwards.
    """

    __tablename__ = "petitions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[TimestampTZ]
    updated_at: Mapped[TimestampTZ]

    # Null only between the insert and the code assignment flush
    petition_code: Mapped[str | None] = mapped_column(String(20), unique=True, nullable=True)

    # Owning account; null for anonymous submissions
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.user_id", ondelete="SET NULL"),
        nullable=True,
    )

    # Submitter-supplied fields (admin full-edit only after creation)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str] = mapped_column(String(1000), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    pincode: Mapped[str] = mapped_column(String(12), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[PetitionCategory] = mapped_column(
        Enum(PetitionCategory, name="petition_category", create_constraint=True),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)

    # Object store key of the uploaded attachment
    attachment: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Admin-controlled lifecycle fields
    status: Mapped[PetitionStatus] = mapped_column(
        Enum(PetitionStatus, name="petition_status", create_constraint=True),
        nullable=False,
        default=PetitionStatus.PENDING,
    )
    remarks: Mapped[str] = mapped_column(Text, nullable=False, default="")

    owner: Mapped[User | None] = relationship("User", back_populates="petitions")

    __table_args__ = (
        Index("ix_petitions_phone", "phone"),
        Index("ix_petitions_status", "status"),
        Index("ix_petitions_category", "category"),
        Index("ix_petitions_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    @property
    def has_attachment(self) -> bool:
        return self.attachment is not None
