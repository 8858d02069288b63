"""User accounts: citizens and administrators."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Enum, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from petitiondesk.db.models.base import (
    Base,
    TimestampTZ,
    UserRole,
    UUIDPrimaryKey,
)

if TYPE_CHECKING:
    from petitiondesk.db.models.petitions import Petition


class User(Base):
    """User account.

    Accounts are created by registration, by the admin bootstrap command,
    or implicitly when a petition is submitted with a contact email that
    is not yet on file. Implicit accounts have no password and cannot log
    in until an operator sets one.
    """

    __tablename__ = "users"

    user_id: Mapped[UUIDPrimaryKey]
    created_at: Mapped[TimestampTZ]
    updated_at: Mapped[TimestampTZ]

    name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Stored trimmed and lower-cased; uniqueness is the resolve-or-create key
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # bcrypt hash; null for accounts created implicitly by a submission
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)

    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role", create_constraint=True),
        nullable=False,
        default=UserRole.CITIZEN,
    )

    petitions: Mapped[list[Petition]] = relationship(
        "Petition",
        back_populates="owner",
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
