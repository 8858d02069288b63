"""Identity and credential store access.

Users are keyed by e-mail address, stored trimmed and lower-cased. Accounts
come from registration, from the admin bootstrap command, or implicitly from
a petition submission carrying a contact address that is not yet on file.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from petitiondesk.db.models import User, UserRole

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class EmailAlreadyRegisteredError(Exception):
    """Raised when an account already exists for an e-mail address."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__("An account with this email already exists")


def normalize_email(email: str) -> str:
    return email.strip().lower()


class IdentityService:
    """Lookup and creation of user accounts."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: UUID) -> User | None:
        return await self._session.get(User, user_id)

    async def get_by_email(self, email: str) -> User | None:
        query = select(User).where(User.email == normalize_email(email))
        result = await self._session.execute(query)
        return result.scalar_one_or_none()

    async def create_user(
        self,
        *,
        email: str,
        name: str | None = None,
        phone: str | None = None,
        password_hash: str | None = None,
        role: UserRole = UserRole.CITIZEN,
    ) -> User:
        """Insert a new account.

        Raises:
            EmailAlreadyRegisteredError: If the address is already taken.
        """
        normalized = normalize_email(email)
        if await self.get_by_email(normalized) is not None:
            raise EmailAlreadyRegisteredError(normalized)

        now = datetime.now(UTC)
        user = User(
            email=normalized,
            name=name,
            phone=phone,
            password_hash=password_hash,
            role=role,
            created_at=now,
            updated_at=now,
        )

        self._session.add(user)
        try:
            await self._session.flush()
        except IntegrityError as e:
            # Concurrent insert of the same address
            raise EmailAlreadyRegisteredError(normalized) from e

        logger.info(
            "User account created",
            extra={"user_id": str(user.user_id), "role": role.value},
        )
        return user

    async def resolve_or_create_owner(
        self,
        email: str,
        *,
        name: str | None = None,
        phone: str | None = None,
    ) -> User:
        """Return the account for an address, creating a passwordless one if needed.

        Idempotent per address: repeated calls return the same user, also
        when a concurrent submission creates the account first.
        """
        existing = await self.get_by_email(email)
        if existing is not None:
            return existing

        try:
            async with self._session.begin_nested():
                return await self.create_user(email=email, name=name, phone=phone)
        except EmailAlreadyRegisteredError:
            winner = await self.get_by_email(email)
            if winner is None:
                raise
            logger.info(
                "Concurrent owner creation resolved to existing account",
                extra={"user_id": str(winner.user_id)},
            )
            return winner
