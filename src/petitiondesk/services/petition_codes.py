"""Petition code formatting and petition lookup.

Petition codes are the public identifiers handed to citizens:
"PET" followed by the store id zero-padded to six digits. There is exactly
one accepted input form: surrounding whitespace is trimmed and letters are
upper-cased, then the result must match the canonical pattern literally.
Prefix stripping and numeric coercion are deliberately not attempted.

Lookup rules:
- Tracking requires both code and phone and matches them on the same row.
- A bare code lookup and the filtered listing are administrator-only.
- Citizens may list and count the petitions their account owns.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import func, or_, select

from petitiondesk.db.models import Petition, PetitionCategory, PetitionStatus
from petitiondesk.services.authz import AuthorizationService, Permission

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.sql.elements import ColumnElement

    from petitiondesk.services.authz import Principal

logger = logging.getLogger(__name__)

PETITION_CODE_PREFIX = "PET"
PETITION_CODE_WIDTH = 6
PETITION_CODE_PATTERN = re.compile(r"^PET\d{6,}$")

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class PetitionValidationError(Exception):
    """Raised when petition input is missing or malformed.

    Attributes:
        fields: Names of the offending fields, in input order.
    """

    def __init__(self, message: str, fields: list[str] | None = None) -> None:
        self.fields = fields or []
        super().__init__(message)


class InvalidPetitionCodeError(PetitionValidationError):
    """Raised when a petition code is not in canonical form."""

    def __init__(self, raw: str) -> None:
        self.raw = raw
        super().__init__(f"Invalid petition code: {raw!r}", fields=["code"])


class PetitionNotFoundError(Exception):
    """Raised when a petition code (or code + phone pair) does not resolve."""

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"Petition {code} not found")


# ---------------------------------------------------------------------------
# Code format
# ---------------------------------------------------------------------------


def format_petition_code(petition_id: int) -> str:
    """Derive the public code for a store id.

    Ids of a million or more simply produce a wider number.
    """
    if petition_id < 1:
        raise ValueError(f"Petition id must be positive, got {petition_id}")
    return f"{PETITION_CODE_PREFIX}{petition_id:0{PETITION_CODE_WIDTH}d}"


def normalize_petition_code(raw: str | None) -> str:
    """Return the canonical form of a user-supplied code.

    Raises:
        InvalidPetitionCodeError: If the trimmed, upper-cased value is not
            exactly "PET" followed by at least six digits.
    """
    candidate = (raw or "").strip().upper()
    if not PETITION_CODE_PATTERN.match(candidate):
        raise InvalidPetitionCodeError(raw or "")
    return candidate


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PetitionFilters:
    """Dashboard filters for the administrator listing.

    Attributes:
        q: Case-insensitive substring over code, name, title, phone and email.
        category: Restrict to one category.
        status: Restrict to one status.
        date_from: First creation day to include (UTC).
        date_to: Last creation day to include (UTC).
        offset: Number of rows to skip.
        limit: Maximum rows to return.
    """

    q: str | None = None
    category: PetitionCategory | None = None
    status: PetitionStatus | None = None
    date_from: date | None = None
    date_to: date | None = None
    offset: int = 0
    limit: int = DEFAULT_PAGE_SIZE


@dataclass(frozen=True, slots=True)
class PetitionPage:
    """One page of listing results plus the unpaginated total."""

    items: list[Petition] = field(default_factory=list)
    total: int = 0


@dataclass(frozen=True, slots=True)
class PetitionStats:
    """Petition counts in total and per status."""

    total: int
    pending: int
    review: int
    resolved: int
    rejected: int


async def count_by_status(
    session: AsyncSession,
    *conditions: ColumnElement[bool],
) -> PetitionStats:
    """Count the petitions matching conditions, grouped by status."""
    query = select(Petition.status, func.count()).where(*conditions).group_by(Petition.status)
    result = await session.execute(query)
    counts = {status: count for status, count in result.all()}

    return PetitionStats(
        total=sum(counts.values()),
        pending=counts.get(PetitionStatus.PENDING, 0),
        review=counts.get(PetitionStatus.REVIEW, 0),
        resolved=counts.get(PetitionStatus.RESOLVED, 0),
        rejected=counts.get(PetitionStatus.REJECTED, 0),
    )


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _filter_conditions(filters: PetitionFilters) -> list[ColumnElement[bool]]:
    conditions: list[ColumnElement[bool]] = []

    q = (filters.q or "").strip()
    if q:
        pattern = f"%{_escape_like(q)}%"
        conditions.append(
            or_(
                Petition.petition_code.ilike(pattern, escape="\\"),
                Petition.name.ilike(pattern, escape="\\"),
                Petition.title.ilike(pattern, escape="\\"),
                Petition.phone.ilike(pattern, escape="\\"),
                Petition.email.ilike(pattern, escape="\\"),
            )
        )

    if filters.category is not None:
        conditions.append(Petition.category == filters.category)

    if filters.status is not None:
        conditions.append(Petition.status == filters.status)

    # Whole days, both ends inclusive
    if filters.date_from is not None:
        start = datetime.combine(filters.date_from, time.min, tzinfo=UTC)
        conditions.append(Petition.created_at >= start)

    if filters.date_to is not None:
        end = datetime.combine(filters.date_to + timedelta(days=1), time.min, tzinfo=UTC)
        conditions.append(Petition.created_at < end)

    return conditions


class PetitionLookupService:
    """Read paths over petitions.

    Example:
        lookup = PetitionLookupService(session)
        petition = await lookup.track_by_code_and_phone("pet000001 ", "9876543210")
    """

    def __init__(self, session: AsyncSession, authz: AuthorizationService | None = None) -> None:
        self._session = session
        self._authz = authz or AuthorizationService()

    async def find_by_code(self, code: str) -> Petition:
        """Resolve a code without an authorization check.

        Internal helper for services that have already authorized the caller.

        Raises:
            InvalidPetitionCodeError: If the code is malformed.
            PetitionNotFoundError: If no petition has this code.
        """
        canonical = normalize_petition_code(code)
        query = select(Petition).where(Petition.petition_code == canonical)
        result = await self._session.execute(query)
        petition = result.scalar_one_or_none()

        if petition is None:
            raise PetitionNotFoundError(canonical)

        return petition

    async def track_by_code_and_phone(self, code: str | None, phone: str | None) -> Petition:
        """Public tracking lookup.

        Both values are required. The phone is trimmed and compared exactly.

        Raises:
            PetitionValidationError: If either value is missing.
            InvalidPetitionCodeError: If the code is malformed.
            PetitionNotFoundError: If no single petition matches both values.
        """
        missing = [
            name
            for name, value in (("code", code), ("phone", phone))
            if value is None or not value.strip()
        ]
        if missing:
            raise PetitionValidationError(
                "Petition code and phone number are required",
                fields=missing,
            )

        canonical = normalize_petition_code(code)
        query = select(Petition).where(
            Petition.petition_code == canonical,
            Petition.phone == phone.strip(),  # type: ignore[union-attr]
        )
        result = await self._session.execute(query)
        petition = result.scalar_one_or_none()

        if petition is None:
            # Same outcome whether the code or the phone was wrong
            logger.info("Tracking lookup did not match", extra={"petition_code": canonical})
            raise PetitionNotFoundError(canonical)

        return petition

    async def get_by_code(self, code: str, actor: Principal | None) -> Petition:
        """Administrator detail view of a single petition."""
        self._authz.require_permission(actor, Permission.VIEW_ALL_PETITIONS)
        return await self.find_by_code(code)

    async def list_all(self, filters: PetitionFilters, actor: Principal | None) -> PetitionPage:
        """Filtered, paginated listing, newest first."""
        self._authz.require_permission(actor, Permission.VIEW_ALL_PETITIONS)

        if filters.date_from and filters.date_to and filters.date_from > filters.date_to:
            raise PetitionValidationError(
                "date_from must not be after date_to",
                fields=["date_from", "date_to"],
            )

        return await self._page(_filter_conditions(filters), filters.offset, filters.limit)

    async def list_own(
        self,
        actor: Principal | None,
        *,
        offset: int = 0,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> PetitionPage:
        """The calling citizen's own petitions, newest first."""
        self._authz.require_permission(actor, Permission.VIEW_OWN_PETITIONS)
        owned = Petition.user_id == actor.principal_id  # type: ignore[union-attr]
        return await self._page([owned], offset, limit)

    async def summarize_own(self, actor: Principal | None) -> PetitionStats:
        """Status counts over the calling citizen's own petitions."""
        self._authz.require_permission(actor, Permission.VIEW_OWN_PETITIONS)
        owned = Petition.user_id == actor.principal_id  # type: ignore[union-attr]
        return await count_by_status(self._session, owned)

    async def _page(
        self,
        conditions: list[ColumnElement[bool]],
        offset: int,
        limit: int,
    ) -> PetitionPage:
        offset = max(offset, 0)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)

        count_query = select(func.count()).select_from(Petition).where(*conditions)
        total = (await self._session.execute(count_query)).scalar_one()

        query = (
            select(Petition)
            .where(*conditions)
            .order_by(Petition.created_at.desc(), Petition.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self._session.execute(query)

        return PetitionPage(items=list(result.scalars().all()), total=total)
