"""Petition lifecycle state machine service.

This module implements the petition lifecycle with:
- Creation with owner resolution and code assignment in one unit of work
- Administrator status changes, full edits and deletion
- Optional forward-only transition enforcement
- Dashboard statistics

Every mutating operation takes an explicit Principal and checks it before
touching the store, so anonymous callers learn nothing about which
petition codes exist.
Callers own the transaction and commit after a successful call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, ClassVar

from petitiondesk.db.models import Petition, PetitionCategory, PetitionStatus
from petitiondesk.services.authz import (
    AuthorizationService,
    ForbiddenError,
    Permission,
    RoleClass,
    UnauthorizedError,
)
from petitiondesk.services.identity import IdentityService
from petitiondesk.services.petition_codes import (
    PetitionLookupService,
    PetitionStats,
    PetitionValidationError,
    count_by_status,
    format_petition_code,
)
from petitiondesk.services.security_events import SecurityEventLogger, actor_from_principal
from petitiondesk.services.storage import StorageError, attachment_key

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from petitiondesk.services.authz import Principal
    from petitiondesk.services.storage import ObjectStoreClient

logger = logging.getLogger(__name__)

# Submitter-supplied fields; all required at creation, all admin-editable
PETITION_FIELDS: tuple[str, ...] = (
    "name",
    "address",
    "phone",
    "pincode",
    "title",
    "category",
    "description",
)

# Longest accepted value per field, matching the column widths; description
# is stored as text and capped here only
FIELD_MAX_LENGTHS: dict[str, int] = {
    "name": 255,
    "address": 1000,
    "phone": 20,
    "pincode": 12,
    "email": 255,
    "title": 255,
    "description": 10000,
}


class InvalidStatusError(PetitionValidationError):
    """Raised when a status value is not one of the lifecycle states."""

    def __init__(self, value: Any) -> None:
        self.value = value
        allowed = ", ".join(s.value for s in PetitionStatus)
        super().__init__(f"Invalid status {value!r}; expected one of: {allowed}", fields=["status"])


class InvalidTransitionError(Exception):
    """Raised when forward-only mode refuses a status change."""

    def __init__(
        self,
        from_state: PetitionStatus,
        to_state: PetitionStatus,
        reason: str | None = None,
    ) -> None:
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason or f"Cannot transition from {from_state.value} to {to_state.value}"
        super().__init__(self.reason)


@dataclass(frozen=True, slots=True)
class AttachmentUpload:
    """An attachment received with a submission."""

    filename: str
    content_type: str
    data: bytes


@dataclass(frozen=True, slots=True)
class DeletionResult:
    """Result of deleting a petition.

    Attributes:
        petition_code: Code of the deleted petition.
        attachment_key: Object key of its attachment, if it had one.
        attachment_removed: Whether the attachment object was removed;
            None when there was no attachment or it has not been
            removed yet (see remove_attachment).
    """

    petition_code: str
    attachment_key: str | None
    attachment_removed: bool | None = None


def parse_status(value: PetitionStatus | str | None) -> PetitionStatus:
    """Parse a wire status value.

    Raises:
        InvalidStatusError: If the value is not a lifecycle state.
    """
    if isinstance(value, PetitionStatus):
        return value
    try:
        return PetitionStatus(str(value).strip().lower())
    except ValueError as e:
        raise InvalidStatusError(value) from e


def parse_category(value: PetitionCategory | str | None) -> PetitionCategory:
    if isinstance(value, PetitionCategory):
        return value
    try:
        return PetitionCategory(str(value).strip().lower())
    except ValueError as e:
        allowed = ", ".join(c.value for c in PetitionCategory)
        raise PetitionValidationError(
            f"Invalid category {value!r}; expected one of: {allowed}",
            fields=["category"],
        ) from e


def _clean(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _check_lengths(values: Mapping[str, Any]) -> None:
    too_long = [
        name
        for name, value in values.items()
        if isinstance(value, str) and len(value) > FIELD_MAX_LENGTHS.get(name, len(value))
    ]
    if too_long:
        raise PetitionValidationError(
            f"Fields too long: {', '.join(too_long)}",
            fields=too_long,
        )


class PetitionLifecycleService:
    """Service for petition creation and administrator actions.

    The state machine:
        pending -> review -> resolved | rejected

    By default administrators may set any state at any time. With
    enforce_forward_transitions only the forward edges below are accepted
    and resolved/rejected are frozen. Re-applying the current state is
    always accepted.

    Example:
        service = PetitionLifecycleService(session, storage=client)
        petition = await service.set_status(
            "PET000001",
            "resolved",
            remarks="Fixed on 2024-05-01",
            actor=admin_principal,
        )
    """

    VALID_TRANSITIONS: ClassVar[dict[PetitionStatus, set[PetitionStatus]]] = {
        PetitionStatus.PENDING: {
            PetitionStatus.REVIEW,
            PetitionStatus.RESOLVED,
            PetitionStatus.REJECTED,
        },
        PetitionStatus.REVIEW: {
            PetitionStatus.RESOLVED,
            PetitionStatus.REJECTED,
        },
        # Terminal states - no transitions out
        PetitionStatus.RESOLVED: set(),
        PetitionStatus.REJECTED: set(),
    }

    def __init__(
        self,
        session: AsyncSession,
        *,
        storage: ObjectStoreClient | None = None,
        enforce_forward_transitions: bool = False,
        max_attachment_bytes: int | None = None,
        authz: AuthorizationService | None = None,
        security_events: SecurityEventLogger | None = None,
    ) -> None:
        """Initialize the lifecycle service.

        Args:
            session: SQLAlchemy async session for database operations.
            storage: Attachment store; required only for attachments.
            enforce_forward_transitions: Refuse backward or terminal-state changes.
            max_attachment_bytes: Upper bound on attachment size, if any.
            authz: Authorization service (default instance if omitted).
            security_events: Security event logger (default instance if omitted).
        """
        self._session = session
        self._storage = storage
        self._enforce_forward = enforce_forward_transitions
        self._max_attachment_bytes = max_attachment_bytes
        self._authz = authz or AuthorizationService()
        self._events = security_events or SecurityEventLogger()
        self._lookup = PetitionLookupService(session, self._authz)

    def is_valid_transition(self, from_state: PetitionStatus, to_state: PetitionStatus) -> bool:
        """Check a status change against the active transition policy."""
        if from_state == to_state or not self._enforce_forward:
            return True
        return to_state in self.VALID_TRANSITIONS.get(from_state, set())

    def _authorize(
        self,
        actor: Principal | None,
        permission: Permission,
        code: str | None = None,
    ) -> None:
        try:
            self._authz.require_permission(actor, permission)
        except (UnauthorizedError, ForbiddenError):
            self._events.log_authz_denied(
                actor=actor_from_principal(actor),
                permission=permission.value,
                resource_type="petition" if code else None,
                resource_id=code,
            )
            raise

    # -- creation -------------------------------------------------------------

    def _validate_submission(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        missing = [name for name in PETITION_FIELDS if not _clean(fields.get(name))]
        if missing:
            raise PetitionValidationError(
                f"Missing required fields: {', '.join(missing)}",
                fields=missing,
            )

        values: dict[str, Any] = {name: _clean(fields[name]) for name in PETITION_FIELDS}
        _check_lengths({**values, "email": _clean(fields.get("email"))})
        values["category"] = parse_category(values["category"])

        email = _clean(fields.get("email")) or None
        if email is not None and "@" not in email:
            raise PetitionValidationError("Invalid email address", fields=["email"])
        values["email"] = email
        return values

    async def _resolve_owner_id(
        self,
        submitter: Principal | None,
        email: str | None,
        name: str,
        phone: str,
    ) -> UUID | None:
        identity = IdentityService(self._session)

        if submitter is not None and submitter.role == RoleClass.CITIZEN:
            user = await identity.get_by_id(submitter.principal_id)
            if user is not None:
                return user.user_id
            logger.warning(
                "Token subject has no account; falling back to contact email",
                extra={"user_id": str(submitter.principal_id)},
            )

        if email is not None:
            user = await identity.resolve_or_create_owner(email, name=name, phone=phone)
            return user.user_id

        return None

    async def create(
        self,
        fields: Mapping[str, Any],
        submitter: Principal | None = None,
        attachment: AttachmentUpload | None = None,
    ) -> Petition:
        """Submit a new petition.

        The petition is inserted, flushed to obtain its id, given its code,
        and its attachment (if any) uploaded, all before the caller commits.

        Raises:
            PetitionValidationError: Listing every missing or invalid field.
            StorageError: If the attachment cannot be stored.
        """
        values = self._validate_submission(fields)
        if (
            values["email"] is None
            and submitter is not None
            and submitter.role == RoleClass.CITIZEN
        ):
            # Signed-in citizens are reachable at their account address
            values["email"] = submitter.email

        if attachment is not None:
            if (
                self._max_attachment_bytes is not None
                and len(attachment.data) > self._max_attachment_bytes
            ):
                raise PetitionValidationError(
                    f"Attachment exceeds {self._max_attachment_bytes} bytes",
                    fields=["file"],
                )
            if self._storage is None:
                raise StorageError("Attachment storage is not configured", operation="upload")

        user_id = await self._resolve_owner_id(
            submitter, values["email"], values["name"], values["phone"]
        )

        now = datetime.now(UTC)
        petition = Petition(
            **values,
            user_id=user_id,
            status=PetitionStatus.PENDING,
            remarks="",
            created_at=now,
            updated_at=now,
        )
        self._session.add(petition)
        await self._session.flush()

        # The code derives from the store-assigned id
        petition.petition_code = format_petition_code(petition.id)

        if attachment is not None and self._storage is not None:
            key = attachment_key(petition.petition_code, attachment.filename)
            self._storage.upload(
                key,
                attachment.data,
                content_type=attachment.content_type or "application/octet-stream",
                metadata={"petition-code": petition.petition_code},
            )
            petition.attachment = key

        await self._session.flush()

        logger.info(
            "Petition submitted",
            extra={
                "petition_code": petition.petition_code,
                "category": petition.category.value,
                "has_owner": user_id is not None,
                "has_attachment": petition.attachment is not None,
            },
        )
        return petition

    # -- administrator actions -------------------------------------------------

    async def set_status(
        self,
        code: str,
        new_status: PetitionStatus | str,
        remarks: str | None = None,
        *,
        actor: Principal | None,
    ) -> Petition:
        """Change a petition's status and remarks.

        Only status, remarks and updated_at are written. A remarks value of
        None leaves the existing remarks in place.

        Raises:
            UnauthorizedError: No principal.
            ForbiddenError: Principal is not an administrator.
            InvalidStatusError: Unknown status value.
            PetitionNotFoundError: Code does not resolve.
            InvalidTransitionError: Refused by forward-only mode.
        """
        self._authorize(actor, Permission.UPDATE_PETITION_STATUS, code)
        to_state = parse_status(new_status)
        petition = await self._lookup.find_by_code(code)
        from_state = petition.status

        if not self.is_valid_transition(from_state, to_state):
            logger.warning(
                "Invalid transition attempted",
                extra={
                    "petition_code": petition.petition_code,
                    "from_state": from_state.value,
                    "to_state": to_state.value,
                },
            )
            raise InvalidTransitionError(from_state, to_state)

        petition.status = to_state
        if remarks is not None:
            petition.remarks = remarks
        petition.updated_at = datetime.now(UTC)
        await self._session.flush()

        logger.info(
            "Petition status changed",
            extra={
                "petition_code": petition.petition_code,
                "from_state": from_state.value,
                "to_state": to_state.value,
            },
        )
        self._events.log_admin_action(
            actor=actor_from_principal(actor),
            action="set_status",
            target_type="petition",
            target_id=petition.petition_code or code,
            details={"from_state": from_state.value, "to_state": to_state.value},
        )
        return petition

    async def edit_fields(
        self,
        code: str,
        fields: Mapping[str, Any],
        *,
        actor: Principal | None,
    ) -> Petition:
        """Replace any subset of the submitter-supplied fields.

        Status, remarks, code, id and attachment are never touched.

        Raises:
            UnauthorizedError: No principal.
            ForbiddenError: Principal is not an administrator.
            PetitionValidationError: Unknown, empty or invalid fields.
            PetitionNotFoundError: Code does not resolve.
        """
        self._authorize(actor, Permission.EDIT_PETITION, code)

        unknown = [name for name in fields if name not in PETITION_FIELDS]
        if unknown:
            raise PetitionValidationError(
                f"Fields cannot be edited: {', '.join(unknown)}",
                fields=unknown,
            )
        if not fields:
            raise PetitionValidationError("No fields to update")

        empty = [name for name, value in fields.items() if not _clean(value)]
        if empty:
            raise PetitionValidationError(
                f"Fields cannot be empty: {', '.join(empty)}",
                fields=empty,
            )

        updates: dict[str, Any] = {name: _clean(value) for name, value in fields.items()}
        _check_lengths(updates)
        if "category" in updates:
            updates["category"] = parse_category(updates["category"])

        petition = await self._lookup.find_by_code(code)
        for name, value in updates.items():
            setattr(petition, name, value)
        petition.updated_at = datetime.now(UTC)
        await self._session.flush()

        self._events.log_admin_action(
            actor=actor_from_principal(actor),
            action="edit_fields",
            target_type="petition",
            target_id=petition.petition_code or code,
            details={"fields": sorted(updates)},
        )
        return petition

    async def delete(self, code: str, *, actor: Principal | None) -> DeletionResult:
        """Delete a petition record.

        The attachment object is left in place: the caller commits and then
        passes the result to remove_attachment, so a failed commit never
        leaves a surviving record without its file.

        Raises:
            UnauthorizedError: No principal.
            ForbiddenError: Principal is not an administrator.
            PetitionNotFoundError: Code does not resolve.
        """
        self._authorize(actor, Permission.DELETE_PETITION, code)
        petition = await self._lookup.find_by_code(code)
        petition_code = petition.petition_code or code
        key = petition.attachment

        await self._session.delete(petition)
        await self._session.flush()

        self._events.log_admin_action(
            actor=actor_from_principal(actor),
            action="delete",
            target_type="petition",
            target_id=petition_code,
            details={"has_attachment": key is not None},
        )
        return DeletionResult(petition_code=petition_code, attachment_key=key)

    def remove_attachment(self, result: DeletionResult) -> DeletionResult:
        """Remove the attachment of a petition whose deletion is committed.

        Best effort: a failure is logged and reported in the returned result
        but the record stays deleted.
        """
        if result.attachment_key is None:
            return result
        removed = self._remove_attachment(result.petition_code, result.attachment_key)
        return replace(result, attachment_removed=removed)

    def _remove_attachment(self, petition_code: str, key: str) -> bool:
        if self._storage is None:
            logger.warning(
                "Attachment left in place: storage not configured",
                extra={"petition_code": petition_code, "attachment_key": key},
            )
            return False
        try:
            self._storage.delete(key)
        except StorageError:
            logger.exception(
                "Failed to remove attachment of deleted petition",
                extra={"petition_code": petition_code, "attachment_key": key},
            )
            return False
        return True

    async def get_stats(self, *, actor: Principal | None) -> PetitionStats:
        """Count petitions in total and per status."""
        self._authorize(actor, Permission.VIEW_PETITION_STATS)
        return await count_by_status(self._session)
