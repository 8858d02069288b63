"""Security event logging.

Provides specialized logging for security-relevant events:
- Authentication attempts (success/failure)
- Authorization denials
- Administrator actions on petitions
- Account creation

Events are emitted as structured records on the ``petitiondesk.security``
logger so deployments can route them to a separate sink.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from petitiondesk.services.authz import Principal

logger = logging.getLogger(__name__)

SECURITY_LOGGER_NAME = "petitiondesk.security"


class SecurityEventType(str, Enum):
    """Security event types for structured logging."""

    # Authentication events
    AUTH_SUCCESS = "auth_success"
    AUTH_FAILURE = "auth_failure"

    # Authorization events
    AUTHZ_DENIED = "authz_denied"

    # Admin actions
    ADMIN_ACTION = "admin_action"

    # Accounts
    ACCOUNT_CREATED = "account_created"


class AuthOutcome(str, Enum):
    """Outcome of an authentication attempt."""

    SUCCESS = "success"
    FAILURE = "failure"
    ROLE_REQUIRED = "role_required"  # Valid credentials, wrong role


@dataclass(frozen=True, slots=True)
class SecurityActor:
    """Represents the actor performing a security-relevant action.

    Attributes:
        actor_id: User id, submitted email, or system component.
        actor_type: citizen, admin, anonymous or system.
        ip_address: IP address of the request origin.
    """

    actor_id: str
    actor_type: str
    ip_address: str | None = None


@dataclass(frozen=True, slots=True)
class SecurityEventPayload:
    """Structured payload for security events.

    Attributes:
        event_type: The specific type of security event.
        actor: The actor performing the action.
        action: Description of the action performed.
        resource_type: Type of resource being acted upon.
        resource_id: Identifier of the resource.
        outcome: Result of the action (success, failure, etc.).
        details: Additional event-specific details.
        timestamp: When the event occurred.
    """

    event_type: SecurityEventType
    actor: SecurityActor
    action: str
    resource_type: str | None = None
    resource_id: str | None = None
    outcome: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert payload to a JSON-friendly dictionary."""
        return {
            "event_type": self.event_type.value,
            "actor": {
                "actor_id": self.actor.actor_id,
                "actor_type": self.actor.actor_type,
                "ip_address": self.actor.ip_address,
            },
            "action": self.action,
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "outcome": self.outcome,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class SecurityEventLogger:
    """High-level API for logging security events.

    Example:
        events = SecurityEventLogger()
        events.log_auth_event(
            actor=SecurityActor(actor_id="asha@example.com", actor_type="anonymous"),
            outcome=AuthOutcome.FAILURE,
        )
    """

    def __init__(self, sink: logging.Logger | None = None) -> None:
        self._sink = sink or logging.getLogger(SECURITY_LOGGER_NAME)

    def log_event(self, payload: SecurityEventPayload) -> SecurityEventPayload:
        """Emit a security event. Failures and denials log at WARNING."""
        level = (
            logging.WARNING
            if payload.outcome in (AuthOutcome.FAILURE.value, "denied", AuthOutcome.ROLE_REQUIRED.value)
            else logging.INFO
        )
        self._sink.log(
            level,
            "Security event: %s by %s (%s)",
            payload.event_type.value,
            payload.actor.actor_id,
            payload.outcome or "no outcome",
            extra={"security_event": payload.to_dict()},
        )
        return payload

    def log_auth_event(
        self,
        *,
        actor: SecurityActor,
        outcome: AuthOutcome,
        method: str = "password",
        details: dict[str, Any] | None = None,
    ) -> SecurityEventPayload:
        """Log an authentication attempt."""
        event_type = (
            SecurityEventType.AUTH_SUCCESS
            if outcome == AuthOutcome.SUCCESS
            else SecurityEventType.AUTH_FAILURE
        )
        payload = SecurityEventPayload(
            event_type=event_type,
            actor=actor,
            action=f"authenticate:{method}",
            outcome=outcome.value,
            details=details or {},
        )
        return self.log_event(payload)

    def log_authz_denied(
        self,
        *,
        actor: SecurityActor,
        permission: str,
        resource_type: str | None = None,
        resource_id: str | None = None,
    ) -> SecurityEventPayload:
        """Log a refused operation."""
        payload = SecurityEventPayload(
            event_type=SecurityEventType.AUTHZ_DENIED,
            actor=actor,
            action=f"check_permission:{permission}",
            resource_type=resource_type,
            resource_id=resource_id,
            outcome="denied",
        )
        return self.log_event(payload)

    def log_admin_action(
        self,
        *,
        actor: SecurityActor,
        action: str,
        target_type: str,
        target_id: str,
        details: dict[str, Any] | None = None,
    ) -> SecurityEventPayload:
        """Log an administrative action."""
        payload = SecurityEventPayload(
            event_type=SecurityEventType.ADMIN_ACTION,
            actor=actor,
            action=action,
            resource_type=target_type,
            resource_id=target_id,
            outcome="completed",
            details=details or {},
        )
        return self.log_event(payload)

    def log_account_created(
        self,
        *,
        actor: SecurityActor,
        user_id: str,
        role: str,
    ) -> SecurityEventPayload:
        """Log creation of a user account."""
        payload = SecurityEventPayload(
            event_type=SecurityEventType.ACCOUNT_CREATED,
            actor=actor,
            action="create_account",
            resource_type="user",
            resource_id=user_id,
            outcome="completed",
            details={"role": role},
        )
        return self.log_event(payload)


def actor_from_principal(principal: Principal | None) -> SecurityActor:
    """Build a SecurityActor for a (possibly anonymous) caller."""
    if principal is None:
        return SecurityActor(actor_id="anonymous", actor_type="anonymous")
    return SecurityActor(actor_id=str(principal.principal_id), actor_type=principal.role.value)


def create_system_actor(component: str = "system") -> SecurityActor:
    """Create a SecurityActor for operator tooling and other system events."""
    return SecurityActor(actor_id=f"system:{component}", actor_type="system")
