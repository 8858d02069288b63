"""PetitionDesk service layer.

This package contains the business logic behind the HTTP routers:
- PetitionLifecycleService: Petition creation and administrator actions
- PetitionLookupService: Public tracking and administrator listing
- AuthService: Password checks and access tokens
- IdentityService: User account lookup and resolve-or-create
- AuthorizationService: Role-based permission checks
- ObjectStoreClient: S3-compatible attachment storage
- SecurityEventLogger: Structured security event logging
"""

from petitiondesk.services.auth import AuthService
from petitiondesk.services.authz import AuthorizationService, Permission, Principal, RoleClass
from petitiondesk.services.identity import IdentityService
from petitiondesk.services.lifecycle import PetitionLifecycleService
from petitiondesk.services.petition_codes import PetitionLookupService
from petitiondesk.services.security_events import SecurityEventLogger
from petitiondesk.services.storage import ObjectStoreClient

__all__ = [
    "AuthService",
    "AuthorizationService",
    "IdentityService",
    "ObjectStoreClient",
    "Permission",
    "PetitionLifecycleService",
    "PetitionLookupService",
    "Principal",
    "RoleClass",
    "SecurityEventLogger",
]
