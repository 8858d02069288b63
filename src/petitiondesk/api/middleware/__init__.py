"""PetitionDesk API middleware components.

This module provides middleware for:
- Request ID tracking for log correlation
- Consistent error response formatting
- Bearer token authentication
"""

from petitiondesk.api.middleware.auth import (
    AuthenticatedUser,
    TokenAuthMiddleware,
    get_current_user,
    optional_authenticated_user,
    require_admin_user,
    require_authenticated_user,
    set_current_user,
)
from petitiondesk.api.middleware.errors import ErrorHandlerMiddleware, register_exception_handlers
from petitiondesk.api.middleware.request_id import RequestIDLogFilter, RequestIDMiddleware

__all__ = [
    "AuthenticatedUser",
    "ErrorHandlerMiddleware",
    "RequestIDLogFilter",
    "RequestIDMiddleware",
    "TokenAuthMiddleware",
    "get_current_user",
    "optional_authenticated_user",
    "register_exception_handlers",
    "require_admin_user",
    "require_authenticated_user",
    "set_current_user",
]
