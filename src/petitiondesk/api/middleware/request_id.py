"""Request ID middleware for log and error correlation.

Every response carries an X-Request-ID header. A client-supplied ID is kept
when it is short and printable; anything else is replaced by a fresh UUID.
The current ID is also available to log records through RequestIDLogFilter.
"""

import logging
import re
import uuid
from collections.abc import Callable
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# Context variable for accessing request ID in the current request context
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

REQUEST_ID_HEADER = "X-Request-ID"

_ACCEPTABLE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def get_request_id() -> str | None:
    """Get the current request ID, or None outside a request."""
    return request_id_ctx.get()


class RequestIDLogFilter(logging.Filter):
    """Attach the current request ID to every log record as ``request_id``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware that ensures every request has a usable X-Request-ID."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        incoming = request.headers.get(REQUEST_ID_HEADER, "")
        request_id = incoming if _ACCEPTABLE_REQUEST_ID.match(incoming) else str(uuid.uuid4())

        request_id_ctx.set(request_id)

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id

        return response
