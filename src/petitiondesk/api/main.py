"""PetitionDesk API service entry point.

This module provides the application instance for ASGI servers (uvicorn)
and a run() function for direct execution.
"""

import logging

from petitiondesk.api import create_app
from petitiondesk.api.middleware.request_id import RequestIDLogFilter

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] [%(request_id)s] %(message)s"


def configure_logging(level: str) -> None:
    """Configure root logging with request IDs on every record."""
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)
    for handler in logging.getLogger().handlers:
        handler.addFilter(RequestIDLogFilter())


def run() -> None:
    """Run the API server using uvicorn.

    This function is called by the petitiondesk-api console script
    defined in pyproject.toml.
    """
    import uvicorn

    from petitiondesk.core.settings import get_settings

    # Exits with status 1 on invalid configuration
    settings = get_settings()
    configure_logging(settings.log_level)

    logger.info("Starting PetitionDesk API on %s:%d", settings.api_host, settings.api_port)

    uvicorn.run(
        create_app(settings),
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )


if __name__ == "__main__":
    run()
