"""Singleton settings accessor for PetitionDesk configuration.

This module provides a cached accessor for the application settings,
ensuring consistent configuration across all services.

Usage:
    from petitiondesk.core.settings import get_settings

    settings = get_settings()
    ttl = settings.auth.token_ttl_days

The settings are loaded once and cached. To reload settings (e.g., in tests),
use clear_settings_cache().
"""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import ValidationError

from petitiondesk.core.config import (
    ConfigValidationError,
    Settings,
    validate_settings,
)

logger = logging.getLogger(__name__)

# Module-level cache for settings instance
_settings_cache: Settings | None = None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the cached application settings.

    Settings are loaded from environment variables on first call and
    cached for subsequent calls.

    Returns:
        Validated Settings instance.

    Raises:
        SystemExit: If settings cannot be loaded (fail-fast behavior).
    """
    global _settings_cache

    if _settings_cache is not None:
        return _settings_cache

    try:
        logger.info("Loading application settings from environment")
        settings = Settings()  # type: ignore[call-arg]
        validate_settings(settings)
        _settings_cache = settings

        logger.info(
            "Configuration loaded: environment=%s, token_ttl_days=%d, "
            "forward_transitions=%s, policy_hash=%s",
            settings.environment.value,
            settings.auth.token_ttl_days,
            settings.lifecycle.enforce_forward_transitions,
            settings.get_policy_hash()[:16] + "...",
        )

        return settings

    except ValidationError as e:
        error_messages = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            msg = error["msg"]
            error_messages.append(f"  - {loc}: {msg}")

        logger.critical(
            "Configuration validation failed:\n%s",
            "\n".join(error_messages),
        )
        raise SystemExit(1) from e

    except ConfigValidationError as e:
        logger.critical(
            "Configuration validation failed: %s (field: %s)",
            e.message,
            e.field or "unknown",
        )
        raise SystemExit(1) from e

    except Exception as e:
        logger.critical(
            "Failed to load configuration: %s",
            str(e),
        )
        raise SystemExit(1) from e


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Use this function in tests to reset settings between test cases,
    or when configuration needs to be reloaded.
    """
    global _settings_cache
    _settings_cache = None
    get_settings.cache_clear()
    logger.debug("Settings cache cleared")


def get_settings_safe() -> Settings | None:
    """Get settings without raising exceptions.

    Returns:
        Settings instance if available, None otherwise.
    """
    try:
        return get_settings()
    except SystemExit:
        return None

