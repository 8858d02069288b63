"""PetitionDesk core module.

Shared components used across all services:
- Configuration management
- Cached settings access
"""

from petitiondesk.core.config import (
    AuthSettings,
    ConfigValidationError,
    DatabaseSettings,
    Environment,
    LifecycleSettings,
    S3Settings,
    Settings,
    UploadSettings,
)
from petitiondesk.core.settings import (
    clear_settings_cache,
    get_settings,
    get_settings_safe,
)

__all__ = [
    "AuthSettings",
    "ConfigValidationError",
    "DatabaseSettings",
    "Environment",
    "LifecycleSettings",
    "S3Settings",
    "Settings",
    "UploadSettings",
    "clear_settings_cache",
    "get_settings",
    "get_settings_safe",
]
