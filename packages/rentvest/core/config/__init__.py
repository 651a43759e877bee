"""Configuration management for Rentvest."""

from rentvest.core.config.loader import (
    configure_logging,
    detect_format,
    load_app_config,
    load_config,
)
from rentvest.core.config.models import (
    DEFAULT_BASE_URLS,
    AppConfig,
    CacheConfig,
    Environment,
    LoggingConfig,
    ServicesConfig,
)

__all__ = [
    # Loaders
    "detect_format",
    "load_config",
    "load_app_config",
    "configure_logging",
    # Models
    "AppConfig",
    "CacheConfig",
    "Environment",
    "LoggingConfig",
    "ServicesConfig",
    "DEFAULT_BASE_URLS",
]
