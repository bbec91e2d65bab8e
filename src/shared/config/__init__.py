"""Configuration management module.

This module provides:
- Environment-based configuration with validation
- Aggregated reporting of missing required variables
"""

from .settings import (
    DEFAULT_REFRESH_PERIOD,
    ConfigurationError,
    CredentialBackend,
    Environment,
    LogFormat,
    LogLevel,
    Settings,
    VaultSettings,
    load_settings,
    parse_duration,
)

__all__ = [
    # Main settings
    "Settings",
    "load_settings",
    "ConfigurationError",
    "DEFAULT_REFRESH_PERIOD",
    "parse_duration",
    # Enums
    "CredentialBackend",
    "Environment",
    "LogLevel",
    "LogFormat",
    # Component settings
    "VaultSettings",
]
