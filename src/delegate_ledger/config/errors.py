"""Configuration error definitions."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when configuration values are invalid."""


class MissingConfigurationError(ConfigurationError):
    """Raised when required configuration values are absent or blank."""


class CatalogConfigurationError(ConfigurationError):
    """Raised when the catalog file is malformed or unfit for the current environment."""
