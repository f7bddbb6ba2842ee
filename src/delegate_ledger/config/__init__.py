"""Application configuration helpers."""

from __future__ import annotations

from .catalog import CatalogSettings, get_catalog_settings
from .env import optional_env_float, optional_env_int, require_env_vars
from .errors import CatalogConfigurationError, ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .indexer import IndexerConfig, build_indexer_profiles, get_indexer_config
from .logging import configure_logging
from .reconciliation import ReconciliationConfig, get_reconciliation_config
from .signer import SignerConfig, get_signer_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "CacheConfig",
    "CatalogConfigurationError",
    "CatalogSettings",
    "ConfigurationError",
    "DatabaseConfig",
    "IndexerConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ReconciliationConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "SignerConfig",
    "StorageConfig",
    "build_indexer_profiles",
    "configure_logging",
    "get_catalog_settings",
    "get_database_config",
    "get_indexer_config",
    "get_reconciliation_config",
    "get_signer_config",
    "get_storage_config",
    "optional_env_float",
    "optional_env_int",
    "require_env_vars",
]
