"""Ground-truth indexer configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .env import require_env_vars
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .storage import StorageConfig, get_storage_config

DEFAULT_INDEXER_BASE_URL = "https://open-api.unisat.io"
DEFAULT_CONTENT_FALLBACK_URL = "https://ordinals.com"
INDEXER_TIMEOUT_SECONDS = 15.0


@dataclass(frozen=True, slots=True)
class IndexerConfig:
    """Holds the indexer API credentials and the two client profiles used against it.

    ``listing`` is used for address scans and custody lookups, which must always hit
    the indexer. ``content`` is used for inscription bodies, which are immutable and
    therefore cached on disk.
    """

    api_key: str
    listing: ResilienceConfig
    content: ResilienceConfig
    content_fallback_url: str = DEFAULT_CONTENT_FALLBACK_URL


def build_indexer_profiles(
    *,
    api_key: str,
    base_url: str = DEFAULT_INDEXER_BASE_URL,
    http_cache_path: str | None = None,
) -> tuple[ResilienceConfig, ResilienceConfig]:
    headers = {"Authorization": f"Bearer {api_key}", "Accept": "application/json"}
    listing = ResilienceConfig(
        name="indexer",
        base_url=base_url,
        timeout_seconds=INDEXER_TIMEOUT_SECONDS,
        retry=RetryPolicy(total=2),
        ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
        cache=None,
        default_headers=headers,
    )
    content = ResilienceConfig(
        name="indexer-content",
        base_url=base_url,
        timeout_seconds=INDEXER_TIMEOUT_SECONDS,
        retry=RetryPolicy(total=2),
        ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
        cache=CacheConfig(
            backend="sqlite" if http_cache_path else "memory",
            sqlite_path=http_cache_path,
        ),
        default_headers=headers,
    )
    return listing, content


def get_indexer_config(*, storage: StorageConfig | None = None) -> IndexerConfig:
    values = require_env_vars(("INDEXER_API_KEY",))
    storage_config = storage or get_storage_config()
    listing, content = build_indexer_profiles(
        api_key=values["INDEXER_API_KEY"],
        base_url=os.getenv("INDEXER_BASE_URL") or DEFAULT_INDEXER_BASE_URL,
        http_cache_path=str(storage_config.http_cache_path()),
    )
    return IndexerConfig(
        api_key=values["INDEXER_API_KEY"],
        listing=listing,
        content=content,
        content_fallback_url=os.getenv("INDEXER_CONTENT_FALLBACK_URL")
        or DEFAULT_CONTENT_FALLBACK_URL,
    )
