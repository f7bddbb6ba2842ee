"""Reconciliation job defaults."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from .env import optional_env_float, optional_env_int

DEFAULT_GRACE_MINUTES = 5
DEFAULT_BATCH_LIMIT = 50
DEFAULT_RECENT_ITEMS = 100
DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_PAGES = 1000
DEFAULT_MAX_RUN_SECONDS = 240.0
DEFAULT_MAX_PARALLEL_OWNERS = 4
DEFAULT_INTERVAL_SECONDS = 300.0
DEFAULT_ABANDON_AFTER_DAYS = 7


@dataclass(frozen=True, slots=True)
class ReconciliationConfig:
    grace: timedelta = timedelta(minutes=DEFAULT_GRACE_MINUTES)
    batch_limit: int = DEFAULT_BATCH_LIMIT
    recent_items: int = DEFAULT_RECENT_ITEMS
    page_size: int = DEFAULT_PAGE_SIZE
    max_pages: int = DEFAULT_MAX_PAGES
    max_run_seconds: float = DEFAULT_MAX_RUN_SECONDS
    max_parallel_owners: int = DEFAULT_MAX_PARALLEL_OWNERS
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS
    abandon_after: timedelta | None = timedelta(days=DEFAULT_ABANDON_AFTER_DAYS)


def get_reconciliation_config() -> ReconciliationConfig:
    abandon_days = optional_env_int("RECONCILE_ABANDON_AFTER_DAYS", DEFAULT_ABANDON_AFTER_DAYS)
    return ReconciliationConfig(
        grace=timedelta(minutes=optional_env_int("RECONCILE_GRACE_MINUTES", DEFAULT_GRACE_MINUTES)),
        batch_limit=optional_env_int("RECONCILE_BATCH_LIMIT", DEFAULT_BATCH_LIMIT),
        recent_items=optional_env_int("RECONCILE_RECENT_ITEMS", DEFAULT_RECENT_ITEMS),
        page_size=optional_env_int("RECONCILE_PAGE_SIZE", DEFAULT_PAGE_SIZE),
        max_pages=optional_env_int("RECONCILE_MAX_PAGES", DEFAULT_MAX_PAGES),
        max_run_seconds=optional_env_float("RECONCILE_MAX_RUN_SECONDS", DEFAULT_MAX_RUN_SECONDS),
        max_parallel_owners=optional_env_int(
            "RECONCILE_MAX_PARALLEL_OWNERS", DEFAULT_MAX_PARALLEL_OWNERS
        ),
        interval_seconds=optional_env_float("RECONCILE_INTERVAL_SECONDS", DEFAULT_INTERVAL_SECONDS),
        abandon_after=timedelta(days=abandon_days) if abandon_days > 0 else None,
    )
