"""SQLAlchemy adapter package for the authoritative record store."""

from __future__ import annotations

from .mappings import (
    create_all_tables,
    delegate_record_table,
    mapper_registry,
    marketplace_listing_table,
)
from .repositories import SqlAlchemyListingRepository, SqlAlchemyRecordRepository
from .unit_of_work import (
    RecordRepositories,
    SqlAlchemyRecordUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "RecordRepositories",
    "SqlAlchemyListingRepository",
    "SqlAlchemyRecordRepository",
    "SqlAlchemyRecordUnitOfWork",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "delegate_record_table",
    "is_started",
    "mapper_registry",
    "marketplace_listing_table",
    "shutdown",
    "startup",
]
