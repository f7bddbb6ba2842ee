"""
SQLAlchemy table metadata for delegate records and marketplace listings.
Rows are mapped to the frozen domain dataclasses by hand in the repositories.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    Index,
    String,
    Table,
    Text,
    TypeDecorator,
    orm,
)

from delegate_ledger.domain.model import RecordState

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

delegate_record_table = Table(
    "delegate_record",
    mapper_registry.metadata,
    Column("record_id", String, primary_key=True),
    Column("temp_id", String, nullable=True, unique=True),
    Column("catalog_id", String, nullable=False),
    Column("reference_id", String, nullable=False),
    Column("owner_address", String, nullable=False),
    Column("project_id", String, nullable=True),
    Column("display_name", String, nullable=True),
    Column(
        "state",
        Enum(RecordState, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    ),
    Column("issuance_ref", String, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("confirmed_at", UTCDateTime(), nullable=True),
    Column("failure_reason", Text, nullable=True),
    Index("ix_delegate_record_owner_state", "owner_address", "state"),
    Index("ix_delegate_record_state_created", "state", "created_at"),
)

marketplace_listing_table = Table(
    "marketplace_listing",
    mapper_registry.metadata,
    Column("asset_ref", String, primary_key=True),
    Column("destination", String, primary_key=True),
    Column("price_units", BigInteger, primary_key=True),
    Column("seller_address", String, nullable=False),
    Column("signed_proposal", Text, nullable=False),
    Column("fee_rate", Float, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
)


def create_all_tables(engine: Engine) -> None:
    """Create tables directly from metadata, bypassing migrations (tests only)."""

    mapper_registry.metadata.create_all(engine)
