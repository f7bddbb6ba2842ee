"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, insert, or_, select, update

from delegate_ledger.adapters.sqlalchemy.mappings import (
    delegate_record_table,
    marketplace_listing_table,
)
from delegate_ledger.domain.model import DelegateRecord, MarketplaceListing, RecordState

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from sqlalchemy.orm import Session


def _record_from_row(row: Mapping[str, Any]) -> DelegateRecord:
    return DelegateRecord(
        record_id=row["record_id"],
        catalog_id=row["catalog_id"],
        reference_id=row["reference_id"],
        owner_address=row["owner_address"],
        project_id=row["project_id"],
        display_name=row["display_name"],
        state=RecordState(row["state"]),
        issuance_ref=row["issuance_ref"],
        temp_id=row["temp_id"],
        created_at=row["created_at"],
        confirmed_at=row["confirmed_at"],
        failure_reason=row["failure_reason"],
    )


def _record_values(record: DelegateRecord) -> dict[str, Any]:
    return {
        "record_id": record.record_id,
        "temp_id": record.temp_id,
        "catalog_id": record.catalog_id,
        "reference_id": record.reference_id,
        "owner_address": record.owner_address,
        "project_id": record.project_id,
        "display_name": record.display_name,
        "state": record.state,
        "issuance_ref": record.issuance_ref,
        "created_at": record.created_at,
        "confirmed_at": record.confirmed_at,
        "failure_reason": record.failure_reason,
    }


class SqlAlchemyRecordRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, record_id: str) -> DelegateRecord | None:
        stmt = select(delegate_record_table).where(delegate_record_table.c.record_id == record_id)
        row = self.session.execute(stmt).mappings().one_or_none()
        return _record_from_row(row) if row is not None else None

    def find(self, record_id: str) -> DelegateRecord | None:
        """Locate by final id first, then by the temporary id it was created under."""

        stmt = (
            select(delegate_record_table)
            .where(
                or_(
                    delegate_record_table.c.record_id == record_id,
                    delegate_record_table.c.temp_id == record_id,
                )
            )
            .order_by((delegate_record_table.c.record_id == record_id).desc())
            .limit(1)
        )
        row = self.session.execute(stmt).mappings().one_or_none()
        return _record_from_row(row) if row is not None else None

    def exists(self, record_id: str) -> bool:
        stmt = (
            select(delegate_record_table.c.record_id)
            .where(
                or_(
                    delegate_record_table.c.record_id == record_id,
                    delegate_record_table.c.temp_id == record_id,
                )
            )
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none() is not None

    def add(self, record: DelegateRecord) -> None:
        self.session.execute(insert(delegate_record_table).values(**_record_values(record)))

    def replace(self, record: DelegateRecord) -> None:
        values = _record_values(record)
        values.pop("record_id")
        self.session.execute(
            update(delegate_record_table)
            .where(delegate_record_table.c.record_id == record.record_id)
            .values(**values)
        )

    def promote(self, current_id: str, promoted: DelegateRecord) -> int:
        """Rename and confirm in one statement; only a still-pending row qualifies."""

        result = self.session.execute(
            update(delegate_record_table)
            .where(delegate_record_table.c.record_id == current_id)
            .where(delegate_record_table.c.state == RecordState.PENDING)
            .values(
                record_id=promoted.record_id,
                temp_id=promoted.temp_id,
                state=promoted.state,
                confirmed_at=promoted.confirmed_at,
            )
        )
        return result.rowcount

    def by_owner(self, owner_address: str, *, confirmed_only: bool) -> list[DelegateRecord]:
        stmt = select(delegate_record_table).where(
            delegate_record_table.c.owner_address == owner_address
        )
        if confirmed_only:
            stmt = stmt.where(delegate_record_table.c.state == RecordState.CONFIRMED)
        stmt = stmt.order_by(delegate_record_table.c.created_at.desc())
        return [_record_from_row(row) for row in self.session.execute(stmt).mappings()]

    def pending(self, *, older_than: datetime, limit: int) -> list[DelegateRecord]:
        stmt = (
            select(delegate_record_table)
            .where(delegate_record_table.c.state == RecordState.PENDING)
            .where(delegate_record_table.c.created_at <= older_than)
            .order_by(delegate_record_table.c.created_at)
            .limit(limit)
        )
        return [_record_from_row(row) for row in self.session.execute(stmt).mappings()]

    def count(self) -> int:
        stmt = select(func.count()).select_from(delegate_record_table)
        return self.session.execute(stmt).scalar_one()


def _listing_from_row(row: Mapping[str, Any]) -> MarketplaceListing:
    return MarketplaceListing(
        asset_ref=row["asset_ref"],
        destination=row["destination"],
        price_units=row["price_units"],
        seller_address=row["seller_address"],
        authorization=row["signed_proposal"],
        fee_rate=row["fee_rate"],
        created_at=row["created_at"],
    )


class SqlAlchemyListingRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def upsert(self, listing: MarketplaceListing) -> None:
        table = marketplace_listing_table
        self.session.execute(
            delete(table)
            .where(table.c.asset_ref == listing.asset_ref)
            .where(table.c.destination == listing.destination)
            .where(table.c.price_units == listing.price_units)
        )
        self.session.execute(
            insert(table).values(
                asset_ref=listing.asset_ref,
                destination=listing.destination,
                price_units=listing.price_units,
                seller_address=listing.seller_address,
                signed_proposal=listing.authorization,
                fee_rate=listing.fee_rate,
                created_at=listing.created_at,
            )
        )

    def get(self, asset_ref: str, destination: str, price_units: int) -> MarketplaceListing | None:
        table = marketplace_listing_table
        stmt = (
            select(table)
            .where(table.c.asset_ref == asset_ref)
            .where(table.c.destination == destination)
            .where(table.c.price_units == price_units)
        )
        row = self.session.execute(stmt).mappings().one_or_none()
        return _listing_from_row(row) if row is not None else None

    def for_asset(self, asset_ref: str) -> list[MarketplaceListing]:
        table = marketplace_listing_table
        stmt = select(table).where(table.c.asset_ref == asset_ref).order_by(table.c.created_at)
        return [_listing_from_row(row) for row in self.session.execute(stmt).mappings()]
