"""Authoritative record store tier on top of the SQLAlchemy unit of work."""

from __future__ import annotations

from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import IntegrityError as SqlIntegrityError

from delegate_ledger.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyRecordUnitOfWork,
    StartupError,
)
from delegate_ledger.domain.errors import IntegrityError, PersistenceError, StoreUnavailableError
from delegate_ledger.domain.model import RecordState
from delegate_ledger.domain.ports import ListingRepository, RecordStore

if TYPE_CHECKING:
    from collections.abc import Callable

    from delegate_ledger.adapters.sqlalchemy.unit_of_work import RecordRepositories
    from delegate_ledger.domain.model import DelegateRecord, MarketplaceListing

log = getLogger(__name__)


class SqlAlchemyRecordStore:
    """Durable tier: one row per record, keyed by its final or temporary id.

    Availability is probed up front and again whenever a call fails at the
    connection level; while unavailable every call raises
    :class:`StoreUnavailableError` so the composite can fall through.
    """

    name = "authoritative"

    def __init__(
        self,
        uow_factory: Callable[[], SqlAlchemyRecordUnitOfWork] = SqlAlchemyRecordUnitOfWork,
    ) -> None:
        self.uow_factory = uow_factory
        self._available = self.probe()

    def probe(self) -> bool:
        try:
            with self.uow_factory() as uow:
                uow.session.execute(select(1))
        except (SQLAlchemyError, StartupError) as exc:
            log.warning(f"Authoritative store unavailable: {exc}")
            self._available = False
            return False
        self._available = True
        return True

    @property
    def available(self) -> bool:
        return self._available

    def _run[T](self, operation: str, work: Callable[[RecordRepositories], T]) -> T:
        if not self._available and not self.probe():
            raise StoreUnavailableError(f"Authoritative store unavailable for {operation}")
        try:
            with self.uow_factory() as uow:
                result = work(uow.repositories)
                uow.commit()
                return result
        except SqlIntegrityError as exc:
            raise IntegrityError(f"{operation} violated a store constraint: {exc.orig}") from exc
        except (OperationalError, DBAPIError) as exc:
            if isinstance(exc, OperationalError) or exc.connection_invalidated:
                self._available = False
                raise StoreUnavailableError(f"{operation} failed: {exc}") from exc
            raise PersistenceError(f"{operation} failed: {exc}") from exc
        except SQLAlchemyError as exc:
            raise PersistenceError(f"{operation} failed: {exc}") from exc

    # RecordStore -------------------------------------------------------------

    def save_record(self, record: DelegateRecord) -> None:
        def work(repos: RecordRepositories) -> None:
            existing = repos.records.get(record.record_id)
            if existing is None:
                repos.records.add(record)
                return
            existing.ensure_compatible(record)
            if existing != record:
                repos.records.replace(record)

        self._run(f"save {record.record_id}", work)

    def update_record_id(
        self,
        old_id: str,
        new_id: str,
        *,
        confirmed_at: datetime | None = None,
    ) -> DelegateRecord | None:
        def work(repos: RecordRepositories) -> DelegateRecord | None:
            record = repos.records.find(old_id)
            if record is None:
                return None
            if record.is_confirmed and record.record_id == new_id:
                # already promoted by an earlier run
                return record
            clash = repos.records.get(new_id)
            if clash is not None and clash.record_id != record.record_id:
                raise IntegrityError(f"Cannot promote {old_id}: {new_id} is already recorded")
            promoted = record.promoted(new_id, at=confirmed_at or datetime.now(UTC))
            if repos.records.promote(record.record_id, promoted) != 1:
                raise IntegrityError(
                    f"Record {record.record_id} changed state during promotion to {new_id}"
                )
            return promoted

        return self._run(f"promote {old_id} -> {new_id}", work)

    def exists_by_id(self, record_id: str) -> bool:
        return self._run(f"exists {record_id}", lambda repos: repos.records.exists(record_id))

    def get_record(self, record_id: str) -> DelegateRecord | None:
        return self._run(f"get {record_id}", lambda repos: repos.records.find(record_id))

    def query_by_owner(
        self, owner_address: str, *, confirmed_only: bool = True
    ) -> list[DelegateRecord]:
        return self._run(
            f"query {owner_address}",
            lambda repos: repos.records.by_owner(owner_address, confirmed_only=confirmed_only),
        )

    def pending_records(self, *, older_than: datetime, limit: int) -> list[DelegateRecord]:
        return self._run(
            "pending records",
            lambda repos: repos.records.pending(older_than=older_than, limit=limit),
        )

    def mark_failed(self, record_id: str, *, reason: str) -> DelegateRecord | None:
        def work(repos: RecordRepositories) -> DelegateRecord | None:
            record = repos.records.find(record_id)
            if record is None:
                return None
            if record.state is RecordState.FAILED:
                return record
            failed = record.failed(reason)
            repos.records.replace(failed)
            return failed

        return self._run(f"fail {record_id}", work)

    def count(self) -> int:
        return self._run("count", lambda repos: repos.records.count())

    # ListingRepository -------------------------------------------------------

    def save_listing(self, listing: MarketplaceListing) -> None:
        self._run(f"list {listing.asset_ref}", lambda repos: repos.listings.upsert(listing))

    def get_listing(
        self, asset_ref: str, destination: str, price_units: int
    ) -> MarketplaceListing | None:
        return self._run(
            f"get listing {asset_ref}",
            lambda repos: repos.listings.get(asset_ref, destination, price_units),
        )

    def listings_for_asset(self, asset_ref: str) -> list[MarketplaceListing]:
        return self._run(
            f"listings {asset_ref}", lambda repos: repos.listings.for_asset(asset_ref)
        )


if TYPE_CHECKING:
    _store_check: RecordStore = SqlAlchemyRecordStore()
    _listing_check: ListingRepository = SqlAlchemyRecordStore()
