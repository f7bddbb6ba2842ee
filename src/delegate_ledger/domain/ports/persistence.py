"""Ports for persisting delegate records and listings."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from delegate_ledger.domain.model import DelegateRecord, MarketplaceListing


@runtime_checkable
class RecordStore(Protocol):
    """One tier of the delegate record store.

    Implementations raise :class:`~delegate_ledger.domain.errors.PersistenceError`
    (or its ``StoreUnavailableError`` subclass) when they cannot serve a call, so a
    composite can fall through to the next tier.
    """

    name: str

    def probe(self) -> bool: ...

    def save_record(self, record: DelegateRecord) -> None: ...

    def update_record_id(
        self,
        old_id: str,
        new_id: str,
        *,
        confirmed_at: datetime | None = None,
    ) -> DelegateRecord | None: ...

    def exists_by_id(self, record_id: str) -> bool: ...

    def get_record(self, record_id: str) -> DelegateRecord | None: ...

    def query_by_owner(
        self, owner_address: str, *, confirmed_only: bool = True
    ) -> list[DelegateRecord]: ...

    def pending_records(self, *, older_than: datetime, limit: int) -> list[DelegateRecord]: ...

    def mark_failed(self, record_id: str, *, reason: str) -> DelegateRecord | None: ...


@runtime_checkable
class ListingRepository(Protocol):
    """Persistence contract for marketplace listings awaiting a buyer."""

    def save_listing(self, listing: MarketplaceListing) -> None: ...

    def get_listing(
        self, asset_ref: str, destination: str, price_units: int
    ) -> MarketplaceListing | None: ...

    def listings_for_asset(self, asset_ref: str) -> list[MarketplaceListing]: ...
