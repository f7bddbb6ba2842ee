"""Reusable fakes and builders for delegate record and ledger tests."""

from __future__ import annotations

import json
from dataclasses import replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from delegate_ledger.domain.catalog_registry import CatalogRegistry
from delegate_ledger.domain.errors import (
    AuthorizationError,
    IntegrityError,
    StoreUnavailableError,
    TransientIndexerError,
)
from delegate_ledger.domain.model import (
    CatalogEntry,
    CatalogProject,
    CustodialUnit,
    DelegateRecord,
    IndexedItem,
    IndexerPage,
    RecordState,
    placeholder_id,
)
from delegate_ledger.domain.pagination import scan_all_pages

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from delegate_ledger.domain.model import MarketplaceListing, SignatureScope
    from delegate_ledger.domain.pagination import OwnerScan

WOLF_REF = "e6805a3c68fd1abb1904dfb8193b2a01ef2ccbd96d6b8be2c4b9aba4332c413di0"
FOX_REF = "44740a1f30efb247ef41de3355133e12d6f58ab4dc8a3146648e2249fa9c6a39i0"
ROBOT_REF = "9f2c4b7e0d1a3c5e7f9b1d3f5a7c9e1b3d5f7a9c1e3b5d7f9a1c3e5b7d9f1a3ci0"
PLACEHOLDER_REF = "PLACEHOLDER_TIMEBIT_NEEDS_REAL_ID"

# BIP173 mainnet vectors: a P2WPKH and a P2WSH address
OWNER = "bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4"
OWNER_SCRIPT = "0014751e76e8199196d454941c45d1b3a323f1433bd6"
SELLER = "bc1qrp33g0q5c5txsp9arysrx4k6zdkfs4nce4xj0gdcccefvpysxf3qccfmv3"

FUNDING_TXID = "4a5e1e4baab89f3a32518a88c31bc87f618f76673e2cc77ab2127b7afdeda33b"


def make_catalog() -> CatalogRegistry:
    """Two projects with overlapping names and one placeholder entry."""

    animals = CatalogProject(
        project_id="black-and-wild",
        display_name="Black & Wild",
        entries=(
            CatalogEntry("wolf", "black-and-wild", "Wolf", WOLF_REF, "animal", "epic"),
            CatalogEntry("fox", "black-and-wild", "Fox", FOX_REF, "animal", "rare"),
        ),
    )
    machines = CatalogProject(
        project_id="tech-and-games",
        display_name="Tech & Games",
        entries=(
            CatalogEntry("robot", "tech-and-games", "Robot", ROBOT_REF, "tech", "common"),
            CatalogEntry(
                "timebit", "tech-and-games", "TIMEBIT", PLACEHOLDER_REF, "tech", "legendary"
            ),
        ),
    )
    return CatalogRegistry([animals, machines], version=1)


def make_record(
    catalog_id: str = "wolf",
    *,
    reference_id: str = WOLF_REF,
    owner_address: str = OWNER,
    project_id: str | None = "black-and-wild",
    display_name: str | None = "Wolf",
    order_ref: str = "order-1",
    index: int = 0,
    created_at: datetime | None = None,
    record_id: str | None = None,
) -> DelegateRecord:
    """A pending record keyed by its placeholder id."""

    temp_id = placeholder_id(order_ref, index)
    return DelegateRecord(
        record_id=record_id or temp_id,
        temp_id=temp_id,
        catalog_id=catalog_id,
        reference_id=reference_id,
        owner_address=owner_address,
        project_id=project_id,
        display_name=display_name,
        issuance_ref=order_ref,
        created_at=created_at or datetime.now(UTC),
    )


def delegate_payload(
    catalog_id: str = "wolf",
    reference_id: str = WOLF_REF,
    *,
    name: str = "Wolf",
) -> bytes:
    return json.dumps(
        {
            "p": "ord-20",
            "op": "delegate",
            "cardId": catalog_id,
            "name": name,
            "originalInscriptionId": reference_id,
            "projectId": "black-and-wild",
        }
    ).encode()


class FakeScanner:
    """In-memory ground-truth indexer.

    ``pages`` maps an owner to the pages served for successive cursor values,
    ``contents`` maps item ids to their body and ``units`` holds custodial units.
    """

    def __init__(
        self,
        pages: Mapping[str, Sequence[Sequence[IndexedItem]]] | None = None,
        *,
        contents: Mapping[str, bytes] | None = None,
        units: Mapping[str, CustodialUnit] | None = None,
        failing_owners: Iterable[str] = (),
        failing_contents: Iterable[str] = (),
    ) -> None:
        self.pages = {
            owner: [tuple(page) for page in owner_pages]
            for owner, owner_pages in (pages or {}).items()
        }
        self.contents = dict(contents or {})
        self.units = dict(units or {})
        self.failing_owners = set(failing_owners)
        self.failing_contents = set(failing_contents)
        self.page_calls: list[tuple[str, int]] = []
        self.content_calls: list[str] = []

    def list_items_by_owner(
        self, address: str, *, cursor: int = 0, page_size: int = 100
    ) -> IndexerPage:
        self.page_calls.append((address, cursor))
        if address in self.failing_owners:
            raise TransientIndexerError(f"indexer timed out for {address}")
        owner_pages = self.pages.get(address, [])
        index = cursor // page_size
        items = owner_pages[index] if index < len(owner_pages) else ()
        has_more = index + 1 < len(owner_pages)
        return IndexerPage(items=items, next_cursor=cursor + page_size if has_more else None)

    def scan_owner(
        self,
        address: str,
        *,
        page_size: int = 100,
        max_items: int | None = None,
        max_pages: int | None = None,
    ) -> OwnerScan:
        return scan_all_pages(
            lambda owner, cursor, size: self.list_items_by_owner(
                owner, cursor=cursor, page_size=size
            ),
            address,
            page_size=page_size,
            max_pages=max_pages or 1000,
            max_items=max_items,
        )

    def get_item_content(self, asset_ref: str) -> bytes:
        self.content_calls.append(asset_ref)
        if asset_ref in self.failing_contents:
            raise TransientIndexerError(f"content for {asset_ref} timed out")
        return self.contents.get(asset_ref, b"<html>not a delegate</html>")

    def get_custodial_unit(self, asset_ref: str) -> CustodialUnit:
        unit = self.units.get(asset_ref)
        if unit is None:
            raise TransientIndexerError(f"no custody data for {asset_ref}")
        return unit


def items(*item_ids: str, owner: str = OWNER) -> list[IndexedItem]:
    return [IndexedItem(item_id=item_id, owner_address=owner) for item_id in item_ids]


class InMemoryRecordStore:
    """Dict-backed record store tier with switchable availability."""

    def __init__(self, name: str = "memory") -> None:
        self.name = name
        self.records: dict[str, DelegateRecord] = {}
        self.available = True
        self.saves = 0

    def _check(self) -> None:
        if not self.available:
            raise StoreUnavailableError(f"{self.name} is down")

    def _locate(self, record_id: str) -> DelegateRecord | None:
        record = self.records.get(record_id)
        if record is not None:
            return record
        return next((r for r in self.records.values() if r.temp_id == record_id), None)

    def probe(self) -> bool:
        return self.available

    def save_record(self, record: DelegateRecord) -> None:
        self._check()
        existing = self.records.get(record.record_id)
        if existing is not None:
            existing.ensure_compatible(record)
        self.records[record.record_id] = record
        self.saves += 1

    def update_record_id(
        self,
        old_id: str,
        new_id: str,
        *,
        confirmed_at: datetime | None = None,
    ) -> DelegateRecord | None:
        self._check()
        record = self._locate(old_id)
        if record is None:
            return None
        if record.is_confirmed and record.record_id == new_id:
            return record
        if new_id in self.records and self.records[new_id].record_id != record.record_id:
            raise IntegrityError(f"{new_id} already recorded")
        promoted = record.promoted(new_id, at=confirmed_at)
        self.records.pop(record.record_id)
        self.records[new_id] = promoted
        return promoted

    def exists_by_id(self, record_id: str) -> bool:
        self._check()
        return self._locate(record_id) is not None

    def get_record(self, record_id: str) -> DelegateRecord | None:
        self._check()
        return self._locate(record_id)

    def query_by_owner(
        self, owner_address: str, *, confirmed_only: bool = True
    ) -> list[DelegateRecord]:
        self._check()
        return [
            r
            for r in self.records.values()
            if r.owner_address == owner_address
            and (not confirmed_only or r.state is RecordState.CONFIRMED)
        ]

    def pending_records(self, *, older_than: datetime, limit: int) -> list[DelegateRecord]:
        self._check()
        pending = [r for r in self.records.values() if r.is_pending and r.created_at <= older_than]
        return sorted(pending, key=lambda r: r.created_at)[:limit]

    def mark_failed(self, record_id: str, *, reason: str) -> DelegateRecord | None:
        self._check()
        record = self._locate(record_id)
        if record is None:
            return None
        if record.state is RecordState.FAILED:
            return record
        failed = record.failed(reason)
        self.records[record.record_id] = failed
        return failed


class InMemoryListings:
    def __init__(self) -> None:
        self.listings: dict[tuple[str, str, int], MarketplaceListing] = {}

    def save_listing(self, listing: MarketplaceListing) -> None:
        self.listings[listing.key] = listing

    def get_listing(
        self, asset_ref: str, destination: str, price_units: int
    ) -> MarketplaceListing | None:
        return self.listings.get((asset_ref, destination, price_units))

    def listings_for_asset(self, asset_ref: str) -> list[MarketplaceListing]:
        return [listing for key, listing in self.listings.items() if key[0] == asset_ref]


class RecordingSigner:
    """Signer double that wraps the proposal so tests can see what was authorized."""

    def __init__(self, *, refuse: bool = False) -> None:
        self.calls: list[tuple[str, str | None, SignatureScope]] = []
        self.refuse = refuse

    def __call__(self, proposal: str, *, owner: str | None, scope: SignatureScope) -> str:
        self.calls.append((proposal, owner, scope))
        if self.refuse:
            raise AuthorizationError("key holder declined")
        return f"signed:{proposal}"


def confirmed(record: DelegateRecord, asset_ref: str) -> DelegateRecord:
    return replace(
        record,
        record_id=asset_ref,
        state=RecordState.CONFIRMED,
        confirmed_at=record.created_at,
    )
