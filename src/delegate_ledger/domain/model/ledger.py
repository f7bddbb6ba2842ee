"""Read models for what the ground-truth indexer reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from .enums import DetectionSource


@dataclass(slots=True, frozen=True)
class IndexedItem:
    item_id: str
    owner_address: str | None = None
    number: int | None = None
    content_type: str | None = None
    outpoint: str | None = None
    value: int | None = None
    timestamp: datetime | None = None


@dataclass(slots=True, frozen=True)
class IndexerPage:
    """One page of an owner listing.

    ``skipped_ids`` names entries the adapter filtered out (token inscriptions);
    ``raw_count`` is how many entries the indexer actually served, when known.
    Both feed the continuation checks so filtering never ends a scan early.
    """

    items: tuple[IndexedItem, ...] = field(default_factory=tuple)
    next_cursor: int | None = None
    total: int | None = None
    skipped_ids: tuple[str, ...] = ()
    raw_count: int | None = None

    @property
    def served(self) -> int:
        if self.raw_count is not None:
            return self.raw_count
        return len(self.items) + len(self.skipped_ids)


@dataclass(slots=True, frozen=True)
class ScanCursor:
    """Position within one address scan. Always starts from zero, never persisted."""

    address: str
    cursor_token: int = 0
    page_size: int = 100


@dataclass(slots=True, frozen=True)
class CustodialUnit:
    """The unspent output currently holding an asset."""

    asset_ref: str
    funding_txid: str | None = None
    funding_vout: int | None = None
    locking_script: str | None = None
    value: int | None = None
    owner_address: str | None = None


@dataclass(slots=True, frozen=True)
class DelegateMetadata:
    reference_id: str
    source: DetectionSource
    catalog_id: str | None = None
    display_name: str | None = None
    rarity_tier: str | None = None
    asset_class: str | None = None
    project_id: str | None = None
