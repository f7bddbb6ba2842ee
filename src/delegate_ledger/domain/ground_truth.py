"""Direct ledger views of delegates, bypassing the record store."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from delegate_ledger.domain.detection import detect_delegate
from delegate_ledger.domain.errors import TransientIndexerError

if TYPE_CHECKING:
    from delegate_ledger.domain.catalog_registry import CatalogRegistry
    from delegate_ledger.domain.model import CatalogEntry, DelegateMetadata
    from delegate_ledger.domain.ports import GroundTruthScanner

log = getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ChainDelegate:
    asset_ref: str
    owner_address: str | None
    metadata: DelegateMetadata
    entry: CatalogEntry | None

    @property
    def in_catalog(self) -> bool:
        return self.entry is not None


def _resolve(catalog: CatalogRegistry, metadata: DelegateMetadata) -> CatalogEntry | None:
    return catalog.lookup_by_reference(metadata.reference_id, metadata.project_id)


def check_delegate_on_chain(
    scanner: GroundTruthScanner,
    catalog: CatalogRegistry,
    asset_ref: str,
) -> ChainDelegate | None:
    """Inspect one asset. Raises ``TransientIndexerError`` if the indexer fails."""

    content = scanner.get_item_content(asset_ref)
    metadata = detect_delegate(content, catalog.reference_ids())
    if metadata is None:
        return None
    unit = scanner.get_custodial_unit(asset_ref)
    return ChainDelegate(
        asset_ref=asset_ref,
        owner_address=unit.owner_address,
        metadata=metadata,
        entry=_resolve(catalog, metadata),
    )


def delegates_on_chain(
    scanner: GroundTruthScanner,
    catalog: CatalogRegistry,
    owner_address: str,
    *,
    page_size: int = 100,
    max_items: int | None = None,
) -> list[ChainDelegate]:
    """Every delegate an address holds according to the indexer.

    Items whose content cannot be fetched are skipped and logged; a failing
    address scan is raised to the caller.
    """

    known_references = catalog.reference_ids()
    found: list[ChainDelegate] = []
    scan = scanner.scan_owner(owner_address, page_size=page_size, max_items=max_items)
    for item in scan.items:
        try:
            content = scanner.get_item_content(item.item_id)
        except TransientIndexerError as exc:
            log.warning(f"Skipping {item.item_id}: content unavailable ({exc})")
            continue
        metadata = detect_delegate(content, known_references)
        if metadata is None:
            continue
        found.append(
            ChainDelegate(
                asset_ref=item.item_id,
                owner_address=item.owner_address or owner_address,
                metadata=metadata,
                entry=_resolve(catalog, metadata),
            )
        )
    log.info("Found %s delegates on chain for %s", len(found), owner_address)
    return found
