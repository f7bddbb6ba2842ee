"""Ports for reading ledger ground truth."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from delegate_ledger.domain.model import CustodialUnit, IndexerPage
    from delegate_ledger.domain.pagination import OwnerScan


@runtime_checkable
class GroundTruthScanner(Protocol):
    """Read-only ledger client. Every method may raise ``TransientIndexerError``."""

    def list_items_by_owner(
        self, address: str, *, cursor: int = 0, page_size: int = 100
    ) -> IndexerPage: ...

    def scan_owner(
        self,
        address: str,
        *,
        page_size: int = 100,
        max_items: int | None = None,
        max_pages: int | None = None,
    ) -> OwnerScan: ...

    def get_item_content(self, asset_ref: str) -> bytes: ...

    def get_custodial_unit(self, asset_ref: str) -> CustodialUnit: ...
