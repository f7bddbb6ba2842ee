"""Cursor bookkeeping for scanning every item an address holds.

The indexer's continuation signals are individually unreliable, so the scan keeps
going while *any* of them says there is more: a known total not yet reached, a
full page, or a next cursor that moved forward. When the indexer's cursor is not
usable the offset is advanced by one page instead. A small amount of overscan is
the price for not missing items.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from delegate_ledger.domain.model import ScanCursor

if TYPE_CHECKING:
    from collections.abc import Callable

    from delegate_ledger.domain.model import IndexedItem, IndexerPage

log = getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_PAGES = 1000



class StopReason(StrEnum):
    EMPTY_PAGE = "empty_page"
    NO_CONTINUATION = "no_continuation"
    NO_PROGRESS = "no_progress"
    PAGE_CEILING = "page_ceiling"
    ITEM_CEILING = "item_ceiling"


# the indexer itself said there is nothing more
_EXHAUSTIVE = frozenset({StopReason.EMPTY_PAGE, StopReason.NO_CONTINUATION})


@dataclass(slots=True, frozen=True)
class OwnerScan:
    """Outcome of scanning one address: the unique items and why the scan ended."""

    address: str
    items: tuple[IndexedItem, ...] = ()
    stop_reason: StopReason | None = None
    pages_fetched: int = 0

    @property
    def exhaustive(self) -> bool:
        """Whether every item the address holds was seen, not just the most recent ones."""

        return self.stop_reason in _EXHAUSTIVE


@dataclass(slots=True)
class PaginationState:
    address: str
    page_size: int = DEFAULT_PAGE_SIZE
    max_pages: int = DEFAULT_MAX_PAGES
    max_items: int | None = None
    cursor: int = 0
    pages_fetched: int = 0
    stop_reason: StopReason | None = None
    _items: dict[str, IndexedItem] = field(default_factory=dict)
    _seen: set[str] = field(default_factory=set)

    def __post_init__(self) -> None:
        if self.page_size <= 0:
            raise ValueError("page_size must be positive")
        if self.max_pages <= 0:
            raise ValueError("max_pages must be positive")

    @property
    def done(self) -> bool:
        return self.stop_reason is not None

    @property
    def scan_cursor(self) -> ScanCursor:
        return ScanCursor(address=self.address, cursor_token=self.cursor, page_size=self.page_size)

    def results(self) -> list[IndexedItem]:
        """Unique items in first-seen order, cut at ``max_items`` if set."""

        items = list(self._items.values())
        if self.max_items is not None:
            return items[: self.max_items]
        return items

    def outcome(self) -> OwnerScan:
        return OwnerScan(
            address=self.address,
            items=tuple(self.results()),
            stop_reason=self.stop_reason,
            pages_fetched=self.pages_fetched,
        )

    def advance(self, page: IndexerPage) -> None:
        if self.done:
            raise RuntimeError(f"Scan of {self.address} already finished ({self.stop_reason})")

        self.pages_fetched += 1
        # progress and totals count every served entry, filtered ones included
        seen_before = len(self._seen)
        for item in page.items:
            self._items.setdefault(item.item_id, item)
            self._seen.add(item.item_id)
        self._seen.update(page.skipped_ids)
        seen = len(self._seen)
        received = page.served

        if received == 0:
            self._stop(StopReason.EMPTY_PAGE)
            return
        if self.max_items is not None and len(self._items) >= self.max_items:
            self._stop(StopReason.ITEM_CEILING)
            return
        if seen == seen_before:
            # the indexer keeps serving entries we already have
            self._stop(StopReason.NO_PROGRESS)
            return

        total_unmet = page.total is not None and seen < page.total
        page_full = received >= self.page_size
        cursor_advanced = page.next_cursor is not None and page.next_cursor > self.cursor
        if not (total_unmet or page_full or cursor_advanced):
            self._stop(StopReason.NO_CONTINUATION)
            return

        if self.pages_fetched >= self.max_pages:
            log.warning(
                "Stopping scan of %s after %s pages (ceiling reached, %s items so far)",
                self.address,
                self.pages_fetched,
                len(self._items),
            )
            self._stop(StopReason.PAGE_CEILING)
            return

        if cursor_advanced and page.next_cursor is not None:
            self.cursor = page.next_cursor
        else:
            self.cursor += self.page_size

    def _stop(self, reason: StopReason) -> None:
        self.stop_reason = reason
        log.debug(
            f"Scan of {self.address} finished after {self.pages_fetched} pages: "
            f"{len(self._items)} unique items ({reason})"
        )


def scan_all_pages(
    fetch_page: Callable[[str, int, int], IndexerPage],
    address: str,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
    max_pages: int = DEFAULT_MAX_PAGES,
    max_items: int | None = None,
) -> OwnerScan:
    """Drive ``fetch_page(address, cursor, page_size)`` until the scan stops."""

    state = PaginationState(
        address=address, page_size=page_size, max_pages=max_pages, max_items=max_items
    )
    while not state.done:
        state.advance(fetch_page(address, state.cursor, page_size))
    return state.outcome()
