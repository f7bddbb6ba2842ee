"""HTTP client for the ordinals indexer."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError as PydanticValidationError

from delegate_ledger.adapters.http_resilience import ResilientClient
from delegate_ledger.config.http_resilience import ResilienceConfig
from delegate_ledger.config.indexer import IndexerConfig, get_indexer_config
from delegate_ledger.domain.errors import IndexerAPIError, TransientIndexerError
from delegate_ledger.domain.pagination import DEFAULT_MAX_PAGES, PaginationState
from delegate_ledger.domain.ports import GroundTruthScanner

from .schema import Envelope, InscriptionListData, InscriptionPayload, TransactionPayload
from .translator import fill_from_transaction, parse_custodial_unit, parse_listing_page

if TYPE_CHECKING:
    from collections.abc import Callable

    from delegate_ledger.domain.model import CustodialUnit, IndexerPage
    from delegate_ledger.domain.pagination import OwnerScan

log = getLogger(__name__)


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _fallback_profile(config: IndexerConfig) -> ResilienceConfig:
    # the public content host gets neither our base URL nor our API key
    content = config.content
    return ResilienceConfig(
        name="indexer-content-fallback",
        timeout_seconds=content.timeout_seconds,
        retry=content.retry,
        ratelimit=content.ratelimit,
        cache=content.cache,
    )


@dataclass(slots=True)
class IndexerClient:
    config: IndexerConfig = field(default_factory=get_indexer_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    # sync facade -----------------------------------------------------------

    def list_items_by_owner(
        self, address: str, *, cursor: int = 0, page_size: int = 100
    ) -> IndexerPage:
        return asyncio.run(self._list_page_async(address, cursor=cursor, page_size=page_size))

    def scan_owner(
        self,
        address: str,
        *,
        page_size: int = 100,
        max_items: int | None = None,
        max_pages: int | None = None,
    ) -> OwnerScan:
        return asyncio.run(
            self._scan_owner_async(
                address,
                page_size=page_size,
                max_items=max_items,
                max_pages=max_pages or DEFAULT_MAX_PAGES,
            )
        )

    def get_item_content(self, asset_ref: str) -> bytes:
        return asyncio.run(self._content_async(asset_ref))

    def get_custodial_unit(self, asset_ref: str) -> CustodialUnit:
        return asyncio.run(self._custodial_unit_async(asset_ref))

    # listing ---------------------------------------------------------------

    async def _list_page_async(self, address: str, *, cursor: int, page_size: int) -> IndexerPage:
        async with self.client_factory(self.config.listing) as client:
            return await self._request_page(client, address, cursor=cursor, page_size=page_size)

    async def _scan_owner_async(
        self,
        address: str,
        *,
        page_size: int,
        max_items: int | None,
        max_pages: int,
    ) -> OwnerScan:
        state = PaginationState(
            address=address, page_size=page_size, max_pages=max_pages, max_items=max_items
        )
        async with self.client_factory(self.config.listing) as client:
            while not state.done:
                page = await self._request_page(
                    client, address, cursor=state.cursor, page_size=page_size
                )
                state.advance(page)
        scan = state.outcome()
        log.info(
            f"Scanned {address}: {len(scan.items)} items in {scan.pages_fetched} pages "
            f"({scan.stop_reason})"
        )
        return scan

    async def _request_page(
        self,
        client: ResilientClient,
        address: str,
        *,
        cursor: int,
        page_size: int,
    ) -> IndexerPage:
        url = self._url(f"/v1/indexer/address/{quote(address, safe='')}/inscription-data")
        data = await self._get_data(
            client, url, params=httpx.QueryParams({"cursor": cursor, "size": page_size})
        )
        if data is None:
            log.warning(f"Indexer returned no listing data for {address} at cursor {cursor}")
            return parse_listing_page(InscriptionListData(), owner_address=address)
        listing = self._validate(InscriptionListData, data, url)
        return parse_listing_page(listing, owner_address=address)

    # content ---------------------------------------------------------------

    async def _content_async(self, asset_ref: str) -> bytes:
        url = self._url(f"/v1/indexer/inscription/{quote(asset_ref, safe='')}/content")
        async with self.client_factory(self.config.content) as client:
            try:
                response = await client.get(url)
            except httpx.HTTPError as exc:
                msg = f"Content request for {asset_ref} failed: {exc}"
                raise TransientIndexerError(msg) from exc
            if response.is_success:
                return response.content
            log.debug(f"Indexer content for {asset_ref} returned {response.status_code}")

        fallback_url = f"{self.config.content_fallback_url.rstrip('/')}/content/{asset_ref}"
        async with self.client_factory(_fallback_profile(self.config)) as client:
            try:
                response = await client.get(fallback_url)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                raise TransientIndexerError(
                    f"Content for {asset_ref} unavailable from indexer and fallback: {exc}"
                ) from exc
        return response.content

    # custody ---------------------------------------------------------------

    async def _custodial_unit_async(self, asset_ref: str) -> CustodialUnit:
        async with self.client_factory(self.config.listing) as client:
            url = self._url(f"/v1/indexer/inscription/info/{quote(asset_ref, safe='')}")
            data = await self._get_data(client, url)
            if data is None:
                raise IndexerAPIError(f"Indexer returned no data for {asset_ref}")
            unit = parse_custodial_unit(asset_ref, self._validate(InscriptionPayload, data, url))

            if unit.funding_txid and (unit.locking_script is None or unit.value is None):
                tx_url = self._url(f"/v1/indexer/tx/{quote(unit.funding_txid, safe='')}")
                try:
                    tx_data = await self._get_data(client, tx_url)
                except TransientIndexerError as exc:
                    log.warning(f"Funding transaction lookup for {asset_ref} failed: {exc}")
                    return unit
                if tx_data is not None:
                    unit = fill_from_transaction(
                        unit, self._validate(TransactionPayload, tx_data, tx_url)
                    )
        return unit

    # plumbing --------------------------------------------------------------

    def _url(self, path: str) -> str:
        base_url = self.config.listing.base_url or ""
        return f"{base_url.rstrip('/')}{path}"

    async def _get_data(
        self,
        client: ResilientClient,
        url: str,
        *,
        params: httpx.QueryParams | None = None,
    ) -> Any:
        try:
            response = await client.get(url, params=params)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TransientIndexerError(f"Indexer request {url} failed: {exc}") from exc

        try:
            envelope = Envelope.model_validate(response.json())
        except (ValueError, PydanticValidationError) as exc:
            raise IndexerAPIError(f"Unexpected indexer payload from {url}") from exc

        if envelope.code != 0:
            message = envelope.msg or "indexer returned an error code"
            log.error(f"Indexer API error {envelope.code}: {message}")
            raise IndexerAPIError(message, code=envelope.code)
        return envelope.data

    @staticmethod
    def _validate[T: InscriptionListData | InscriptionPayload | TransactionPayload](
        model: type[T], data: Any, url: str
    ) -> T:
        try:
            return model.model_validate(data)
        except PydanticValidationError as exc:
            raise IndexerAPIError(f"Unexpected indexer payload from {url}: {exc}") from exc


if TYPE_CHECKING:
    _scanner_check: GroundTruthScanner = IndexerClient()
