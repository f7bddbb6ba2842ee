"""Translate indexer payloads into ledger read models."""

from __future__ import annotations

from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from delegate_ledger.domain.model import CustodialUnit, IndexedItem, IndexerPage

if TYPE_CHECKING:
    from .schema import InscriptionListData, InscriptionPayload, TransactionPayload

log = getLogger(__name__)


def _timestamp(value: int | None) -> datetime | None:
    if value is None:
        return None
    # some deployments report milliseconds
    seconds = value / 1000 if value > 10_000_000_000 else value
    return datetime.fromtimestamp(seconds, tz=UTC)


def parse_indexed_item(payload: InscriptionPayload, *, owner_address: str) -> IndexedItem | None:
    if payload.inscription_id is None:
        return None
    txid = payload.utxo.txid if payload.utxo else payload.txid
    vout = payload.utxo.vout if payload.utxo else payload.vout
    value = payload.utxo.satoshi if payload.utxo else payload.out_satoshi
    outpoint = payload.outpoint or (f"{txid}:{vout}" if txid and vout is not None else None)
    return IndexedItem(
        item_id=payload.inscription_id,
        owner_address=payload.address or owner_address,
        number=payload.inscription_number,
        content_type=payload.content_type,
        outpoint=outpoint,
        value=value,
        timestamp=_timestamp(payload.timestamp),
    )


def parse_listing_page(data: InscriptionListData, *, owner_address: str) -> IndexerPage:
    items: list[IndexedItem] = []
    skipped: list[str] = []
    for payload in data.inscription:
        if payload.is_token:
            log.debug(f"Skipping token inscription {payload.inscription_id}")
            if payload.inscription_id is not None:
                skipped.append(payload.inscription_id)
            continue
        item = parse_indexed_item(payload, owner_address=owner_address)
        if item is not None:
            items.append(item)
    return IndexerPage(
        items=tuple(items),
        next_cursor=data.cursor,
        total=data.total,
        skipped_ids=tuple(skipped),
        raw_count=len(data.inscription),
    )


def parse_custodial_unit(asset_ref: str, payload: InscriptionPayload) -> CustodialUnit:
    """Read the holding output from ``utxo``, direct fields, or an ``txid:vout`` outpoint."""

    if payload.utxo is not None and payload.utxo.txid:
        utxo = payload.utxo
        return CustodialUnit(
            asset_ref=asset_ref,
            funding_txid=utxo.txid,
            funding_vout=utxo.vout,
            locking_script=utxo.script_pk,
            value=utxo.satoshi if utxo.satoshi is not None else payload.out_satoshi,
            owner_address=utxo.address or payload.address,
        )
    if payload.txid:
        return CustodialUnit(
            asset_ref=asset_ref,
            funding_txid=payload.txid,
            funding_vout=payload.vout,
            locking_script=payload.script_pk,
            value=payload.out_satoshi,
            owner_address=payload.address,
        )
    if payload.outpoint and ":" in payload.outpoint:
        txid, _, vout = payload.outpoint.partition(":")
        return CustodialUnit(
            asset_ref=asset_ref,
            funding_txid=txid or None,
            funding_vout=int(vout) if vout.isdigit() else None,
            value=payload.out_satoshi,
            owner_address=payload.address,
        )
    return CustodialUnit(asset_ref=asset_ref, owner_address=payload.address)


def fill_from_transaction(unit: CustodialUnit, tx: TransactionPayload) -> CustodialUnit:
    """Complete a unit's script and value from the funding transaction's outputs."""

    if unit.funding_vout is None or unit.funding_vout >= len(tx.vout):
        return unit
    output = tx.vout[unit.funding_vout]
    return CustodialUnit(
        asset_ref=unit.asset_ref,
        funding_txid=unit.funding_txid,
        funding_vout=unit.funding_vout,
        locking_script=unit.locking_script or output.script_hex,
        value=unit.value if unit.value is not None else output.value,
        owner_address=unit.owner_address,
    )
