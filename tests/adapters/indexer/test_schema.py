from __future__ import annotations

from delegate_ledger.adapters.indexer.schema import (
    Envelope,
    InscriptionListData,
    InscriptionPayload,
    TransactionPayload,
)
from delegate_ledger.adapters.indexer.translator import (
    fill_from_transaction,
    parse_custodial_unit,
    parse_listing_page,
)
from delegate_ledger.domain.model import CustodialUnit
from tests.helpers.delegates import OWNER, OWNER_SCRIPT
from tests.helpers.indexer_payloads import fixture_data

ASSET = "e5" * 32 + "i0"


def test_envelope_accepts_message_alias() -> None:
    envelope = Envelope.model_validate({"code": 1, "message": "rate limited"})

    assert envelope.code == 1
    assert envelope.msg == "rate limited"
    assert envelope.data is None


def test_listing_shapes_are_normalised() -> None:
    entry = {"inscriptionId": ASSET, "inscriptionNumber": 7}

    as_list = InscriptionListData.model_validate([entry])
    under_list_key = InscriptionListData.model_validate({"list": [entry], "total": 1})

    assert [p.inscription_id for p in as_list.inscription] == [ASSET]
    assert [p.inscription_id for p in under_list_key.inscription] == [ASSET]
    assert under_list_key.total == 1


def test_token_flag_is_read_from_payload_or_utxo() -> None:
    direct = InscriptionPayload.model_validate({"inscriptionId": ASSET, "isBRC20": "true"})
    nested = InscriptionPayload.model_validate(
        {"inscriptionId": ASSET, "utxo": {"txid": "f" * 64, "inscriptions": [{"isBRC20": True}]}}
    )
    plain = InscriptionPayload.model_validate({"inscriptionId": ASSET, "isBRC20": False})

    assert direct.is_token
    assert nested.is_token
    assert not plain.is_token


def test_listing_page_skips_tokens_and_idless_entries() -> None:
    data = InscriptionListData.model_validate(fixture_data("address_inscriptions_page2.json"))
    data.inscription.append(InscriptionPayload.model_validate({"inscriptionId": "  "}))

    page = parse_listing_page(data, owner_address="bc1qfallback")

    assert [item.item_id for item in page.items] == ["d4" * 32 + "i0"]
    assert page.items[0].owner_address == OWNER
    assert page.next_cursor == 2
    assert page.total == 3
    # filtered entries still count as served
    assert page.skipped_ids == ("c3" * 32 + "i0",)
    assert page.served == 3


def test_custodial_unit_from_direct_fields() -> None:
    payload = InscriptionPayload.model_validate(
        {
            "inscriptionId": ASSET,
            "address": OWNER,
            "txid": "f" * 64,
            "vout": 2,
            "outSatoshi": 600,
            "scriptPk": OWNER_SCRIPT,
        }
    )

    unit = parse_custodial_unit(ASSET, payload)

    assert unit == CustodialUnit(
        asset_ref=ASSET,
        funding_txid="f" * 64,
        funding_vout=2,
        locking_script=OWNER_SCRIPT,
        value=600,
        owner_address=OWNER,
    )


def test_custodial_unit_without_location() -> None:
    unit = parse_custodial_unit(ASSET, InscriptionPayload.model_validate({"address": OWNER}))

    assert unit.funding_txid is None
    assert unit.owner_address == OWNER


def test_fill_from_transaction_keeps_known_values() -> None:
    tx = TransactionPayload.model_validate(fixture_data("funding_tx.json"))
    known = CustodialUnit(asset_ref=ASSET, funding_txid="d4" * 32, funding_vout=0, value=546)
    out_of_range = CustodialUnit(asset_ref=ASSET, funding_txid="d4" * 32, funding_vout=5)

    filled = fill_from_transaction(known, tx)

    assert filled.value == 546
    assert filled.locking_script == OWNER_SCRIPT
    assert fill_from_transaction(out_of_range, tx) is out_of_range
