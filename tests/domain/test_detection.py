from __future__ import annotations

import json

from delegate_ledger.domain.detection import build_delegate_content, detect_delegate
from delegate_ledger.domain.model import CatalogEntry, DetectionSource
from tests.helpers.delegates import FOX_REF, WOLF_REF, delegate_payload

KNOWN = frozenset({WOLF_REF, FOX_REF})


def test_structured_record_is_authoritative() -> None:
    metadata = detect_delegate(delegate_payload(), KNOWN)

    assert metadata is not None
    assert metadata.source is DetectionSource.STRUCTURED
    assert metadata.reference_id == WOLF_REF
    assert metadata.catalog_id == "wolf"
    assert metadata.display_name == "Wolf"
    assert metadata.project_id == "black-and-wild"


def test_structured_record_needs_tag_and_operation() -> None:
    other_protocol = json.dumps(
        {"p": "brc-20", "op": "delegate", "originalInscriptionId": WOLF_REF}
    )
    other_op = json.dumps({"p": "ord-20", "op": "mint", "originalInscriptionId": "x"})

    assert detect_delegate(other_op, ()) is None
    # the reference scan still finds a quoted known id
    fallback = detect_delegate(other_protocol, KNOWN)
    assert fallback is not None
    assert fallback.source is DetectionSource.REFERENCE_SCAN


def test_embedded_metadata_block() -> None:
    html = (
        "<html><body><img src='/content/abc'>"
        '<script type="application/json" id="delegate-metadata">'
        + delegate_payload("fox", FOX_REF, name="Fox").decode()
        + "</script></body></html>"
    )

    metadata = detect_delegate(html.encode(), KNOWN)

    assert metadata is not None
    assert metadata.source is DetectionSource.EMBEDDED
    assert metadata.catalog_id == "fox"
    assert metadata.reference_id == FOX_REF


def test_unrelated_blob_is_not_a_delegate() -> None:
    assert detect_delegate(b"\x89PNG\r\n\x1a\n binary garbage", KNOWN) is None
    assert detect_delegate(b"   ", KNOWN) is None
    assert detect_delegate(b"[1, 2, 3]", KNOWN) is None


def test_bare_reference_only_yields_reference_id() -> None:
    html = f'<html><img src="/content/{WOLF_REF}"></html>'

    metadata = detect_delegate(html, KNOWN)

    assert metadata is not None
    assert metadata.source is DetectionSource.REFERENCE_SCAN
    assert metadata.reference_id == WOLF_REF
    assert metadata.catalog_id is None
    assert metadata.display_name is None


def test_first_mentioned_reference_wins_in_any_catalog_order() -> None:
    html = f'<html><img src="/content/{FOX_REF}"><a href="/content/{WOLF_REF}"></a></html>'

    for known in ((WOLF_REF, FOX_REF), (FOX_REF, WOLF_REF)):
        metadata = detect_delegate(html, known)
        assert metadata is not None
        assert metadata.reference_id == FOX_REF


def test_longer_reference_wins_at_same_position() -> None:
    longer = f"{WOLF_REF}0"
    html = f"<html><img src='/content/{longer}'></html>"

    metadata = detect_delegate(html, (WOLF_REF, longer))

    assert metadata is not None
    assert metadata.reference_id == longer


def test_unknown_reference_not_detected() -> None:
    html = f'<html><img src="/content/{WOLF_REF}"></html>'

    assert detect_delegate(html, {FOX_REF}) is None


def test_build_delegate_content_round_trips_through_detection() -> None:
    entry = CatalogEntry("wolf", "black-and-wild", "Wolf", WOLF_REF, "animal", "epic")

    metadata = detect_delegate(build_delegate_content(entry))

    assert metadata is not None
    assert metadata.catalog_id == "wolf"
    assert metadata.rarity_tier == "epic"
    assert metadata.asset_class == "animal"
