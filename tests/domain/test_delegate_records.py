from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime

import pytest

from delegate_ledger.domain.errors import IntegrityError
from delegate_ledger.domain.model import (
    RecordState,
    is_placeholder_id,
    is_placeholder_reference,
    placeholder_id,
)
from tests.helpers.delegates import FOX_REF, make_record

ASSET = "f" * 64 + "i0"


def test_placeholder_ids() -> None:
    assert placeholder_id("order-7", 2) == "pending-order-7-2"
    assert is_placeholder_id("pending-order-7-2")
    assert not is_placeholder_id(ASSET)


def test_placeholder_reference_marker_is_case_insensitive() -> None:
    assert is_placeholder_reference("placeholder_blocktris_needs_real_id")
    assert not is_placeholder_reference(FOX_REF)


def test_promotion_keeps_every_other_field() -> None:
    record = make_record()
    at = datetime(2025, 3, 1, tzinfo=UTC)

    promoted = record.promoted(ASSET, at=at)

    assert promoted.record_id == ASSET
    assert promoted.temp_id == record.temp_id
    assert promoted.state is RecordState.CONFIRMED
    assert promoted.confirmed_at == at
    assert promoted.reference_id == record.reference_id
    assert promoted.catalog_id == record.catalog_id
    assert promoted.created_at == record.created_at
    assert promoted.matches_id(record.record_id)
    assert promoted.matches_id(ASSET)


def test_confirmed_record_cannot_be_promoted_or_failed_again() -> None:
    promoted = make_record().promoted(ASSET)

    with pytest.raises(IntegrityError):
        promoted.promoted("e" * 64 + "i0")
    with pytest.raises(IntegrityError):
        promoted.failed("late")


def test_failed_record_is_terminal() -> None:
    failed = make_record().failed("no ledger match")

    assert failed.state is RecordState.FAILED
    assert failed.failure_reason == "no ledger match"
    with pytest.raises(IntegrityError):
        failed.promoted(ASSET)


def test_confirmed_identity_is_frozen() -> None:
    promoted = make_record().promoted(ASSET)

    promoted.ensure_compatible(replace(promoted, display_name="Wolf"))
    with pytest.raises(IntegrityError):
        promoted.ensure_compatible(replace(promoted, reference_id=FOX_REF))
    with pytest.raises(IntegrityError):
        promoted.ensure_compatible(replace(promoted, catalog_id="fox"))
    with pytest.raises(IntegrityError):
        promoted.ensure_compatible(replace(promoted, state=RecordState.PENDING))


def test_pending_record_accepts_any_overwrite() -> None:
    record = make_record()

    record.ensure_compatible(replace(record, catalog_id="fox", reference_id=FOX_REF))
