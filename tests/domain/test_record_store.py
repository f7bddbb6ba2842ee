from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from delegate_ledger.domain.errors import (
    IntegrityError,
    PersistenceError,
    StoreUnavailableError,
    ValidationError,
)
from delegate_ledger.domain.model import RecordState
from delegate_ledger.domain.record_store import LedgerRecordStore
from delegate_ledger.domain.validation import Validator
from tests.helpers.delegates import FOX_REF, OWNER, InMemoryRecordStore, make_record

if TYPE_CHECKING:
    from delegate_ledger.domain.catalog_registry import CatalogRegistry

ASSET = "c" * 64 + "i0"

Tiers = tuple[InMemoryRecordStore, InMemoryRecordStore]


def test_save_writes_primary_and_mirror(
    ledger_store: LedgerRecordStore, memory_tiers: Tiers
) -> None:
    primary, mirror = memory_tiers
    record = make_record()

    ledger_store.save_record(record)
    ledger_store.flush()

    assert primary.records == {record.record_id: record}
    assert mirror.records == {record.record_id: record}


def test_identical_saves_leave_one_row(
    ledger_store: LedgerRecordStore, memory_tiers: Tiers
) -> None:
    primary, _ = memory_tiers
    record = make_record()

    ledger_store.save_record(record)
    ledger_store.save_record(record)

    assert len(primary.records) == 1


def test_save_rejects_records_failing_validation(
    ledger_store: LedgerRecordStore, memory_tiers: Tiers
) -> None:
    primary, _ = memory_tiers

    with pytest.raises(ValidationError) as excinfo:
        ledger_store.save_record(make_record(reference_id=FOX_REF))

    assert excinfo.value.suggestion == "Fox"
    assert primary.records == {}


def test_primary_write_failure_is_escalated(
    ledger_store: LedgerRecordStore, memory_tiers: Tiers
) -> None:
    primary, mirror = memory_tiers
    primary.available = False

    with pytest.raises(PersistenceError):
        ledger_store.save_record(make_record())
    ledger_store.flush()

    assert mirror.records == {}


def test_mirror_failure_does_not_fail_the_write(
    ledger_store: LedgerRecordStore, memory_tiers: Tiers
) -> None:
    primary, mirror = memory_tiers
    mirror.available = False
    record = make_record()

    ledger_store.save_record(record)
    ledger_store.flush()

    assert record.record_id in primary.records


def test_reads_fall_through_to_mirror(
    ledger_store: LedgerRecordStore, memory_tiers: Tiers
) -> None:
    primary, _ = memory_tiers
    record = make_record()
    ledger_store.save_record(record)
    ledger_store.flush()

    primary.available = False

    assert ledger_store.get_record(record.record_id) == record
    assert ledger_store.exists_by_id(record.record_id)
    older_than = datetime.now(UTC) + timedelta(minutes=1)
    assert ledger_store.pending_records(older_than=older_than, limit=10) == [record]


def test_exists_by_id_needs_one_answering_tier(
    ledger_store: LedgerRecordStore, memory_tiers: Tiers
) -> None:
    primary, mirror = memory_tiers
    primary.available = False

    assert not ledger_store.exists_by_id(ASSET)

    mirror.available = False
    with pytest.raises(StoreUnavailableError):
        ledger_store.exists_by_id(ASSET)


def test_reads_return_defaults_when_every_tier_fails(
    ledger_store: LedgerRecordStore, memory_tiers: Tiers
) -> None:
    for tier in memory_tiers:
        tier.available = False

    assert ledger_store.get_record(ASSET) is None
    assert ledger_store.query_by_owner(OWNER) == []


def test_promotion_is_mirrored(ledger_store: LedgerRecordStore, memory_tiers: Tiers) -> None:
    primary, mirror = memory_tiers
    record = make_record()
    ledger_store.save_record(record)

    promoted = ledger_store.update_record_id(record.record_id, ASSET)
    ledger_store.flush()

    assert promoted is not None
    assert promoted.state is RecordState.CONFIRMED
    assert set(primary.records) == {ASSET}
    assert mirror.records[ASSET].temp_id == record.temp_id
    assert ledger_store.query_by_owner(OWNER) == [promoted]


def test_promotion_backfills_mirror_missing_the_record(
    catalog: CatalogRegistry,
) -> None:
    primary = InMemoryRecordStore("primary")
    mirror = InMemoryRecordStore("mirror")
    record = make_record()
    primary.records[record.record_id] = record
    store = LedgerRecordStore(primary, (mirror,), validator=Validator(catalog))

    store.update_record_id(record.record_id, ASSET)
    store.close()

    assert mirror.records[ASSET].state is RecordState.CONFIRMED


def test_promotion_is_idempotent(ledger_store: LedgerRecordStore) -> None:
    record = make_record()
    ledger_store.save_record(record)

    first = ledger_store.update_record_id(record.record_id, ASSET)
    second = ledger_store.update_record_id(record.record_id, ASSET)

    assert first == second


def test_promotion_to_taken_id_is_an_integrity_error(ledger_store: LedgerRecordStore) -> None:
    first = make_record(order_ref="order-1")
    second = make_record(order_ref="order-2")
    ledger_store.save_record(first)
    ledger_store.save_record(second)
    ledger_store.update_record_id(first.record_id, ASSET)

    with pytest.raises(IntegrityError):
        ledger_store.update_record_id(second.record_id, ASSET)


def test_unknown_promotion_returns_none(ledger_store: LedgerRecordStore) -> None:
    assert ledger_store.update_record_id("pending-nothing-0", ASSET) is None


def test_confirmed_identity_cannot_be_overwritten(ledger_store: LedgerRecordStore) -> None:
    record = make_record()
    ledger_store.save_record(record)
    promoted = ledger_store.update_record_id(record.record_id, ASSET)
    assert promoted is not None

    with pytest.raises(IntegrityError):
        ledger_store.save_record(
            make_record(
                "fox",
                reference_id=FOX_REF,
                display_name="Fox",
                record_id=ASSET,
            )
        )


def test_mark_failed_is_mirrored(ledger_store: LedgerRecordStore, memory_tiers: Tiers) -> None:
    _, mirror = memory_tiers
    record = make_record()
    ledger_store.save_record(record)

    failed = ledger_store.mark_failed(record.record_id, reason="expired")
    ledger_store.flush()

    assert failed is not None
    assert mirror.records[record.record_id].state is RecordState.FAILED


def test_health_reports_each_tier(ledger_store: LedgerRecordStore, memory_tiers: Tiers) -> None:
    memory_tiers[1].available = False

    health = ledger_store.health()

    assert [(tier.name, tier.available) for tier in health] == [
        ("primary", True),
        ("mirror", False),
    ]
