"""Background promotion of pending delegate records against ledger truth."""

from __future__ import annotations

import threading
import time
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from logging import getLogger
from typing import TYPE_CHECKING

from delegate_ledger.domain.detection import detect_delegate
from delegate_ledger.domain.errors import (
    IntegrityError,
    PersistenceError,
    TransientIndexerError,
)
from delegate_ledger.domain.model import JobState

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence

    from delegate_ledger.domain.catalog_registry import CatalogRegistry
    from delegate_ledger.domain.model import DelegateMetadata, DelegateRecord, IndexedItem
    from delegate_ledger.domain.ports import GroundTruthScanner
    from delegate_ledger.domain.record_store import LedgerRecordStore

log = getLogger(__name__)

_STARTABLE = frozenset({JobState.IDLE, JobState.DONE})


@dataclass(slots=True, frozen=True)
class ReconciliationPolicy:
    grace: timedelta = timedelta(minutes=5)
    batch_limit: int = 50
    recent_items: int = 100
    page_size: int = 100
    max_pages: int = 1000
    max_run_seconds: float = 240.0
    max_parallel_owners: int = 4
    interval_seconds: float = 300.0
    abandon_after: timedelta | None = timedelta(days=7)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True, frozen=True)
class Diagnostic:
    owner: str | None
    subject: str
    message: str


@dataclass(slots=True)
class RunSummary:
    skipped: bool = False
    owners: int = 0
    checked: int = 0
    updated: int = 0
    failed: int = 0
    skipped_known: int = 0
    unmatched: int = 0
    expired: int = 0
    timed_out: bool = False
    duration_seconds: float = 0.0
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def merge(self, other: RunSummary) -> None:
        self.checked += other.checked
        self.updated += other.updated
        self.failed += other.failed
        self.skipped_known += other.skipped_known
        self.unmatched += other.unmatched
        self.expired += other.expired
        self.timed_out = self.timed_out or other.timed_out
        self.diagnostics.extend(other.diagnostics)

    def note(self, owner: str | None, subject: str, message: str) -> None:
        self.diagnostics.append(Diagnostic(owner=owner, subject=subject, message=message))


@dataclass(slots=True)
class _OwnerBatch:
    owner: str
    records: list[DelegateRecord]
    items: tuple[IndexedItem, ...] | None = None
    exhaustive: bool = False


class ReconciliationJob:
    """Single-flight job that promotes pending records once their delegate is on chain.

    A run selects pending records older than the grace window, scans each owner's
    most recent ledger items (SCANNING), then inspects unknown items and promotes
    the oldest pending record with the same catalog identity (MATCHING). Failures
    are isolated per item and per owner and end up in the run summary; nothing
    escapes :meth:`run_once`. A trigger while a run is in flight is a no-op.
    """

    def __init__(
        self,
        store: LedgerRecordStore,
        scanner: GroundTruthScanner,
        catalog: CatalogRegistry,
        policy: ReconciliationPolicy | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.scanner = scanner
        self.catalog = catalog
        self.policy = policy or ReconciliationPolicy()
        self._clock = clock
        self._monotonic = monotonic
        self._state = JobState.IDLE
        self._state_lock = threading.Lock()

    @property
    def state(self) -> JobState:
        with self._state_lock:
            return self._state

    def _compare_and_set(self, expected: frozenset[JobState], new: JobState) -> bool:
        with self._state_lock:
            if self._state not in expected:
                return False
            self._state = new
            return True

    def _set_state(self, new: JobState) -> None:
        with self._state_lock:
            self._state = new

    def trigger(self) -> RunSummary:
        log.info("Manual reconciliation trigger")
        return self.run_once()

    def run_once(self) -> RunSummary:
        if not self._compare_and_set(_STARTABLE, JobState.SCANNING):
            log.info("Reconciliation already running (%s), skipping", self.state)
            return RunSummary(skipped=True)

        started = self._monotonic()
        summary = RunSummary()
        try:
            self._run(summary, deadline=started + self.policy.max_run_seconds)
        except Exception as exc:  # noqa: BLE001
            log.exception("Reconciliation run aborted")
            summary.note(None, "run", f"aborted: {exc}")
        finally:
            summary.duration_seconds = self._monotonic() - started
            self._set_state(JobState.DONE)

        log.info(
            f"Reconciliation finished in {summary.duration_seconds:.2f}s: "
            f"owners={summary.owners} checked={summary.checked} updated={summary.updated} "
            f"failed={summary.failed} expired={summary.expired} timed_out={summary.timed_out}"
        )
        return summary

    def run_forever(self, stop: threading.Event, *, interval: float | None = None) -> None:
        """Run until ``stop`` is set, sleeping ``interval`` seconds between runs."""

        wait_seconds = self.policy.interval_seconds if interval is None else interval
        while not stop.is_set():
            self.run_once()
            stop.wait(wait_seconds)

    # phases ------------------------------------------------------------------

    def _run(self, summary: RunSummary, *, deadline: float) -> None:
        now = self._clock()
        pending = self.store.pending_records(
            older_than=now - self.policy.grace,
            limit=self.policy.batch_limit,
        )
        if not pending:
            log.info("No pending records to reconcile")
            return

        batches = _group_by_owner(pending)
        summary.owners = len(batches)
        log.info(f"Reconciling {len(pending)} pending records across {len(batches)} owners")

        self._for_each_owner(
            batches, lambda batch: self._scan_owner(batch, deadline=deadline), summary
        )

        self._set_state(JobState.MATCHING)
        known_references = self.catalog.reference_ids()
        self._for_each_owner(
            batches,
            lambda batch: self._match_owner(batch, known_references, deadline=deadline),
            summary,
        )

    def _for_each_owner(
        self,
        batches: Mapping[str, _OwnerBatch],
        work: Callable[[_OwnerBatch], RunSummary],
        summary: RunSummary,
    ) -> None:
        workers = min(self.policy.max_parallel_owners, len(batches))
        if workers <= 1:
            for batch in batches.values():
                summary.merge(work(batch))
            return
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="reconcile") as pool:
            for owner_summary in pool.map(work, batches.values()):
                summary.merge(owner_summary)

    def _scan_owner(self, batch: _OwnerBatch, *, deadline: float) -> RunSummary:
        summary = RunSummary()
        if self._monotonic() >= deadline:
            summary.timed_out = True
            return summary
        try:
            scan = self.scanner.scan_owner(
                batch.owner,
                page_size=self.policy.page_size,
                max_items=self.policy.recent_items,
                max_pages=self.policy.max_pages,
            )
        except TransientIndexerError as exc:
            log.warning(f"Scan of {batch.owner} failed: {exc}")
            summary.failed += len(batch.records)
            summary.note(batch.owner, batch.owner, f"scan failed: {exc}")
            return summary
        batch.items = scan.items
        batch.exhaustive = scan.exhaustive
        log.debug(
            "Scanned %s: %s recent items (%s)", batch.owner, len(scan.items), scan.stop_reason
        )
        return summary

    def _match_owner(
        self,
        batch: _OwnerBatch,
        known_references: tuple[str, ...],
        *,
        deadline: float,
    ) -> RunSummary:
        summary = RunSummary()
        if batch.items is None:
            return summary

        remaining = list(batch.records)
        for item in batch.items:
            if not remaining:
                break
            if self._monotonic() >= deadline:
                summary.timed_out = True
                break
            summary.checked += 1
            self._inspect_item(batch.owner, item, remaining, known_references, summary)

        if summary.timed_out:
            return summary
        if batch.exhaustive:
            self._expire_stale(batch.owner, remaining, summary)
        elif remaining:
            # a truncated scan cannot prove a delegate is missing
            log.debug(
                f"Scan of {batch.owner} was not exhaustive, "
                f"leaving {len(remaining)} pending records unexpired"
            )
        return summary

    def _inspect_item(
        self,
        owner: str,
        item: IndexedItem,
        remaining: list[DelegateRecord],
        known_references: tuple[str, ...],
        summary: RunSummary,
    ) -> None:
        try:
            if self.store.exists_by_id(item.item_id):
                summary.skipped_known += 1
                return
            content = self.scanner.get_item_content(item.item_id)
        except (PersistenceError, TransientIndexerError) as exc:
            summary.failed += 1
            summary.note(owner, item.item_id, str(exc))
            return

        metadata = detect_delegate(content, known_references)
        if metadata is None:
            return

        record = _find_match(
            remaining, metadata, owner=owner, item_id=item.item_id, summary=summary
        )
        if record is None:
            summary.unmatched += 1
            log.info(
                f"Delegate {item.item_id} ({metadata.catalog_id or metadata.reference_id}) "
                f"has no pending record for {owner}"
            )
            return

        try:
            promoted = self.store.update_record_id(
                record.record_id, item.item_id, confirmed_at=self._clock()
            )
        except (PersistenceError, IntegrityError) as exc:
            summary.failed += 1
            summary.note(owner, record.record_id, f"promotion to {item.item_id} failed: {exc}")
            return

        remaining.remove(record)
        if promoted is None:
            summary.failed += 1
            summary.note(owner, record.record_id, "record vanished before promotion")
            return
        summary.updated += 1

    def _expire_stale(
        self, owner: str, remaining: Sequence[DelegateRecord], summary: RunSummary
    ) -> None:
        abandon_after = self.policy.abandon_after
        if abandon_after is None:
            return
        cutoff = self._clock() - abandon_after
        for record in remaining:
            if record.created_at > cutoff:
                continue
            reason = f"no ledger match within {abandon_after.days} days"
            try:
                self.store.mark_failed(record.record_id, reason=reason)
            except (PersistenceError, IntegrityError) as exc:
                summary.failed += 1
                summary.note(owner, record.record_id, f"expiry failed: {exc}")
                continue
            summary.expired += 1
            log.warning("Pending record %s expired: %s", record.record_id, reason)


def _group_by_owner(records: Iterable[DelegateRecord]) -> dict[str, _OwnerBatch]:
    grouped: defaultdict[str, list[DelegateRecord]] = defaultdict(list)
    for record in records:
        grouped[record.owner_address].append(record)
    return {
        owner: _OwnerBatch(owner=owner, records=sorted(items, key=lambda r: r.created_at))
        for owner, items in grouped.items()
    }


def _find_match(
    candidates: Sequence[DelegateRecord],
    metadata: DelegateMetadata,
    *,
    owner: str,
    item_id: str,
    summary: RunSummary,
) -> DelegateRecord | None:
    """Oldest same-owner pending record with the same catalog identity."""

    for record in candidates:
        if record.owner_address != owner:
            continue
        if metadata.catalog_id is not None:
            if record.catalog_id != metadata.catalog_id:
                continue
            if record.reference_id != metadata.reference_id:
                summary.note(
                    owner,
                    item_id,
                    f"catalog id {metadata.catalog_id} matches {record.record_id} but "
                    f"reference {metadata.reference_id} differs from {record.reference_id}",
                )
                continue
            return record
        if record.reference_id == metadata.reference_id:
            return record
    return None
