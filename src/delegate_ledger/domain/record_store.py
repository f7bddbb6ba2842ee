"""Ranked composite over the record store tiers.

Tiers are tried in declared order. The first tier is authoritative: its write
failures are escalated to the caller. Every later tier is a mirror that is
written in the background and only read when the tiers before it fail.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from delegate_ledger.domain.errors import PersistenceError, StoreUnavailableError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from delegate_ledger.domain.model import DelegateRecord
    from delegate_ledger.domain.ports import RecordStore
    from delegate_ledger.domain.validation import Validator

log = getLogger(__name__)


@dataclass(slots=True, frozen=True)
class TierHealth:
    name: str
    available: bool


class LedgerRecordStore:
    def __init__(
        self,
        primary: RecordStore,
        mirrors: Sequence[RecordStore] = (),
        *,
        validator: Validator,
    ) -> None:
        self.primary = primary
        self.mirrors = tuple(mirrors)
        self.validator = validator
        # one worker keeps mirror writes in submission order
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="record-mirror")
        self._lock = threading.Lock()
        self._pending: set[Future[None]] = set()

    @property
    def tiers(self) -> tuple[RecordStore, ...]:
        return (self.primary, *self.mirrors)

    # writes ------------------------------------------------------------------

    def save_record(self, record: DelegateRecord) -> None:
        outcome = self.validator.validate_record(record)
        error = outcome.error
        if error is not None:
            raise error
        try:
            self.primary.save_record(record)
        except PersistenceError:
            log.exception(f"Authoritative write failed for record {record.record_id}")
            raise
        self._mirror("save", record.record_id, lambda tier: tier.save_record(record))

    def update_record_id(
        self,
        old_id: str,
        new_id: str,
        *,
        confirmed_at: datetime | None = None,
    ) -> DelegateRecord | None:
        """Promote ``old_id`` to ``new_id`` in the authoritative tier, then mirror it.

        Returns ``None`` when no record carries ``old_id`` as record or temp id.
        """

        at = confirmed_at or datetime.now(UTC)
        try:
            promoted = self.primary.update_record_id(old_id, new_id, confirmed_at=at)
        except PersistenceError:
            log.exception(f"Authoritative promotion {old_id} -> {new_id} failed")
            raise
        if promoted is None:
            log.warning("No record found for %s, nothing promoted", old_id)
            return None

        def mirror_promotion(tier: RecordStore) -> None:
            if tier.update_record_id(old_id, new_id, confirmed_at=at) is None:
                tier.save_record(promoted)

        self._mirror("promote", new_id, mirror_promotion)
        log.info("Promoted %s -> %s", old_id, new_id)
        return promoted

    def mark_failed(self, record_id: str, *, reason: str) -> DelegateRecord | None:
        failed = self.primary.mark_failed(record_id, reason=reason)
        if failed is not None:
            self._mirror("fail", record_id, lambda tier: tier.save_record(failed))
        return failed

    # reads -------------------------------------------------------------------

    def exists_by_id(self, record_id: str) -> bool:
        answered = False
        for tier in self.tiers:
            try:
                if tier.exists_by_id(record_id):
                    return True
            except PersistenceError as exc:
                log.warning(f"{tier.name}: existence check for {record_id} failed: {exc}")
                continue
            answered = True
        if not answered:
            raise StoreUnavailableError(f"No record store tier could check {record_id}")
        return False

    def get_record(self, record_id: str) -> DelegateRecord | None:
        return self._read("get_record", lambda tier: tier.get_record(record_id), None)

    def query_by_owner(
        self, owner_address: str, *, confirmed_only: bool = True
    ) -> list[DelegateRecord]:
        return self._read(
            "query_by_owner",
            lambda tier: tier.query_by_owner(owner_address, confirmed_only=confirmed_only),
            [],
        )

    def pending_records(self, *, older_than: datetime, limit: int) -> list[DelegateRecord]:
        return self._read(
            "pending_records",
            lambda tier: tier.pending_records(older_than=older_than, limit=limit),
            [],
        )

    def health(self) -> list[TierHealth]:
        return [TierHealth(name=tier.name, available=tier.probe()) for tier in self.tiers]

    # lifecycle ---------------------------------------------------------------

    def flush(self, timeout: float | None = None) -> None:
        """Block until queued mirror writes have been applied."""

        with self._lock:
            pending = set(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    def close(self) -> None:
        self.flush()
        self._executor.shutdown(wait=True)

    # internals ---------------------------------------------------------------

    def _read[T](self, operation: str, call: Callable[[RecordStore], T], default: T) -> T:
        for tier in self.tiers:
            try:
                return call(tier)
            except PersistenceError as exc:
                log.warning(f"{tier.name}: {operation} failed, trying next tier: {exc}")
        log.error("%s: every record store tier failed", operation)
        return default

    def _mirror(
        self, operation: str, record_id: str, call: Callable[[RecordStore], None]
    ) -> None:
        for tier in self.mirrors:
            future = self._executor.submit(self._apply_mirror, tier, operation, record_id, call)
            with self._lock:
                self._pending.add(future)
            future.add_done_callback(self._forget)

    def _forget(self, future: Future[None]) -> None:
        with self._lock:
            self._pending.discard(future)

    @staticmethod
    def _apply_mirror(
        tier: RecordStore,
        operation: str,
        record_id: str,
        call: Callable[[RecordStore], None],
    ) -> None:
        try:
            call(tier)
        except Exception:  # noqa: BLE001
            log.warning(f"{tier.name}: mirror {operation} of {record_id} failed", exc_info=True)

