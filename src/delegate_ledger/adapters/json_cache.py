"""Restart-durable mirror of the record store, kept as a single JSON document."""

from __future__ import annotations

import os
import tempfile
import threading
from datetime import UTC, datetime
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from delegate_ledger.domain.errors import IntegrityError, StoreUnavailableError
from delegate_ledger.domain.model import DelegateRecord, RecordState
from delegate_ledger.domain.ports import RecordStore

if TYPE_CHECKING:
    from collections.abc import Iterator

log = getLogger(__name__)

_RECORDS = TypeAdapter(dict[str, DelegateRecord])


class JsonRecordCache:
    """Flat ``record_id -> record`` map, loaded once and rewritten on every mutation."""

    name = "cache"

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._records: dict[str, DelegateRecord] = {}
        self._available = True
        self._load()

    def _load(self) -> None:
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return
        except OSError as exc:
            log.warning(f"Record cache {self.path} unreadable: {exc}")
            self._available = False
            return
        if not raw.strip():
            return
        try:
            self._records = _RECORDS.validate_json(raw)
        except PydanticValidationError:
            log.warning(f"Record cache {self.path} is corrupt, starting empty", exc_info=True)
            self._records = {}
            return
        log.debug(f"Loaded {len(self._records)} cached records from {self.path}")

    def _flush(self) -> None:
        payload = _RECORDS.dump_json(self._records, indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".records-", dir=self.path.parent)
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(payload)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            self._available = False
            raise StoreUnavailableError(f"Cannot write record cache {self.path}: {exc}") from exc
        self._available = True

    def _require_available(self) -> None:
        if not self._available:
            raise StoreUnavailableError(f"Record cache {self.path} is unavailable")

    def _locate(self, record_id: str) -> DelegateRecord | None:
        record = self._records.get(record_id)
        if record is not None:
            return record
        return next((r for r in self._records.values() if r.temp_id == record_id), None)

    def _iter(self) -> Iterator[DelegateRecord]:
        return iter(list(self._records.values()))

    # RecordStore -------------------------------------------------------------

    def probe(self) -> bool:
        if self._available:
            return True
        # a previous write failed; see whether the directory is writable again
        self._available = os.access(self.path.parent, os.W_OK)
        return self._available

    def save_record(self, record: DelegateRecord) -> None:
        with self._lock:
            self._require_available()
            existing = self._records.get(record.record_id)
            if existing is not None:
                existing.ensure_compatible(record)
            self._records[record.record_id] = record
            self._flush()

    def update_record_id(
        self,
        old_id: str,
        new_id: str,
        *,
        confirmed_at: datetime | None = None,
    ) -> DelegateRecord | None:
        with self._lock:
            self._require_available()
            record = self._locate(old_id)
            if record is None:
                return None
            if record.is_confirmed and record.record_id == new_id:
                return record
            clash = self._records.get(new_id)
            if clash is not None and clash.record_id != record.record_id:
                raise IntegrityError(f"Cannot promote {old_id}: {new_id} is already recorded")
            promoted = record.promoted(new_id, at=confirmed_at or datetime.now(UTC))
            self._records.pop(record.record_id, None)
            self._records[new_id] = promoted
            self._flush()
            return promoted

    def exists_by_id(self, record_id: str) -> bool:
        with self._lock:
            self._require_available()
            return self._locate(record_id) is not None

    def get_record(self, record_id: str) -> DelegateRecord | None:
        with self._lock:
            self._require_available()
            return self._locate(record_id)

    def query_by_owner(
        self, owner_address: str, *, confirmed_only: bool = True
    ) -> list[DelegateRecord]:
        with self._lock:
            self._require_available()
            records = [
                r
                for r in self._iter()
                if r.owner_address == owner_address
                and (not confirmed_only or r.state is RecordState.CONFIRMED)
            ]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    def pending_records(self, *, older_than: datetime, limit: int) -> list[DelegateRecord]:
        with self._lock:
            self._require_available()
            records = [
                r for r in self._iter() if r.is_pending and r.created_at <= older_than
            ]
        return sorted(records, key=lambda r: r.created_at)[:limit]

    def mark_failed(self, record_id: str, *, reason: str) -> DelegateRecord | None:
        with self._lock:
            self._require_available()
            record = self._locate(record_id)
            if record is None:
                return None
            if record.state is RecordState.FAILED:
                return record
            failed = record.failed(reason)
            self._records[record.record_id] = failed
            self._flush()
            return failed

    def __len__(self) -> int:
        return len(self._records)

    def snapshot(self) -> dict[str, DelegateRecord]:
        with self._lock:
            return dict(self._records)


if TYPE_CHECKING:
    _store_check: RecordStore = JsonRecordCache("records.json")
