"""Off-ledger ownership records for issued delegates."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Final

from delegate_ledger.domain.errors import IntegrityError

from .enums import RecordState

PENDING_PREFIX: Final[str] = "pending-"


def placeholder_id(order_ref: str, index: int = 0) -> str:
    """Return the temporary id used until the ledger assigns the final asset reference."""

    return f"{PENDING_PREFIX}{order_ref}-{index}"


def is_placeholder_id(value: str) -> bool:
    return value.startswith(PENDING_PREFIX)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True, frozen=True)
class DelegateRecord:
    """One issued delegate and its current reconciliation state.

    Records are never deleted. The only permitted transitions are
    ``PENDING -> CONFIRMED`` (via :meth:`promoted`) and ``PENDING -> FAILED``
    (via :meth:`failed`). Once confirmed, ``reference_id`` and ``catalog_id``
    are frozen for good.
    """

    record_id: str
    catalog_id: str
    reference_id: str
    owner_address: str
    project_id: str | None = None
    display_name: str | None = None
    state: RecordState = RecordState.PENDING
    issuance_ref: str | None = None
    temp_id: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    confirmed_at: datetime | None = None
    failure_reason: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.state is RecordState.PENDING

    @property
    def is_confirmed(self) -> bool:
        return self.state is RecordState.CONFIRMED

    def matches_id(self, value: str) -> bool:
        return value in {self.record_id, self.temp_id}

    def promoted(self, new_id: str, *, at: datetime | None = None) -> DelegateRecord:
        if not self.is_pending:
            raise IntegrityError(
                f"Cannot promote record {self.record_id} in state {self.state}"
            )
        temp_id = self.temp_id
        if temp_id is None and self.record_id != new_id:
            temp_id = self.record_id
        return replace(
            self,
            record_id=new_id,
            temp_id=temp_id,
            state=RecordState.CONFIRMED,
            confirmed_at=at or _utcnow(),
        )

    def failed(self, reason: str) -> DelegateRecord:
        if not self.is_pending:
            raise IntegrityError(f"Cannot fail record {self.record_id} in state {self.state}")
        return replace(self, state=RecordState.FAILED, failure_reason=reason)

    def ensure_compatible(self, incoming: DelegateRecord) -> None:
        """Raise if ``incoming`` would overwrite this record in a forbidden way."""

        if self.state is RecordState.PENDING:
            return
        if incoming.reference_id != self.reference_id or incoming.catalog_id != self.catalog_id:
            raise IntegrityError(
                f"Record {self.record_id} is {self.state}; its catalog identity "
                f"({self.catalog_id}, {self.reference_id}) cannot change to "
                f"({incoming.catalog_id}, {incoming.reference_id})"
            )
        if incoming.state is not self.state:
            raise IntegrityError(
                f"Record {self.record_id} cannot move from {self.state} to {incoming.state}"
            )
