"""Creation path for new delegates: validate, issue, record."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from delegate_ledger.domain.detection import build_delegate_content
from delegate_ledger.domain.model import DelegateRecord, RecordState, placeholder_id

if TYPE_CHECKING:
    from collections.abc import Sequence

    from delegate_ledger.domain.model import CatalogEntry, RejectionReason
    from delegate_ledger.domain.ports import IssuanceResult, Issuer
    from delegate_ledger.domain.record_store import LedgerRecordStore
    from delegate_ledger.domain.validation import ValidationOutcome, Validator

log = getLogger(__name__)


@dataclass(slots=True, frozen=True)
class RegistrationRequest:
    name: str
    reference_id: str
    owner_address: str
    project_id: str | None = None


@dataclass(slots=True, frozen=True)
class RegistrationOutcome:
    validation: ValidationOutcome
    record: DelegateRecord | None = None
    issuance: IssuanceResult | None = None

    @property
    def accepted(self) -> bool:
        return self.validation.accepted and self.record is not None

    @property
    def reason(self) -> RejectionReason | None:
        return self.validation.reason

    @property
    def suggestion(self) -> str | None:
        return self.validation.suggestion

    @property
    def project_id(self) -> str | None:
        return self.validation.project_id


@dataclass(slots=True)
class BatchOutcome:
    outcomes: list[RegistrationOutcome] = field(default_factory=list)

    @property
    def accepted(self) -> list[RegistrationOutcome]:
        return [outcome for outcome in self.outcomes if outcome.accepted]

    @property
    def rejected(self) -> list[RegistrationOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.accepted]


def build_record(
    entry: CatalogEntry,
    *,
    owner_address: str,
    order_ref: str,
    index: int = 0,
    asset_ref: str | None = None,
    created_at: datetime | None = None,
) -> DelegateRecord:
    """Pending record keyed by a placeholder, or confirmed if the asset id is already known."""

    created = created_at or datetime.now(UTC)
    if asset_ref:
        return DelegateRecord(
            record_id=asset_ref,
            catalog_id=entry.id,
            reference_id=entry.reference_id,
            owner_address=owner_address,
            project_id=entry.project_id,
            display_name=entry.display_name,
            state=RecordState.CONFIRMED,
            issuance_ref=order_ref,
            created_at=created,
            confirmed_at=created,
        )
    temp_id = placeholder_id(order_ref, index)
    return DelegateRecord(
        record_id=temp_id,
        temp_id=temp_id,
        catalog_id=entry.id,
        reference_id=entry.reference_id,
        owner_address=owner_address,
        project_id=entry.project_id,
        display_name=entry.display_name,
        issuance_ref=order_ref,
        created_at=created,
    )


class DelegateRegistrar:
    def __init__(
        self,
        validator: Validator,
        store: LedgerRecordStore,
        issuer: Issuer | None = None,
    ) -> None:
        self.validator = validator
        self.store = store
        self.issuer = issuer

    def register(
        self,
        name: str,
        reference_id: str,
        project_id: str | None = None,
        *,
        owner_address: str,
        order_ref: str,
        index: int = 0,
        asset_ref: str | None = None,
    ) -> RegistrationOutcome:
        """Record a delegate whose issuance order already exists."""

        validation = self.validator.validate(name, reference_id, project_id)
        if not validation.accepted or validation.entry is None:
            return RegistrationOutcome(validation=validation)

        record = build_record(
            validation.entry,
            owner_address=owner_address,
            order_ref=order_ref,
            index=index,
            asset_ref=asset_ref,
        )
        self.store.save_record(record)
        log.info(
            f"Registered {record.display_name} ({record.state}) as {record.record_id} "
            f"for {owner_address}"
        )
        return RegistrationOutcome(validation=validation, record=record)

    def issue(
        self,
        name: str,
        reference_id: str,
        project_id: str | None = None,
        *,
        owner_address: str,
        fee_rate: float,
        index: int = 0,
    ) -> RegistrationOutcome:
        """Validate, ask the issuer to inscribe the delegate, then record the result."""

        if self.issuer is None:
            raise RuntimeError("No issuer configured for this registrar")
        validation = self.validator.validate(name, reference_id, project_id)
        if not validation.accepted or validation.entry is None:
            return RegistrationOutcome(validation=validation)

        content = build_delegate_content(validation.entry)
        issuance = self.issuer(content=content, destination=owner_address, fee_rate=fee_rate)
        record = build_record(
            validation.entry,
            owner_address=owner_address,
            order_ref=issuance.order_ref,
            index=index,
            asset_ref=issuance.asset_ref,
        )
        self.store.save_record(record)
        log.info(
            "Issued %s for %s: order=%s record=%s",
            validation.entry.display_name,
            owner_address,
            issuance.order_ref,
            record.record_id,
        )
        return RegistrationOutcome(validation=validation, record=record, issuance=issuance)

    def issue_batch(
        self, requests: Sequence[RegistrationRequest], *, fee_rate: float
    ) -> BatchOutcome:
        """Issue several delegates; each request keeps its position as placeholder index."""

        batch = BatchOutcome()
        for index, request in enumerate(requests):
            batch.outcomes.append(
                self.issue(
                    request.name,
                    request.reference_id,
                    request.project_id,
                    owner_address=request.owner_address,
                    fee_rate=fee_rate,
                    index=index,
                )
            )
        log.info(
            f"Batch issuance finished: {len(batch.accepted)} recorded, "
            f"{len(batch.rejected)} rejected"
        )
        return batch
