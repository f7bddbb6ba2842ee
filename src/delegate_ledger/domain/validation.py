"""The provenance gate: every new delegate must resolve to a catalog entry."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from delegate_ledger.domain.errors import IntegrityError, NotFoundError, ValidationError
from delegate_ledger.domain.model import RejectionReason, is_placeholder_reference

if TYPE_CHECKING:
    from collections.abc import Iterable

    from delegate_ledger.domain.catalog_registry import CatalogRegistry
    from delegate_ledger.domain.model import CatalogEntry, DelegateRecord

log = getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ValidationOutcome:
    """Result of a registration check.

    Rejections carry a machine-readable ``reason`` and, where one can be derived,
    the corrective ``suggestion`` (the correct display name) and the project the
    reference actually belongs to.
    """

    accepted: bool
    entry: CatalogEntry | None = None
    project_id: str | None = None
    reason: RejectionReason | None = None
    message: str = ""
    suggestion: str | None = None
    detected_project: str | None = None

    @property
    def error(self) -> ValidationError | None:
        if self.accepted:
            return None
        error_type = NotFoundError if self.reason is RejectionReason.NOT_FOUND else ValidationError
        return error_type(
            self.message,
            reason=str(self.reason) if self.reason else None,
            suggestion=self.suggestion,
            detected_project=self.detected_project,
        )

    def raise_for_rejection(self) -> CatalogEntry:
        error = self.error
        if error is not None:
            raise error
        if self.entry is None:
            raise IntegrityError("Accepted validation outcome carries no catalog entry")
        return self.entry


def _accepted(entry: CatalogEntry) -> ValidationOutcome:
    return ValidationOutcome(
        accepted=True,
        entry=entry,
        project_id=entry.project_id,
        message=f"{entry.display_name} ({entry.reference_id}) in {entry.project_id}",
    )


def _rejected(
    reason: RejectionReason,
    message: str,
    *,
    suggestion: str | None = None,
    detected_project: str | None = None,
) -> ValidationOutcome:
    log.warning(
        "Rejected delegate registration (%s): %s%s",
        reason,
        message,
        f" [suggestion: {suggestion}]" if suggestion else "",
    )
    return ValidationOutcome(
        accepted=False,
        reason=reason,
        message=message,
        suggestion=suggestion,
        detected_project=detected_project,
    )


def _names_match(name: str, entry: CatalogEntry) -> bool:
    return name.strip().casefold() == entry.display_name.strip().casefold()


@dataclass(slots=True, frozen=True)
class CollectionCheck:
    accepted: bool
    message: str = ""
    warnings: tuple[str, ...] = field(default_factory=tuple)


class Validator:
    def __init__(self, catalog: CatalogRegistry) -> None:
        self.catalog = catalog

    def validate(
        self, name: str, reference_id: str, project_id: str | None = None
    ) -> ValidationOutcome:
        name = (name or "").strip()
        reference_id = (reference_id or "").strip()
        if not name:
            return _rejected(RejectionReason.EMPTY_NAME, "Delegate name is required")
        if not reference_id:
            return _rejected(RejectionReason.EMPTY_REFERENCE, "Original reference id is required")
        if is_placeholder_reference(reference_id):
            return _rejected(
                RejectionReason.PLACEHOLDER_REFERENCE,
                f"Reference {reference_id} is a placeholder and cannot be assigned",
            )

        if project_id:
            return self._validate_in_project(name, reference_id, project_id)

        match = self.catalog.find_project_for_reference(reference_id)
        if match is None:
            return _rejected(
                RejectionReason.NOT_FOUND,
                f"Reference {reference_id} is not part of any catalog project",
            )
        if not _names_match(name, match.entry):
            return _rejected(
                RejectionReason.NAME_MISMATCH,
                f"Reference {reference_id} is {match.entry.display_name!r} in project "
                f"{match.project_id}, not {name!r}",
                suggestion=match.entry.display_name,
                detected_project=match.project_id,
            )
        return _accepted(match.entry)

    def _validate_in_project(
        self, name: str, reference_id: str, project_id: str
    ) -> ValidationOutcome:
        if self.catalog.project(project_id) is None:
            known = ", ".join(self.catalog.project_ids())
            return _rejected(
                RejectionReason.UNKNOWN_PROJECT,
                f"Unknown project {project_id!r} (known: {known})",
            )

        entry = self.catalog.lookup_by_reference(reference_id, project_id)
        if entry is None:
            match = self.catalog.find_project_for_reference(reference_id)
            if match is not None:
                return _rejected(
                    RejectionReason.WRONG_PROJECT,
                    f"Reference {reference_id} belongs to {match.entry.display_name!r} in "
                    f"project {match.project_id}, not {project_id}",
                    suggestion=match.entry.display_name,
                    detected_project=match.project_id,
                )
            return _rejected(
                RejectionReason.NOT_FOUND,
                f"Reference {reference_id} is not part of project {project_id}",
            )

        if not _names_match(name, entry):
            return _rejected(
                RejectionReason.NAME_MISMATCH,
                f"Reference {reference_id} is {entry.display_name!r} in project "
                f"{project_id}, not {name!r}",
                suggestion=entry.display_name,
                detected_project=project_id,
            )
        return _accepted(entry)

    def validate_record(self, record: DelegateRecord) -> ValidationOutcome:
        """Re-run the gate for a record about to be written."""

        if record.display_name:
            outcome = self.validate(record.display_name, record.reference_id, record.project_id)
        else:
            entry = self.catalog.lookup_by_reference(record.reference_id, record.project_id)
            if entry is None:
                return _rejected(
                    RejectionReason.NOT_FOUND,
                    f"Record {record.record_id} references unknown original "
                    f"{record.reference_id}",
                )
            outcome = self.validate(entry.display_name, record.reference_id, entry.project_id)
        if outcome.accepted and outcome.entry is not None and outcome.entry.id != record.catalog_id:
            return _rejected(
                RejectionReason.CATALOG_MISMATCH,
                f"Record {record.record_id} claims catalog id {record.catalog_id!r} but "
                f"{record.reference_id} is {outcome.entry.id!r}",
                suggestion=outcome.entry.display_name,
                detected_project=outcome.entry.project_id,
            )
        return outcome

    def validate_collection(
        self,
        name: str,
        reference_ids: Iterable[str],
        project_id: str | None = None,
    ) -> CollectionCheck:
        """Check a named group of originals; stray items only produce warnings."""

        if not (name or "").strip():
            return CollectionCheck(accepted=False, message="Collection name is required")
        references = [ref for ref in reference_ids if ref]
        if not references:
            return CollectionCheck(accepted=False, message="Collection must have at least one item")
        if not project_id:
            return CollectionCheck(accepted=True)

        warnings = tuple(
            f"Item {index} ({ref}) does not belong to project {project_id}"
            for index, ref in enumerate(references, start=1)
            if self.catalog.lookup_by_reference(ref, project_id) is None
        )
        return CollectionCheck(accepted=True, warnings=warnings)
