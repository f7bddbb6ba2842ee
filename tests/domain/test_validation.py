from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from delegate_ledger.domain.errors import IntegrityError, NotFoundError, ValidationError
from delegate_ledger.domain.model import RejectionReason
from delegate_ledger.domain.validation import ValidationOutcome, Validator
from tests.helpers.delegates import FOX_REF, PLACEHOLDER_REF, ROBOT_REF, WOLF_REF, make_record

if TYPE_CHECKING:
    from delegate_ledger.domain.catalog_registry import CatalogRegistry


@pytest.fixture
def validator(catalog: CatalogRegistry) -> Validator:
    return Validator(catalog)


def test_accepts_matching_name_and_reference(validator: Validator) -> None:
    outcome = validator.validate("Wolf", WOLF_REF, "black-and-wild")

    assert outcome.accepted
    assert outcome.project_id == "black-and-wild"
    assert outcome.entry is not None
    assert outcome.entry.id == "wolf"
    assert outcome.error is None


def test_name_comparison_ignores_case_and_whitespace(validator: Validator) -> None:
    assert validator.validate("  wOLF ", WOLF_REF).accepted


def test_auto_detects_project(validator: Validator) -> None:
    outcome = validator.validate("Robot", ROBOT_REF)

    assert outcome.accepted
    assert outcome.project_id == "tech-and-games"


def test_reference_of_another_entry_is_rejected_with_suggestion(validator: Validator) -> None:
    outcome = validator.validate("Wolf", FOX_REF, "black-and-wild")

    assert not outcome.accepted
    assert outcome.reason is RejectionReason.NAME_MISMATCH
    assert outcome.suggestion == "Fox"


def test_reference_from_other_project(validator: Validator) -> None:
    outcome = validator.validate("Robot", ROBOT_REF, "black-and-wild")

    assert outcome.reason is RejectionReason.WRONG_PROJECT
    assert outcome.suggestion == "Robot"
    assert outcome.detected_project == "tech-and-games"


@pytest.mark.parametrize(
    ("name", "reference", "reason"),
    [
        ("", WOLF_REF, RejectionReason.EMPTY_NAME),
        ("Wolf", "  ", RejectionReason.EMPTY_REFERENCE),
        ("TIMEBIT", PLACEHOLDER_REF, RejectionReason.PLACEHOLDER_REFERENCE),
        ("Wolf", "f" * 64 + "i0", RejectionReason.NOT_FOUND),
    ],
)
def test_rejections(
    validator: Validator, name: str, reference: str, reason: RejectionReason
) -> None:
    outcome = validator.validate(name, reference)

    assert not outcome.accepted
    assert outcome.reason is reason


def test_placeholder_rejected_even_with_project(validator: Validator) -> None:
    outcome = validator.validate("TIMEBIT", PLACEHOLDER_REF, "tech-and-games")

    assert outcome.reason is RejectionReason.PLACEHOLDER_REFERENCE


def test_unknown_project(validator: Validator) -> None:
    outcome = validator.validate("Wolf", WOLF_REF, "deep-space")

    assert outcome.reason is RejectionReason.UNKNOWN_PROJECT
    assert "black-and-wild" in outcome.message


def test_not_found_maps_to_not_found_error(validator: Validator) -> None:
    outcome = validator.validate("Wolf", "a" * 64 + "i0")

    error = outcome.error
    assert isinstance(error, NotFoundError)
    with pytest.raises(NotFoundError):
        outcome.raise_for_rejection()


def test_raise_for_rejection_returns_entry(validator: Validator) -> None:
    entry = validator.validate("Wolf", WOLF_REF).raise_for_rejection()

    assert entry.reference_id == WOLF_REF


def test_accepted_outcome_without_entry_is_an_integrity_error() -> None:
    with pytest.raises(IntegrityError):
        ValidationOutcome(accepted=True).raise_for_rejection()


def test_error_carries_suggestion(validator: Validator) -> None:
    error = validator.validate("Fox", WOLF_REF).error

    assert isinstance(error, ValidationError)
    assert error.suggestion == "Wolf"
    assert error.reason == "name_mismatch"
    assert error.detected_project == "black-and-wild"


def test_validate_record_checks_catalog_id(validator: Validator) -> None:
    assert validator.validate_record(make_record()).accepted

    outcome = validator.validate_record(make_record("fox"))

    assert outcome.reason is RejectionReason.CATALOG_MISMATCH
    assert outcome.suggestion == "Wolf"


def test_validate_record_without_display_name(validator: Validator) -> None:
    record = make_record("fox", reference_id=FOX_REF, display_name=None)

    assert validator.validate_record(record).accepted

    unknown = make_record(reference_id="b" * 64 + "i0", display_name=None)
    assert validator.validate_record(unknown).reason is RejectionReason.NOT_FOUND


def test_validate_collection_warns_about_strays(validator: Validator) -> None:
    check = validator.validate_collection(
        "Pack", [WOLF_REF, ROBOT_REF, FOX_REF], project_id="black-and-wild"
    )

    assert check.accepted
    assert len(check.warnings) == 1
    assert "Item 2" in check.warnings[0]


def test_validate_collection_requires_name_and_items(validator: Validator) -> None:
    assert not validator.validate_collection("", [WOLF_REF]).accepted
    assert not validator.validate_collection("Pack", []).accepted
