"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class RecordState(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class JobState(StrEnum):
    IDLE = "idle"
    SCANNING = "scanning"
    MATCHING = "matching"
    DONE = "done"


class SignatureScope(StrEnum):
    """Portion of a proposal that one authorization commits to."""

    ALL = "all"
    # input 0 and output 0 only; anyone may append further inputs and outputs
    SINGLE_ANYONECANPAY = "single|anyonecanpay"


class IntentStatus(StrEnum):
    UNSIGNED = "unsigned"
    AUTHORIZED = "authorized"
    LISTED = "listed"


class RejectionReason(StrEnum):
    EMPTY_NAME = "empty_name"
    EMPTY_REFERENCE = "empty_reference"
    PLACEHOLDER_REFERENCE = "placeholder_reference"
    UNKNOWN_PROJECT = "unknown_project"
    WRONG_PROJECT = "wrong_project"
    NOT_FOUND = "not_found"
    NAME_MISMATCH = "name_mismatch"
    CATALOG_MISMATCH = "catalog_mismatch"


class DetectionSource(StrEnum):
    STRUCTURED = "structured"
    EMBEDDED = "embedded"
    REFERENCE_SCAN = "reference_scan"
