"""Domain model for delegate provenance."""

from __future__ import annotations

from .catalog import PLACEHOLDER_MARKER, CatalogEntry, CatalogProject, is_placeholder_reference
from .enums import (
    DetectionSource,
    IntentStatus,
    JobState,
    RecordState,
    RejectionReason,
    SignatureScope,
)
from .intents import IntentInput, IntentOutput, MarketplaceListing, TransferIntent
from .ledger import CustodialUnit, DelegateMetadata, IndexedItem, IndexerPage, ScanCursor
from .records import PENDING_PREFIX, DelegateRecord, is_placeholder_id, placeholder_id

__all__ = [
    "PENDING_PREFIX",
    "PLACEHOLDER_MARKER",
    "CatalogEntry",
    "CatalogProject",
    "CustodialUnit",
    "DelegateMetadata",
    "DelegateRecord",
    "DetectionSource",
    "IndexedItem",
    "IndexerPage",
    "IntentInput",
    "IntentOutput",
    "IntentStatus",
    "JobState",
    "MarketplaceListing",
    "RecordState",
    "RejectionReason",
    "ScanCursor",
    "SignatureScope",
    "TransferIntent",
    "is_placeholder_id",
    "is_placeholder_reference",
    "placeholder_id",
]
