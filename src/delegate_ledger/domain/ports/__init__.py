"""Domain ports (Protocols) implemented by adapters."""

from __future__ import annotations

from .indexer import GroundTruthScanner
from .issuance import IssuanceResult, Issuer
from .persistence import ListingRepository, RecordStore
from .signing import IntentEncoder, IntentSigner, LockingScriptDeriver

__all__ = [
    "GroundTruthScanner",
    "IntentEncoder",
    "IntentSigner",
    "IssuanceResult",
    "Issuer",
    "ListingRepository",
    "LockingScriptDeriver",
    "RecordStore",
]
