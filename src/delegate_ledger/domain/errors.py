"""Error taxonomy for the provenance engine."""

from __future__ import annotations


class DelegateLedgerError(RuntimeError):
    """Base class for domain failures."""


class ValidationError(DelegateLedgerError):
    """A registration does not match the catalog. Never auto-corrected."""

    def __init__(
        self,
        message: str,
        *,
        reason: str | None = None,
        suggestion: str | None = None,
        detected_project: str | None = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.suggestion = suggestion
        self.detected_project = detected_project


class NotFoundError(ValidationError):
    """A reference or record is absent."""


class TransientIndexerError(DelegateLedgerError):
    """The ground-truth indexer timed out, was unreachable, or answered garbage."""


class IndexerAPIError(TransientIndexerError):
    """The indexer answered with an application-level error code."""

    def __init__(self, message: str, *, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class PersistenceError(DelegateLedgerError):
    """A write to the authoritative store failed."""


class StoreUnavailableError(PersistenceError):
    """A store tier cannot be reached at the moment."""


class IntegrityError(DelegateLedgerError):
    """An invariant of the record model was about to be violated."""


class CustodyResolutionError(DelegateLedgerError):
    """The custodial unit of an asset could not be resolved."""

    def __init__(self, asset_ref: str, field: str) -> None:
        super().__init__(f"Cannot resolve {field} for asset {asset_ref}")
        self.asset_ref = asset_ref
        self.field = field


class AuthorizationError(DelegateLedgerError):
    """The external signer refused or failed to authorize a proposal."""
