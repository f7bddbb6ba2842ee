"""Ports for transaction encoding and external authorization."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from delegate_ledger.domain.model import SignatureScope, TransferIntent


@runtime_checkable
class IntentEncoder(Protocol):
    """Serialises an intent into a partial transaction the signer understands."""

    def __call__(self, intent: TransferIntent) -> str: ...


@runtime_checkable
class LockingScriptDeriver(Protocol):
    """Returns the hex locking script implied by an address."""

    def __call__(self, address: str) -> str: ...


@runtime_checkable
class IntentSigner(Protocol):
    """External collaborator that holds the keys. Returns the authorized proposal."""

    def __call__(self, proposal: str, *, owner: str | None, scope: SignatureScope) -> str: ...
