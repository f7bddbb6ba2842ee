"""Transfer and listing proposals."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime

from .enums import IntentStatus, SignatureScope


@dataclass(slots=True, frozen=True)
class IntentInput:
    txid: str
    vout: int
    value: int
    locking_script: str


@dataclass(slots=True, frozen=True)
class IntentOutput:
    address: str
    value: int


@dataclass(slots=True, frozen=True)
class TransferIntent:
    asset_ref: str
    source_owner: str | None
    destination: str
    inputs: tuple[IntentInput, ...]
    outputs: tuple[IntentOutput, ...]
    fee_rate: float
    signature_scope: SignatureScope = SignatureScope.ALL
    status: IntentStatus = IntentStatus.UNSIGNED
    proposal: str | None = None
    authorization: str | None = None

    @property
    def payment_outputs(self) -> tuple[IntentOutput, ...]:
        """Outputs beyond the asset output itself."""

        return self.outputs[1:]

    def with_proposal(self, proposal: str) -> TransferIntent:
        return replace(self, proposal=proposal)

    def authorized(self, authorization: str, *, scope: SignatureScope) -> TransferIntent:
        return replace(
            self,
            authorization=authorization,
            signature_scope=scope,
            status=IntentStatus.AUTHORIZED,
        )


@dataclass(slots=True, frozen=True)
class MarketplaceListing:
    """A listing awaiting completion by a second party, keyed by asset, buyer and price."""

    asset_ref: str
    destination: str
    price_units: int
    seller_address: str
    authorization: str
    fee_rate: float
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def key(self) -> tuple[str, str, int]:
        return (self.asset_ref, self.destination, self.price_units)
