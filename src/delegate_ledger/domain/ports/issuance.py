"""Port for the service that inscribes new delegates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(slots=True, frozen=True)
class IssuanceResult:
    order_ref: str
    asset_ref: str | None = None
    pay_condition: str | None = None


@runtime_checkable
class Issuer(Protocol):
    def __call__(self, *, content: str, destination: str, fee_rate: float) -> IssuanceResult: ...
