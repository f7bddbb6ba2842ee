"""Build transfer and marketplace listing proposals for confirmed delegates."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING

from delegate_ledger.domain.errors import CustodyResolutionError, DelegateLedgerError
from delegate_ledger.domain.model import (
    IntentInput,
    IntentOutput,
    IntentStatus,
    MarketplaceListing,
    SignatureScope,
    TransferIntent,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from delegate_ledger.domain.model import CustodialUnit
    from delegate_ledger.domain.ports import (
        GroundTruthScanner,
        IntentEncoder,
        IntentSigner,
        ListingRepository,
        LockingScriptDeriver,
    )

log = getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ListingRequest:
    asset_ref: str
    buyer: str
    seller: str
    price_units: int


@dataclass(slots=True)
class BulkListingResult:
    listings: list[TransferIntent] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> int:
        return len(self.listings)

    @property
    def failed(self) -> int:
        return len(self.errors)


class TransferIntentBuilder:
    """Turns a custodial unit into a one-input proposal.

    The builder never signs. Transfers are returned unauthorized; listings are
    authorized by the external signer with a scope covering only input 0 and
    output 0, so a later buyer can add their own inputs and outputs.
    """

    def __init__(
        self,
        scanner: GroundTruthScanner,
        encoder: IntentEncoder,
        derive_locking_script: LockingScriptDeriver,
        signer: IntentSigner | None = None,
        listings: ListingRepository | None = None,
    ) -> None:
        self.scanner = scanner
        self.encoder = encoder
        self.derive_locking_script = derive_locking_script
        self.signer = signer
        self.listings = listings

    def resolve_input(self, asset_ref: str, destination: str) -> tuple[IntentInput, CustodialUnit]:
        unit = self.scanner.get_custodial_unit(asset_ref)
        if not unit.funding_txid:
            raise CustodyResolutionError(asset_ref, "funding_txid")
        if unit.funding_vout is None:
            raise CustodyResolutionError(asset_ref, "funding_vout")
        if unit.value is None or unit.value <= 0:
            raise CustodyResolutionError(asset_ref, "value")

        locking_script = unit.locking_script
        if not locking_script:
            try:
                locking_script = self.derive_locking_script(destination)
            except ValueError as exc:
                raise CustodyResolutionError(asset_ref, "locking_script") from exc
            # the indexer omitted the script; assume the destination's address type
            log.warning(
                f"Locking script for {asset_ref} unavailable, derived default from "
                f"destination {destination}"
            )

        return (
            IntentInput(
                txid=unit.funding_txid,
                vout=unit.funding_vout,
                value=unit.value,
                locking_script=locking_script,
            ),
            unit,
        )

    def build_transfer(self, asset_ref: str, destination: str, fee_rate: float) -> TransferIntent:
        _check_common(destination, fee_rate)
        funding, unit = self.resolve_input(asset_ref, destination)
        intent = TransferIntent(
            asset_ref=asset_ref,
            source_owner=unit.owner_address,
            destination=destination,
            inputs=(funding,),
            outputs=(IntentOutput(address=destination, value=funding.value),),
            fee_rate=fee_rate,
        )
        intent = intent.with_proposal(self.encoder(intent))
        log.info(f"Built transfer proposal for {asset_ref} -> {destination}")
        return intent

    def build_marketplace_listing(
        self,
        asset_ref: str,
        buyer: str,
        seller: str,
        price_units: int,
        fee_rate: float,
        *,
        persist: bool = False,
    ) -> TransferIntent:
        _check_common(buyer, fee_rate)
        if not seller:
            raise ValueError("Seller address is required")
        if price_units <= 0:
            raise ValueError("Listing price must be positive")
        if self.signer is None:
            raise RuntimeError("Listings need a signer; none configured")

        funding, unit = self.resolve_input(asset_ref, buyer)
        intent = TransferIntent(
            asset_ref=asset_ref,
            source_owner=unit.owner_address,
            destination=buyer,
            inputs=(funding,),
            outputs=(
                IntentOutput(address=buyer, value=funding.value),
                IntentOutput(address=seller, value=price_units),
            ),
            fee_rate=fee_rate,
            signature_scope=SignatureScope.SINGLE_ANYONECANPAY,
        )
        proposal = self.encoder(intent)
        authorization = self.signer(
            proposal,
            owner=unit.owner_address,
            scope=SignatureScope.SINGLE_ANYONECANPAY,
        )
        intent = intent.with_proposal(proposal).authorized(
            authorization, scope=SignatureScope.SINGLE_ANYONECANPAY
        )

        if persist:
            if self.listings is None:
                raise RuntimeError("Cannot persist listing; no listing repository configured")
            self.listings.save_listing(
                MarketplaceListing(
                    asset_ref=asset_ref,
                    destination=buyer,
                    price_units=price_units,
                    seller_address=seller,
                    authorization=authorization,
                    fee_rate=fee_rate,
                )
            )
            intent = _with_status(intent, IntentStatus.LISTED)

        log.info(
            "Listed %s for %s units to %s (seller %s, status %s)",
            asset_ref,
            price_units,
            buyer,
            seller,
            intent.status,
        )
        return intent

    def build_bulk_listings(
        self,
        requests: Sequence[ListingRequest],
        fee_rate: float,
        *,
        persist: bool = False,
    ) -> BulkListingResult:
        """Build each listing independently; one failure does not stop the rest."""

        result = BulkListingResult()
        for request in requests:
            try:
                result.listings.append(
                    self.build_marketplace_listing(
                        request.asset_ref,
                        request.buyer,
                        request.seller,
                        request.price_units,
                        fee_rate,
                        persist=persist,
                    )
                )
            except (DelegateLedgerError, ValueError) as exc:
                log.warning(f"Listing for {request.asset_ref} failed: {exc}")
                result.errors[request.asset_ref] = str(exc)
        log.info(f"Bulk listing: {result.succeeded} built, {result.failed} failed")
        return result


def _check_common(destination: str, fee_rate: float) -> None:
    if not destination:
        raise ValueError("Destination address is required")
    if fee_rate <= 0:
        raise ValueError("Fee rate must be positive")


def _with_status(intent: TransferIntent, status: IntentStatus) -> TransferIntent:
    return replace(intent, status=status)
