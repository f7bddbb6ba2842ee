"""Application orchestration entry points."""

from __future__ import annotations

import threading
from logging import getLogger
from typing import TYPE_CHECKING

from delegate_ledger.adapters.catalog_file import load_catalog
from delegate_ledger.adapters.indexer import IndexerClient
from delegate_ledger.adapters.json_cache import JsonRecordCache
from delegate_ledger.adapters.psbt import derive_locking_script, encode_psbt
from delegate_ledger.adapters.signing import HttpIntentSigner
from delegate_ledger.adapters.sqlalchemy.store import SqlAlchemyRecordStore
from delegate_ledger.adapters.sqlalchemy.unit_of_work import is_started, startup
from delegate_ledger.config import (
    ReconciliationConfig,
    StorageConfig,
    get_database_config,
    get_reconciliation_config,
    get_storage_config,
)
from delegate_ledger.domain.ground_truth import delegates_on_chain
from delegate_ledger.domain.reconciliation import (
    ReconciliationJob,
    ReconciliationPolicy,
    RunSummary,
)
from delegate_ledger.domain.record_store import LedgerRecordStore
from delegate_ledger.domain.registration import DelegateRegistrar, RegistrationOutcome
from delegate_ledger.domain.transfers import TransferIntentBuilder
from delegate_ledger.domain.validation import Validator

if TYPE_CHECKING:
    from delegate_ledger.domain.catalog_registry import CatalogRegistry, ProjectStats
    from delegate_ledger.domain.ground_truth import ChainDelegate
    from delegate_ledger.domain.model import TransferIntent
    from delegate_ledger.domain.ports import (
        GroundTruthScanner,
        IntentSigner,
        ListingRepository,
    )

log = getLogger(__name__)


def policy_from_config(config: ReconciliationConfig) -> ReconciliationPolicy:
    return ReconciliationPolicy(
        grace=config.grace,
        batch_limit=config.batch_limit,
        recent_items=config.recent_items,
        page_size=config.page_size,
        max_pages=config.max_pages,
        max_run_seconds=config.max_run_seconds,
        max_parallel_owners=config.max_parallel_owners,
        interval_seconds=config.interval_seconds,
        abandon_after=config.abandon_after,
    )


def build_record_store(
    *,
    catalog: CatalogRegistry | None = None,
    storage: StorageConfig | None = None,
    authoritative: SqlAlchemyRecordStore | None = None,
) -> LedgerRecordStore:
    """Authoritative SQL store first, JSON cache mirror second."""

    storage_config = storage or get_storage_config()
    if authoritative is None:
        if not is_started():
            startup(database_uri=get_database_config(storage=storage_config).uri)
        authoritative = SqlAlchemyRecordStore()
    cache = JsonRecordCache(storage_config.record_cache_path())
    store = LedgerRecordStore(
        authoritative,
        (cache,),
        validator=Validator(catalog or load_catalog()),
    )
    for tier in store.health():
        log.info(f"Record store tier {tier.name}: {'up' if tier.available else 'DOWN'}")
    return store


def build_reconciliation_job(
    *,
    store: LedgerRecordStore | None = None,
    scanner: GroundTruthScanner | None = None,
    catalog: CatalogRegistry | None = None,
    config: ReconciliationConfig | None = None,
) -> ReconciliationJob:
    effective_catalog = catalog or load_catalog()
    return ReconciliationJob(
        store or build_record_store(catalog=effective_catalog),
        scanner or IndexerClient(),
        effective_catalog,
        policy_from_config(config or get_reconciliation_config()),
    )


def reconcile_pending(
    *,
    store: LedgerRecordStore | None = None,
    scanner: GroundTruthScanner | None = None,
    catalog: CatalogRegistry | None = None,
    config: ReconciliationConfig | None = None,
) -> RunSummary:
    """Run one reconciliation pass with the configured adapters."""

    job = build_reconciliation_job(store=store, scanner=scanner, catalog=catalog, config=config)
    try:
        return job.run_once()
    finally:
        job.store.flush()


def run_reconciliation_loop(
    stop: threading.Event,
    *,
    interval: float | None = None,
    job: ReconciliationJob | None = None,
) -> None:
    effective_job = job or build_reconciliation_job()
    log.info("Starting recurring reconciliation")
    try:
        effective_job.run_forever(stop, interval=interval)
    finally:
        effective_job.store.close()


def register_delegate(
    name: str,
    reference_id: str,
    project_id: str | None = None,
    *,
    owner_address: str,
    order_ref: str,
    index: int = 0,
    asset_ref: str | None = None,
    store: LedgerRecordStore | None = None,
    catalog: CatalogRegistry | None = None,
) -> RegistrationOutcome:
    effective_catalog = catalog or load_catalog()
    effective_store = store or build_record_store(catalog=effective_catalog)
    registrar = DelegateRegistrar(Validator(effective_catalog), effective_store)
    try:
        return registrar.register(
            name,
            reference_id,
            project_id,
            owner_address=owner_address,
            order_ref=order_ref,
            index=index,
            asset_ref=asset_ref,
        )
    finally:
        effective_store.flush()


def build_transfer(
    asset_ref: str,
    destination: str,
    fee_rate: float,
    *,
    scanner: GroundTruthScanner | None = None,
) -> TransferIntent:
    builder = TransferIntentBuilder(
        scanner or IndexerClient(), encode_psbt, derive_locking_script
    )
    return builder.build_transfer(asset_ref, destination, fee_rate)


def list_for_marketplace(
    asset_ref: str,
    buyer: str,
    seller: str,
    price_units: int,
    fee_rate: float,
    *,
    scanner: GroundTruthScanner | None = None,
    signer: IntentSigner | None = None,
    listings: ListingRepository | None = None,
) -> TransferIntent:
    """Build, authorize and persist a listing a later buyer can complete."""

    if listings is None:
        if not is_started():
            startup()
        listings = SqlAlchemyRecordStore()
    builder = TransferIntentBuilder(
        scanner or IndexerClient(),
        encode_psbt,
        derive_locking_script,
        signer=signer or HttpIntentSigner(),
        listings=listings,
    )
    return builder.build_marketplace_listing(
        asset_ref, buyer, seller, price_units, fee_rate, persist=True
    )


def catalog_report(catalog: CatalogRegistry | None = None) -> list[ProjectStats]:
    return (catalog or load_catalog()).project_stats()


def owner_delegates(
    owner_address: str,
    *,
    scanner: GroundTruthScanner | None = None,
    catalog: CatalogRegistry | None = None,
    max_items: int | None = None,
) -> list[ChainDelegate]:
    """Delegates the ledger reports for ``owner_address``, regardless of local records."""

    return delegates_on_chain(
        scanner or IndexerClient(),
        catalog or load_catalog(),
        owner_address,
        max_items=max_items,
    )
