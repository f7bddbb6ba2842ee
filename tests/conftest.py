from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine

from delegate_ledger.adapters.catalog_file import load_catalog
from delegate_ledger.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyRecordUnitOfWork,
    shutdown,
    startup,
)
from delegate_ledger.config import CatalogSettings
from delegate_ledger.domain.record_store import LedgerRecordStore
from delegate_ledger.domain.validation import Validator
from tests.helpers.delegates import InMemoryRecordStore, make_catalog

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

    from sqlalchemy.engine import Engine

    from delegate_ledger.domain.catalog_registry import CatalogRegistry


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("DELEGATE_LEDGER_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.delenv("DATABASE_URI", raising=False)
    monkeypatch.delenv("DELEGATE_LEDGER_ENV", raising=False)
    monkeypatch.delenv("CATALOG_PATH", raising=False)


@pytest.fixture(scope="session")
def shipped_catalog() -> CatalogRegistry:
    return load_catalog(CatalogSettings(environment="development"))


@pytest.fixture
def catalog() -> CatalogRegistry:
    return make_catalog()


@pytest.fixture
def memory_tiers() -> tuple[InMemoryRecordStore, InMemoryRecordStore]:
    return InMemoryRecordStore("primary"), InMemoryRecordStore("mirror")


@pytest.fixture
def ledger_store(
    catalog: CatalogRegistry,
    memory_tiers: tuple[InMemoryRecordStore, InMemoryRecordStore],
) -> Iterator[LedgerRecordStore]:
    primary, mirror = memory_tiers
    store = LedgerRecordStore(primary, (mirror,), validator=Validator(catalog))
    try:
        yield store
    finally:
        store.close()


@pytest.fixture
def sqlite_engine(tmp_path: Path) -> Iterator[Engine]:
    # a file database so worker threads share one schema
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'records.db'}", future=True)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyRecordUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyRecordUnitOfWork:
        return SqlAlchemyRecordUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()
