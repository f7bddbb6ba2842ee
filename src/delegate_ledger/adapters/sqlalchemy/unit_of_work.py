"""Session scope for the authoritative record store.

The engine is process-wide: :func:`startup` binds it once (migrating the schema
to head) and every :class:`SqlAlchemyRecordUnitOfWork` opened afterwards draws a
session from it. Leaving the ``with`` block rolls back on error and always
releases the session; committing is the caller's decision.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from delegate_ledger.adapters.sqlalchemy.migrations import upgrade_head
from delegate_ledger.adapters.sqlalchemy.repositories import (
    SqlAlchemyListingRepository,
    SqlAlchemyRecordRepository,
)
from delegate_ledger.config.storage import get_database_config

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """The record store was used before :func:`startup` or outside its ``with`` block."""


@dataclass(slots=True)
class RecordRepositories:
    records: SqlAlchemyRecordRepository
    listings: SqlAlchemyListingRepository


@dataclass(slots=True)
class _EngineBinding:
    engine: Engine | None = None
    sessions: sessionmaker[Session] | None = None

    def bind(self, engine: Engine | None) -> None:
        if self.engine is not None and self.engine is not engine:
            self.engine.dispose()
        self.engine = engine
        self.sessions = sessionmaker(bind=engine, expire_on_commit=False) if engine else None

    def session_factory(self) -> sessionmaker[Session]:
        if self.sessions is None:
            raise StartupError(
                "Record store not started; call "
                "delegate_ledger.adapters.sqlalchemy.startup() first."
            )
        return self.sessions


_BINDING = _EngineBinding()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Bind the record store to ``engine`` (or a new one) after migrating it to head."""

    if _BINDING.engine is not None and not force:
        raise StartupError("Record store already started. Pass force=True to rebind it.")

    resolved_engine = engine or create_engine(
        database_uri or get_database_config().uri, future=True
    )
    upgrade_head(engine=resolved_engine)
    log.info("Record store bound to %s", resolved_engine.url)
    _BINDING.bind(resolved_engine)


def configured_engine() -> Engine | None:
    return _BINDING.engine


def is_started() -> bool:
    return _BINDING.engine is not None


def shutdown() -> None:
    """Dispose the bound engine; the next unit of work needs a fresh :func:`startup`."""

    _BINDING.bind(None)


class SqlAlchemyRecordUnitOfWork:
    """One session over the record and listing tables."""

    def __init__(self) -> None:
        self.session_factory = _BINDING.session_factory()
        self._session: Session | None = None
        self._repositories: RecordRepositories | None = None

    def __enter__(self) -> SqlAlchemyRecordUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work is already open")
        session = self.session_factory()
        self._session = session
        self._repositories = RecordRepositories(
            records=SqlAlchemyRecordRepository(session),
            listings=SqlAlchemyListingRepository(session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            if exc_type is not None:
                session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        return False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work is not open")
        return self._session

    @property
    def repositories(self) -> RecordRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work is not open")
        return self._repositories

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
