"""SQLAlchemy-backed units of work for contact reconciliation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine, event
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session, sessionmaker

from identipy.adapters.sqlalchemy.mappings import start_mappers
from identipy.adapters.sqlalchemy.migrations import upgrade_head
from identipy.adapters.sqlalchemy.repositories import (
    SqlAlchemyContactRepository,
    translate_store_error,
)
from identipy.config import get_database_uri
from identipy.domain.ports.unit_of_work import ContactRepositories, RepositoryCollection

if TYPE_CHECKING:
    from sqlite3 import Connection as SQLiteConnection
    from types import TracebackType

    from sqlalchemy.engine import Connection, Engine
    from sqlalchemy.pool import ConnectionPoolEntry


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call identipy.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def _sqlite_manual_transactions(
    dbapi_connection: SQLiteConnection, _connection_record: ConnectionPoolEntry
) -> None:
    # pysqlite would otherwise delay BEGIN until the first write statement.
    dbapi_connection.isolation_level = None


def _sqlite_begin_immediate(connection: Connection) -> None:
    connection.exec_driver_sql("BEGIN IMMEDIATE")


def serialize_sqlite_writers(engine: Engine) -> None:
    """Make every SQLite transaction take the database write lock up front.

    SQLite ignores ``SELECT ... FOR UPDATE``; starting transactions with
    ``BEGIN IMMEDIATE`` makes a second reconciliation wait (up to the driver
    busy timeout) until the first one commits or rolls back. Other dialects
    are left untouched. Must run before the engine opens its first connection.
    """

    if engine.dialect.name != "sqlite" or event.contains(
        engine, "begin", _sqlite_begin_immediate
    ):
        return
    event.listen(engine, "connect", _sqlite_manual_transactions)
    event.listen(engine, "begin", _sqlite_begin_immediate)


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, schema, and session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    if engine is None:
        resolved_engine = create_engine(database_uri or get_database_uri(), future=True)
        serialize_sqlite_writers(resolved_engine)
    else:
        resolved_engine = engine
    start_mappers()
    upgrade_head(engine=resolved_engine)

    _STATE.engine = resolved_engine


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Generic SQLAlchemy unit of work with pluggable repository collections.

    One unit of work is one database transaction: it begins with the first
    statement and ends with ``commit()`` or the rollback on exit.
    """

    def __init__(self) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory
        self._session: Session | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        self._repositories = self._build_repositories(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self.session = None
        return False

    def commit(self) -> None:
        try:
            self.session.commit()
        except sa_exc.SQLAlchemyError as exc:
            raise translate_store_error(exc, "commit") from exc

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> TRepositories:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyContactUnitOfWork(BaseSqlAlchemyUnitOfWork[ContactRepositories]):
    """Unit of work managing SQLAlchemy sessions for contact reconciliation."""

    def _build_repositories(self, session: Session) -> ContactRepositories:
        return ContactRepositories(contacts=SqlAlchemyContactRepository(session))


if TYPE_CHECKING:
    from identipy.domain.ports.unit_of_work import ContactUnitOfWork

    _uow_check: ContactUnitOfWork = SqlAlchemyContactUnitOfWork()
