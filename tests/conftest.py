from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from identipy.adapters.memory import InMemoryContactStore
from identipy.adapters.sqlalchemy import start_mappers
from identipy.adapters.sqlalchemy.migrations import upgrade_head
from identipy.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyContactUnitOfWork,
    shutdown,
    startup,
)
from tests.helpers.contacts import ContactBackend, InMemoryBackend, SqlAlchemyBackend, TickingClock

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    # One shared connection so the in-memory schema is visible from worker threads.
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyContactUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyContactUnitOfWork:
        return SqlAlchemyContactUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def memory_store() -> InMemoryContactStore:
    return InMemoryContactStore(clock=TickingClock())


@pytest.fixture(params=["memory", "sqlite"])
def backend(
    request: pytest.FixtureRequest,
    memory_store: InMemoryContactStore,
) -> ContactBackend:
    """The same reconciliation behaviour must hold for every contact store."""

    if request.param == "memory":
        return InMemoryBackend(memory_store)
    factory = request.getfixturevalue("sqlite_unit_of_work")
    return SqlAlchemyBackend(factory)
