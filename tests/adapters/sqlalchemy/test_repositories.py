"""Tests for SQLAlchemy repositories."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from sqlalchemy import exc as sa_exc
from sqlalchemy import text
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Session  # noqa: TC002

from identipy.adapters.sqlalchemy import start_mappers
from identipy.adapters.sqlalchemy.repositories import (
    SqlAlchemyContactRepository,
    translate_store_error,
)
from identipy.domain.model import Contact, LinkPrecedence
from identipy.domain.reconciliation import StoreUnavailableError
from tests.helpers.contacts import make_contact

DELETED_AT = datetime(2024, 6, 1, tzinfo=UTC)


@pytest.fixture
def seeded(sqlite_session: Session) -> SqlAlchemyContactRepository:
    sqlite_session.add_all(
        [
            make_contact(1, email="a@example.com", phone_number="111"),
            make_contact(2, email="b@example.com", phone_number="111", linked_id=1),
            make_contact(3, email="a@example.com", linked_id=1, deleted_at=DELETED_AT),
            make_contact(4, email="c@example.com", phone_number="222"),
            make_contact(5, phone_number="333", linked_id=4),
            make_contact(6, phone_number="444", linked_id=4, deleted_at=DELETED_AT),
        ]
    )
    sqlite_session.commit()
    return SqlAlchemyContactRepository(sqlite_session)


def test_add_assigns_id(sqlite_session: Session) -> None:
    repository = SqlAlchemyContactRepository(sqlite_session)

    contact = repository.add(Contact(email="new@example.com"))

    assert contact.id is not None
    assert sqlite_session.get(Contact, contact.id) is contact


def test_find_matching_uses_either_field(seeded: SqlAlchemyContactRepository) -> None:
    by_email = seeded.find_matching("a@example.com", None)
    by_phone = seeded.find_matching(None, "111")
    by_both = seeded.find_matching("c@example.com", "111")

    assert [c.id for c in by_email] == [1]
    assert sorted(c.id for c in by_phone) == [1, 2]
    assert sorted(c.id for c in by_both) == [1, 2, 4]
    assert seeded.find_matching(None, None) == []


def test_find_clusters_expands_roots(seeded: SqlAlchemyContactRepository) -> None:
    contacts = seeded.find_clusters([4, 1])

    assert [c.id for c in contacts] == [1, 2, 4, 5]
    assert seeded.find_clusters([]) == []


def test_get_cluster_is_ordered_by_age(seeded: SqlAlchemyContactRepository) -> None:
    assert [c.id for c in seeded.get_cluster(4)] == [4, 5]
    assert [c.id for c in seeded.get_cluster(1)] == [1, 2]


def test_reads_refresh_rows_changed_behind_the_session(
    seeded: SqlAlchemyContactRepository, sqlite_session: Session
) -> None:
    [stale] = seeded.find_matching("c@example.com", None)
    assert stale.link_precedence is LinkPrecedence.PRIMARY

    sqlite_session.execute(
        text("UPDATE contact SET link_precedence = 'secondary', linked_id = 1 WHERE id = 4")
    )

    [fresh] = seeded.find_matching("c@example.com", None)
    assert fresh is stale
    assert fresh.link_precedence is LinkPrecedence.SECONDARY
    assert fresh.linked_id == 1
    assert [c.id for c in seeded.find_clusters([4])] == [4, 5]


def test_reads_lock_rows_on_dialects_that_support_it() -> None:
    start_mappers()
    statement = SqlAlchemyContactRepository._live()  # noqa: SLF001

    compiled = str(statement.compile(dialect=postgresql.dialect()))

    assert compiled.rstrip().endswith("FOR UPDATE")
    assert statement.get_execution_options()["populate_existing"] is True


def test_demote_and_relink_flatten_cluster(
    seeded: SqlAlchemyContactRepository, sqlite_session: Session
) -> None:
    seeded.demote(4, 1)
    moved = seeded.relink(4, 1)
    sqlite_session.commit()

    assert moved == 1
    demoted = sqlite_session.get(Contact, 4)
    assert demoted is not None
    assert demoted.link_precedence is LinkPrecedence.SECONDARY
    assert demoted.linked_id == 1
    assert [c.id for c in seeded.get_cluster(1)] == [1, 2, 4, 5]

    untouched = sqlite_session.get(Contact, 6)
    assert untouched is not None
    assert untouched.linked_id == 4


def test_demote_missing_contact_is_ignored(seeded: SqlAlchemyContactRepository) -> None:
    seeded.demote(99, 1)


def test_store_failures_surface_as_domain_errors(sqlite_session: Session) -> None:
    repository = SqlAlchemyContactRepository(sqlite_session)
    sqlite_session.execute(text("DROP TABLE contact"))

    with pytest.raises(StoreUnavailableError) as excinfo:
        repository.find_matching("a@example.com", None)

    assert excinfo.value.retryable
    assert isinstance(excinfo.value.__cause__, sa_exc.OperationalError)
    assert "match contacts" in str(excinfo.value)


def test_translate_store_error_marks_integrity_errors_permanent() -> None:
    error = sa_exc.IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

    translated = translate_store_error(error, "insert contact")

    assert isinstance(translated, StoreUnavailableError)
    assert not translated.retryable
