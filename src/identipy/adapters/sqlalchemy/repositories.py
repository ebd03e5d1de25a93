"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import TYPE_CHECKING, cast

from sqlalchemy import exc as sa_exc
from sqlalchemy import or_, select

from identipy.adapters.sqlalchemy.mappings import contact_table
from identipy.domain.model import Contact, LinkPrecedence, utcnow
from identipy.domain.reconciliation.errors import StoreUnavailableError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy import Select
    from sqlalchemy.orm import Session

_RETRYABLE_ERRORS = (sa_exc.OperationalError, sa_exc.TimeoutError)


def translate_store_error(exc: sa_exc.SQLAlchemyError, action: str) -> StoreUnavailableError:
    retryable = isinstance(exc, _RETRYABLE_ERRORS) or (
        isinstance(exc, sa_exc.DBAPIError) and exc.connection_invalidated
    )
    return StoreUnavailableError(f"Contact store failed to {action}: {exc}", retryable=retryable)


def store_operation[**P, R](action: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Re-raise SQLAlchemy failures from the wrapped call as ``StoreUnavailableError``."""

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return func(*args, **kwargs)
            except sa_exc.SQLAlchemyError as exc:
                raise translate_store_error(exc, action) from exc

        return wrapper

    return decorator


class SqlAlchemyContactRepository:
    """Contact queries expressed as set-membership lookups.

    Every read locks the returned rows (``SELECT ... FOR UPDATE``) and refreshes
    any copy the session already holds, so a reconciliation that waited on a
    concurrent merge sees the merged state. Dialects without row locks
    (SQLite) ignore the clause; see ``serialize_sqlite_writers``.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    @store_operation("insert contact")
    def add(self, entity: Contact) -> Contact:
        self.session.add(entity)
        self.session.flush()
        return entity

    @store_operation("match contacts")
    def find_matching(self, email: str | None, phone_number: str | None) -> list[Contact]:
        conditions = []
        if email is not None:
            conditions.append(contact_table.c.email == email)
        if phone_number is not None:
            conditions.append(contact_table.c.phone_number == phone_number)
        if not conditions:
            return []
        stmt = self._live().where(or_(*conditions))
        return list(self.session.scalars(stmt))

    @store_operation("expand contact clusters")
    def find_clusters(self, root_ids: Iterable[int]) -> list[Contact]:
        ids = sorted(set(root_ids))
        if not ids:
            return []
        stmt = (
            self._live()
            .where(or_(contact_table.c.id.in_(ids), contact_table.c.linked_id.in_(ids)))
            .order_by(contact_table.c.id)
        )
        return list(self.session.scalars(stmt))

    @store_operation("load contact cluster")
    def get_cluster(self, primary_id: int) -> list[Contact]:
        stmt = (
            self._live()
            .where(
                or_(contact_table.c.id == primary_id, contact_table.c.linked_id == primary_id)
            )
            .order_by(contact_table.c.created_at, contact_table.c.id)
        )
        return list(self.session.scalars(stmt))

    @store_operation("demote contact")
    def demote(self, contact_id: int, primary_id: int) -> None:
        contact = self.session.get(Contact, contact_id)
        if contact is None:
            return
        contact.demote(primary_id)
        self.session.flush()

    @store_operation("relink contacts")
    def relink(self, from_primary_id: int, to_primary_id: int) -> int:
        stmt = (
            self._live()
            .where(contact_table.c.linked_id == from_primary_id)
            .where(contact_table.c.link_precedence == LinkPrecedence.SECONDARY)
        )
        secondaries = list(self.session.scalars(stmt))
        now = utcnow()
        for contact in secondaries:
            contact.relink(to_primary_id, at=now)
        self.session.flush()
        return len(secondaries)

    @staticmethod
    def _live() -> Select[tuple[Contact]]:
        # Rows already in the session are overwritten with what the database holds now.
        return (
            select(Contact)
            .where(contact_table.c.deleted_at.is_(None))
            .with_for_update()
            .execution_options(populate_existing=True)
        )


if TYPE_CHECKING:
    from identipy.domain.ports.persistence import ContactRepository

    _session_stub = cast("Session", object())
    _repo_check: ContactRepository = SqlAlchemyContactRepository(_session_stub)
