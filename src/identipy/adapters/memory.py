"""In-memory contact store.

A drop-in replacement for the SQLAlchemy adapter: pass ``store.unit_of_work``
wherever a unit-of-work factory is expected. Units of work on the same store
are serialized by a store-wide lock, and uncommitted changes are discarded
on exit just like an uncommitted database transaction.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from typing import TYPE_CHECKING, Literal

from identipy.domain.model import Contact, LinkPrecedence, utcnow
from identipy.domain.ports.unit_of_work import ContactRepositories

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from datetime import datetime
    from types import TracebackType


class InMemoryContactStore:
    """Process-local table of contacts keyed by id."""

    def __init__(self, *, clock: Callable[[], datetime] = utcnow) -> None:
        self.clock = clock
        self.lock = threading.RLock()
        self._rows: dict[int, Contact] = {}
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._rows)

    def all(self) -> list[Contact]:
        """Every stored row, soft-deleted ones included, in id order."""

        return [self._rows[key] for key in sorted(self._rows)]

    def insert(self, contact: Contact) -> Contact:
        if contact.id is None:
            contact.id = self._next_id
        elif contact.id in self._rows:
            raise ValueError(f"Contact id {contact.id} already stored")
        self._next_id = max(self._next_id, contact.id + 1)
        self._rows[contact.id] = contact
        return contact

    def row(self, contact_id: int) -> Contact | None:
        return self._rows.get(contact_id)

    def live(self) -> list[Contact]:
        return [contact for contact in self.all() if not contact.is_deleted]

    def snapshot(self) -> tuple[dict[int, Contact], int]:
        return {key: replace(value) for key, value in self._rows.items()}, self._next_id

    def restore(self, snapshot: tuple[dict[int, Contact], int]) -> None:
        rows, next_id = snapshot
        self._rows = {key: replace(value) for key, value in rows.items()}
        self._next_id = next_id

    def unit_of_work(self) -> InMemoryContactUnitOfWork:
        return InMemoryContactUnitOfWork(self)


class InMemoryContactRepository:
    def __init__(self, store: InMemoryContactStore) -> None:
        self.store = store

    def add(self, entity: Contact) -> Contact:
        now = self.store.clock()
        entity.created_at = now
        entity.updated_at = now
        return self.store.insert(entity)

    def find_matching(self, email: str | None, phone_number: str | None) -> list[Contact]:
        if email is None and phone_number is None:
            return []
        return [
            contact
            for contact in self.store.live()
            if (email is not None and contact.email == email)
            or (phone_number is not None and contact.phone_number == phone_number)
        ]

    def find_clusters(self, root_ids: Iterable[int]) -> list[Contact]:
        ids = set(root_ids)
        return [
            contact
            for contact in self.store.live()
            if contact.id in ids or contact.linked_id in ids
        ]

    def get_cluster(self, primary_id: int) -> list[Contact]:
        cluster = [
            contact
            for contact in self.store.live()
            if contact.id == primary_id or contact.linked_id == primary_id
        ]
        return sorted(cluster, key=lambda contact: contact.seniority)

    def demote(self, contact_id: int, primary_id: int) -> None:
        contact = self.store.row(contact_id)
        if contact is None:
            return
        contact.demote(primary_id, at=self.store.clock())

    def relink(self, from_primary_id: int, to_primary_id: int) -> int:
        moved = 0
        now = self.store.clock()
        for contact in self.store.live():
            if (
                contact.linked_id == from_primary_id
                and contact.link_precedence is LinkPrecedence.SECONDARY
            ):
                contact.relink(to_primary_id, at=now)
                moved += 1
        return moved


class InMemoryContactUnitOfWork:
    """Unit of work over an ``InMemoryContactStore``."""

    def __init__(self, store: InMemoryContactStore) -> None:
        self.store = store
        self._repositories: ContactRepositories | None = None
        self._snapshot: tuple[dict[int, Contact], int] | None = None

    def __enter__(self) -> InMemoryContactUnitOfWork:
        self.store.lock.acquire()
        self._snapshot = self.store.snapshot()
        self._repositories = ContactRepositories(contacts=InMemoryContactRepository(self.store))
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        try:
            self.rollback()
        finally:
            self._repositories = None
            self._snapshot = None
            self.store.lock.release()
        return False

    @property
    def repositories(self) -> ContactRepositories:
        if self._repositories is None:
            raise RuntimeError("Unit of work not entered")
        return self._repositories

    def commit(self) -> None:
        self._snapshot = self.store.snapshot()

    def rollback(self) -> None:
        if self._snapshot is not None:
            self.store.restore(self._snapshot)


if TYPE_CHECKING:
    from identipy.domain.ports.persistence import ContactRepository
    from identipy.domain.ports.unit_of_work import ContactUnitOfWork

    _repo_check: ContactRepository = InMemoryContactRepository(InMemoryContactStore())
    _uow_check: ContactUnitOfWork = InMemoryContactUnitOfWork(InMemoryContactStore())
