"""Ports for persisting domain aggregates."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from identipy.domain.model import Contact

if TYPE_CHECKING:
    from collections.abc import Iterable


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> TEntity: ...


@runtime_checkable
class ContactRepository(Repository[Contact], Protocol):
    """Persistence contract for contact records.

    Every query ignores soft-deleted records.
    """

    def find_matching(self, email: str | None, phone_number: str | None) -> list[Contact]:
        """Records whose email equals ``email`` OR whose phone equals ``phone_number``."""
        ...

    def find_clusters(self, root_ids: Iterable[int]) -> list[Contact]:
        """Records whose id is in ``root_ids`` OR whose ``linked_id`` is in ``root_ids``."""
        ...

    def get_cluster(self, primary_id: int) -> list[Contact]:
        """The primary and its secondaries, oldest first."""
        ...

    def demote(self, contact_id: int, primary_id: int) -> None: ...

    def relink(self, from_primary_id: int, to_primary_id: int) -> int:
        """Re-point every secondary of ``from_primary_id``; returns the number moved."""
        ...
