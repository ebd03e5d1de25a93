"""Contact records: the fragments a customer identity is assembled from."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from identipy.domain.model.enums import LinkPrecedence


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(eq=False, kw_only=True)
class Contact:
    """One stored identity fragment.

    Records sharing a primary form a cluster. Secondaries always point
    straight at the primary (``linked_id``); chains are never stored.
    """

    email: str | None = None
    phone_number: str | None = None

    linked_id: int | None = None
    link_precedence: LinkPrecedence = LinkPrecedence.PRIMARY

    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    deleted_at: datetime | None = None

    # Assigned by the store on insert.
    id: int | None = None

    @property
    def is_primary(self) -> bool:
        return self.link_precedence is LinkPrecedence.PRIMARY

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def root_id(self) -> int:
        """Id of the primary this record belongs to (its own id for primaries)."""

        if self.is_primary or self.linked_id is None:
            return self.persisted_id
        return self.linked_id

    @property
    def persisted_id(self) -> int:
        if self.id is None:
            raise ValueError("Contact has not been persisted yet")
        return self.id

    @property
    def seniority(self) -> tuple[datetime, int]:
        """Sort key: older records first, ids break timestamp ties."""

        return (self.created_at, self.persisted_id)

    def demote(self, primary_id: int, *, at: datetime | None = None) -> bool:
        """Turn this record into a secondary of ``primary_id``.

        Returns ``False`` when the record already is a secondary of that primary.
        """

        if primary_id == self.id:
            raise ValueError("A contact cannot be linked to itself")
        if self.link_precedence is LinkPrecedence.SECONDARY and self.linked_id == primary_id:
            return False
        self.link_precedence = LinkPrecedence.SECONDARY
        self.linked_id = primary_id
        self.updated_at = at or utcnow()
        return True

    def relink(self, primary_id: int, *, at: datetime | None = None) -> None:
        self.linked_id = primary_id
        self.updated_at = at or utcnow()
