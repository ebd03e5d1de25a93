"""Consolidated identity view returned to callers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .cluster import split_cluster

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from identipy.domain.model import Contact


@dataclass(frozen=True, slots=True)
class ConsolidatedView:
    """Deduplicated union of a cluster's emails and phones plus its ids."""

    primary_contact_id: int
    emails: tuple[str, ...] = ()
    phone_numbers: tuple[str, ...] = ()
    secondary_contact_ids: tuple[int, ...] = ()


def _first_seen(values: Iterable[str | None]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for value in values:
        if value is not None and value not in seen:
            seen[value] = None
    return tuple(seen)


def build_view(cluster: Sequence[Contact]) -> ConsolidatedView:
    """Build the view for one cluster; the primary's values always lead."""

    primary, secondaries = split_cluster(cluster)
    ordered = [primary, *secondaries]
    return ConsolidatedView(
        primary_contact_id=primary.persisted_id,
        emails=_first_seen(contact.email for contact in ordered),
        phone_numbers=_first_seen(contact.phone_number for contact in ordered),
        secondary_contact_ids=tuple(contact.persisted_id for contact in secondaries),
    )
