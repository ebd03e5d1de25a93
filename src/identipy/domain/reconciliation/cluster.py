"""Pure helpers for reasoning about contact clusters.

Nothing in here touches the store; the engine feeds these functions the
records it has read and acts on their answers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .errors import InconsistentClusterError, InvalidInputError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from identipy.domain.model import Contact

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Fragment:
    """One submitted (email, phone) pair after normalisation."""

    email: str | None = None
    phone_number: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.email is None and self.phone_number is None


def _clean(value: object) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None


def normalize_fragment(email: str | None, phone_number: str | int | None) -> Fragment:
    """Collapse blank values to ``None`` and coerce phone numbers to text.

    Raises ``InvalidInputError`` when nothing is left to match on.
    """

    fragment = Fragment(email=_clean(email), phone_number=_clean(phone_number))
    if fragment.is_empty:
        raise InvalidInputError("At least one of email or phoneNumber must be provided")
    return fragment


def cluster_roots(contacts: Iterable[Contact]) -> set[int]:
    """Ids of the primaries the given records belong to."""

    return {contact.root_id for contact in contacts}


def oldest_first(contacts: Iterable[Contact]) -> list[Contact]:
    return sorted(contacts, key=lambda contact: contact.seniority)


def resolve_primary(contacts: Iterable[Contact]) -> tuple[Contact, list[Contact]]:
    """Pick the surviving primary of an expanded cluster set.

    Returns the oldest primary and the (possibly empty) list of younger
    primaries that must be merged underneath it.
    """

    records = list(contacts)
    primaries = oldest_first(contact for contact in records if contact.is_primary)
    if not primaries:
        contact_ids = tuple(sorted(contact.persisted_id for contact in records))
        log.error("Cluster without a primary contact: ids=%s", contact_ids)
        raise InconsistentClusterError(
            f"No primary contact among records {list(contact_ids)}",
            contact_ids=contact_ids,
        )
    return primaries[0], primaries[1:]


def has_new_information(fragment: Fragment, cluster: Iterable[Contact]) -> bool:
    """Whether ``fragment`` carries an email or phone the cluster has not seen."""

    emails: set[str] = set()
    phone_numbers: set[str] = set()
    for contact in cluster:
        if contact.email is not None:
            emails.add(contact.email)
        if contact.phone_number is not None:
            phone_numbers.add(contact.phone_number)

    new_email = fragment.email is not None and fragment.email not in emails
    new_phone = fragment.phone_number is not None and fragment.phone_number not in phone_numbers
    return new_email or new_phone


def split_cluster(cluster: Sequence[Contact]) -> tuple[Contact, list[Contact]]:
    """Separate a single cluster into its primary and its secondaries (oldest first)."""

    ordered = oldest_first(cluster)
    primaries = [contact for contact in ordered if contact.is_primary]
    if len(primaries) != 1:
        contact_ids = tuple(contact.persisted_id for contact in ordered)
        log.error(
            "Cluster has %d primary contacts, expected exactly one: ids=%s",
            len(primaries),
            contact_ids,
        )
        raise InconsistentClusterError(
            f"Expected exactly one primary contact, found {len(primaries)}",
            contact_ids=contact_ids,
        )
    primary = primaries[0]
    return primary, [contact for contact in ordered if contact is not primary]
