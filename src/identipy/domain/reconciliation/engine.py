"""Identity reconciliation engine.

Given one (email, phone) fragment the engine finds the clusters it touches,
merges them when the fragment proves they describe the same person, records
the fragment when it adds something new, and returns the consolidated view.

All reads and writes for one call happen inside a single unit of work, so a
failure at any step leaves the store as it was before the call.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from identipy.domain.model import Contact, LinkPrecedence

from .cluster import (
    Fragment,
    cluster_roots,
    has_new_information,
    normalize_fragment,
    resolve_primary,
)
from .view import ConsolidatedView, build_view

if TYPE_CHECKING:
    from identipy.domain.ports import ContactRepository, ContactUnitOfWork

UnitOfWorkFactory = Callable[[], "ContactUnitOfWork"]

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ReconciliationEngine:
    """Reconcile contact fragments against a store reached through units of work."""

    unit_of_work_factory: UnitOfWorkFactory

    def reconcile(
        self,
        email: str | None = None,
        phone_number: str | int | None = None,
    ) -> ConsolidatedView:
        """Resolve the fragment to its cluster and return the consolidated view."""

        fragment = normalize_fragment(email, phone_number)
        log.info(
            "Starting identity reconciliation: email=%s, phone_number=%s",
            fragment.email,
            fragment.phone_number,
        )

        with self.unit_of_work_factory() as uow:
            view = self._reconcile(uow.repositories.contacts, fragment)
            uow.commit()

        log.info(
            "Reconciliation complete: primary_id=%s, cluster_size=%s",
            view.primary_contact_id,
            len(view.secondary_contact_ids) + 1,
        )
        return view

    def _reconcile(self, contacts: ContactRepository, fragment: Fragment) -> ConsolidatedView:
        matches = contacts.find_matching(fragment.email, fragment.phone_number)
        if not matches:
            log.info("No existing contacts found, creating new primary contact")
            primary = contacts.add(
                Contact(email=fragment.email, phone_number=fragment.phone_number)
            )
            return build_view([primary])

        # Primacy is decided on the expanded clusters, never on the raw matches:
        # a matched secondary may belong to a primary nothing matched directly.
        expanded = {contact.persisted_id: contact for contact in matches}
        roots = cluster_roots(matches)
        while True:
            for contact in contacts.find_clusters(roots):
                expanded[contact.persisted_id] = contact
            # A merge committed after the match can turn a root into a secondary.
            moved = cluster_roots(expanded.values()) - roots
            if not moved:
                break
            log.info("Cluster roots moved while expanding, following to %s", sorted(moved))
            roots |= moved

        primary, demoted = resolve_primary(expanded.values())
        primary_id = primary.persisted_id
        if demoted:
            log.info(
                "Merging %d cluster(s) into primary %s: demoted=%s",
                len(demoted),
                primary_id,
                [contact.id for contact in demoted],
            )
            for contact in demoted:
                contacts.demote(contact.persisted_id, primary_id)
                moved = contacts.relink(contact.persisted_id, primary_id)
                log.debug("Re-pointed %d secondary contact(s) from %s", moved, contact.id)

        cluster = contacts.get_cluster(primary_id)
        if has_new_information(fragment, cluster):
            log.info("Request contains new information, creating secondary contact")
            contacts.add(
                Contact(
                    email=fragment.email,
                    phone_number=fragment.phone_number,
                    linked_id=primary_id,
                    link_precedence=LinkPrecedence.SECONDARY,
                )
            )

        return build_view(contacts.get_cluster(primary_id))


def reconcile_identity(
    email: str | None = None,
    phone_number: str | int | None = None,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
) -> ConsolidatedView:
    """Functional shortcut around ``ReconciliationEngine.reconcile``."""

    return ReconciliationEngine(unit_of_work_factory).reconcile(email, phone_number)
