from __future__ import annotations

from datetime import UTC, datetime

import pytest

from identipy.domain.model import Contact, LinkPrecedence
from tests.helpers.contacts import make_contact


def test_new_contact_defaults_to_primary() -> None:
    contact = Contact(email="doc@hillvalley.edu")

    assert contact.is_primary
    assert contact.linked_id is None
    assert contact.link_precedence is LinkPrecedence.PRIMARY
    assert not contact.is_deleted
    assert contact.created_at.tzinfo is not None


def test_unsaved_contact_has_no_persisted_id() -> None:
    contact = Contact(phone_number="123")

    with pytest.raises(ValueError, match="not been persisted"):
        _ = contact.persisted_id


def test_root_id_points_at_primary() -> None:
    primary = make_contact(1, email="a@example.com")
    secondary = make_contact(2, email="b@example.com", linked_id=1)

    assert primary.root_id == 1
    assert secondary.root_id == 1


def test_seniority_breaks_timestamp_ties_by_id() -> None:
    stamp = datetime(2024, 5, 1, tzinfo=UTC)
    first = make_contact(7, created_at=stamp)
    second = make_contact(3, created_at=stamp)

    assert sorted([first, second], key=lambda c: c.seniority) == [second, first]


def test_demote_links_to_new_primary_and_touches_updated_at() -> None:
    contact = make_contact(2, email="b@example.com")
    moment = datetime(2025, 1, 1, tzinfo=UTC)

    changed = contact.demote(1, at=moment)

    assert changed
    assert contact.link_precedence is LinkPrecedence.SECONDARY
    assert contact.linked_id == 1
    assert contact.updated_at == moment


def test_demote_is_noop_when_already_linked() -> None:
    contact = make_contact(2, linked_id=1)
    before = contact.updated_at

    assert contact.demote(1) is False
    assert contact.updated_at == before


def test_demote_rejects_self_link() -> None:
    contact = make_contact(4)

    with pytest.raises(ValueError, match="itself"):
        contact.demote(4)


def test_relink_moves_secondary() -> None:
    contact = make_contact(3, linked_id=2)
    moment = datetime(2025, 2, 2, tzinfo=UTC)

    contact.relink(1, at=moment)

    assert contact.linked_id == 1
    assert contact.link_precedence is LinkPrecedence.SECONDARY
    assert contact.updated_at == moment


def test_soft_deleted_contact_reports_deleted() -> None:
    contact = make_contact(5, deleted_at=datetime(2025, 3, 3, tzinfo=UTC))

    assert contact.is_deleted
