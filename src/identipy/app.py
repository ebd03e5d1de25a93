"""Application orchestration entry points."""

from __future__ import annotations

import threading
from logging import getLogger
from typing import TYPE_CHECKING

from identipy.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyContactUnitOfWork,
    is_started,
    startup,
)
from identipy.domain.reconciliation import ReconciliationEngine

if TYPE_CHECKING:
    from identipy.domain.reconciliation import ConsolidatedView, UnitOfWorkFactory


log = getLogger(__name__)

_STARTUP_LOCK = threading.Lock()


def default_unit_of_work_factory() -> UnitOfWorkFactory:
    """Return the SQLAlchemy unit of work, initialising the adapter on first use."""

    with _STARTUP_LOCK:
        if not is_started():
            startup()
    return SqlAlchemyContactUnitOfWork


def identify_contact(
    email: str | None = None,
    phone_number: str | int | None = None,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> ConsolidatedView:
    """Reconcile one contact fragment using the configured adapters."""

    effective_uow = unit_of_work_factory or default_unit_of_work_factory()
    log.info("Identify request: email=%s, phone_number=%s", email, phone_number)

    view = ReconciliationEngine(effective_uow).reconcile(email, phone_number)

    log.info(
        f"Identified contact: primary={view.primary_contact_id}, "
        f"emails={len(view.emails)}, phone_numbers={len(view.phone_numbers)}, "
        f"secondaries={len(view.secondary_contact_ids)}"
    )
    return view
