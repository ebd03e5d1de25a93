"""Public domain model surface."""

from __future__ import annotations

from identipy.domain.model.contact import Contact, utcnow
from identipy.domain.model.enums import LinkPrecedence

__all__ = [
    "Contact",
    "LinkPrecedence",
    "utcnow",
]
