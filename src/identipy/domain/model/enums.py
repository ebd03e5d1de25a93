"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class LinkPrecedence(StrEnum):
    """Role of a contact record within its cluster."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
