"""SQLAlchemy adapter package for identipy."""

from __future__ import annotations

from .mappings import contact_table, create_all_tables, mapper_registry, start_mappers
from .repositories import SqlAlchemyContactRepository, store_operation, translate_store_error

__all__ = [
    "SqlAlchemyContactRepository",
    "contact_table",
    "create_all_tables",
    "mapper_registry",
    "start_mappers",
    "store_operation",
    "translate_store_error",
]
