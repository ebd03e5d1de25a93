"""Alembic entry points for the contact schema."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config

from identipy.config import get_database_uri

MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent
PYPROJECT_PATH: Final[Path] = MIGRATIONS_PATH.parents[4] / "pyproject.toml"

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


def _script_location() -> Path:
    """``[tool.alembic] script_location`` in a source checkout, else the bundled scripts."""

    if not PYPROJECT_PATH.is_file():
        return MIGRATIONS_PATH
    with PYPROJECT_PATH.open("rb") as pyproject_file:
        document = tomllib.load(pyproject_file)
    configured = document.get("tool", {}).get("alembic", {}).get("script_location")
    if not configured:
        return MIGRATIONS_PATH
    location = Path(configured)
    if not location.is_absolute():
        location = PYPROJECT_PATH.parent / location
    return location if location.is_dir() else MIGRATIONS_PATH


def alembic_config(database_uri: str | None = None) -> Config:
    config = Config()
    config.set_main_option("script_location", str(_script_location()))
    if database_uri is not None:
        config.set_main_option("sqlalchemy.url", database_uri)
    return config


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Upgrade the database schema to the latest revision.

    With ``engine`` the migration runs on one of its connections (needed for
    in-memory SQLite); otherwise Alembic connects to ``database_uri`` or the
    configured database.
    """

    if engine is None:
        command.upgrade(alembic_config(database_uri or get_database_uri()), "head")
        return
    config = alembic_config()
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.upgrade(config, "head")
