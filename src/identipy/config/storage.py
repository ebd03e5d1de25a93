"""Where the contact database lives."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

APP_DIR_NAME: Final[str] = "identipy"
DEFAULT_DB_FILENAME: Final[str] = "identipy.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Local data directory holding the default SQLite database."""

    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    @property
    def database_path(self) -> Path:
        return self.data_dir.expanduser().resolve() / self.database_filename

    def sqlite_uri(self) -> str:
        """URI of the default database; creates the data directory on demand."""

        path = self.database_path
        path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite+pysqlite:///{path}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def _platform_data_root() -> Path:
    if os.name == "nt":
        root = os.getenv("LOCALAPPDATA")
        return Path(root) if root else Path.home() / "AppData" / "Local"
    root = os.getenv("XDG_DATA_HOME")
    return Path(root) if root else Path.home() / ".local" / "share"


def get_storage_config() -> StorageConfig:
    override = os.getenv("IDENTIPY_DATA_DIR")
    return StorageConfig(data_dir=Path(override) if override else _platform_data_root() / APP_DIR_NAME)


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """``DATABASE_URI`` wins; otherwise SQLite inside the data directory."""

    uri = (os.getenv("DATABASE_URI") or "").strip()
    if not uri:
        uri = (storage or get_storage_config()).sqlite_uri()
    return DatabaseConfig(uri=uri)


def get_database_uri() -> str:
    return get_database_config().uri
