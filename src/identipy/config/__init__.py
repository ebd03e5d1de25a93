"""Application configuration helpers."""

from __future__ import annotations

from .env import env_bool, env_int
from .errors import ConfigurationError
from .logging import configure_logging
from .server import ServerConfig, get_server_config
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_database_uri,
    get_storage_config,
)

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "ServerConfig",
    "StorageConfig",
    "configure_logging",
    "env_bool",
    "env_int",
    "get_database_config",
    "get_database_uri",
    "get_server_config",
    "get_storage_config",
]
