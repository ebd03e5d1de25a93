"""HTTP server configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final

from .env import env_bool, env_int
from .errors import ConfigurationError

DEFAULT_HOST: Final[str] = "127.0.0.1"
DEFAULT_PORT: Final[int] = 3000


@dataclass(frozen=True, slots=True)
class ServerConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    # Include exception messages in 500 responses (development only).
    expose_errors: bool = False

    def __post_init__(self) -> None:
        if not 0 < self.port < 65536:  # noqa: PLR2004
            raise ConfigurationError(f"Port must be between 1 and 65535, got {self.port}")


def get_server_config() -> ServerConfig:
    host = os.getenv("IDENTIPY_HOST") or DEFAULT_HOST
    return ServerConfig(
        host=host.strip(),
        port=env_int("IDENTIPY_PORT", DEFAULT_PORT),
        expose_errors=env_bool("IDENTIPY_EXPOSE_ERRORS"),
    )
