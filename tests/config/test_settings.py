from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from identipy.config import (
    ConfigurationError,
    ServerConfig,
    StorageConfig,
    env_bool,
    env_int,
    get_database_config,
    get_database_uri,
    get_server_config,
    get_storage_config,
)

if TYPE_CHECKING:
    from pathlib import Path


def test_env_int_and_bool(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SOME_PORT", " 8080 ")
    monkeypatch.setenv("SOME_FLAG", "Yes")
    monkeypatch.delenv("UNSET_FLAG", raising=False)

    assert env_int("SOME_PORT", 1) == 8080
    assert env_bool("SOME_FLAG") is True
    assert env_bool("UNSET_FLAG", default=True) is True


def test_env_parsers_reject_garbage(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SOME_PORT", "eighty")
    monkeypatch.setenv("SOME_FLAG", "maybe")

    with pytest.raises(ConfigurationError, match="SOME_PORT"):
        env_int("SOME_PORT", 1)
    with pytest.raises(ConfigurationError, match="SOME_FLAG"):
        env_bool("SOME_FLAG")


def test_server_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("IDENTIPY_HOST", "IDENTIPY_PORT", "IDENTIPY_EXPOSE_ERRORS"):
        monkeypatch.delenv(name, raising=False)

    config = get_server_config()

    assert config == ServerConfig(host="127.0.0.1", port=3000, expose_errors=False)


def test_server_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("IDENTIPY_HOST", "0.0.0.0")  # noqa: S104
    monkeypatch.setenv("IDENTIPY_PORT", "8000")
    monkeypatch.setenv("IDENTIPY_EXPOSE_ERRORS", "true")

    config = get_server_config()

    assert config.host == "0.0.0.0"  # noqa: S104
    assert config.port == 8000
    assert config.expose_errors


def test_server_config_rejects_out_of_range_port() -> None:
    with pytest.raises(ConfigurationError, match="Port"):
        ServerConfig(port=70000)


def test_database_uri_prefers_explicit_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "postgresql+psycopg://db/identity")

    assert get_database_uri() == "postgresql+psycopg://db/identity"


def test_database_uri_defaults_to_sqlite_in_data_dir(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)
    monkeypatch.setenv("IDENTIPY_DATA_DIR", str(tmp_path / "data"))

    uri = get_database_uri()

    expected = (tmp_path / "data").resolve() / "identipy.db"
    assert uri == f"sqlite+pysqlite:///{expected}"
    assert expected.parent.is_dir()
    assert get_storage_config().data_dir == tmp_path / "data"


def test_storage_config_locates_database_without_touching_disk(tmp_path: Path) -> None:
    storage = StorageConfig(data_dir=tmp_path / "nested" / "data", database_filename="x.db")

    assert storage.database_path == (tmp_path / "nested" / "data").resolve() / "x.db"
    assert not (tmp_path / "nested").exists()

    assert storage.sqlite_uri() == f"sqlite+pysqlite:///{storage.database_path}"
    assert (tmp_path / "nested" / "data").is_dir()


def test_database_config_uses_given_storage(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("DATABASE_URI", "   ")

    config = get_database_config(storage=StorageConfig(data_dir=tmp_path))

    assert config.uri == f"sqlite+pysqlite:///{tmp_path.resolve() / 'identipy.db'}"
