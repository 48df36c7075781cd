"""
Configuration helpers for railnode.

Two sources feed the storage layer:

- ``Settings``: a typed view of environment variables (connection strings,
  database name, log level), read once and cached.
- ``DbConfig``: the explicit ``db`` section of ``backend.config.json`` (or a
  dict built in code), parsed into one struct per backend kind.

Explicit config always wins; the environment is only a fallback, resolved by
the adapter factory.
"""

from __future__ import annotations

import enum
import json
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

from .errors import ConfigurationError

CONFIG_FILENAME = "backend.config.json"
DEFAULT_JSON_DIR = ".railnode/db"


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    log_level: str
    log_format: str
    db_adapter: str | None
    db_dir: str | None
    database_url: str | None
    database_schema: str | None
    mongodb_uri: str | None
    mongodb_db: str | None
    mongodb_collection_prefix: str | None


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _opt(name: str) -> str | None:
        value = (os.getenv(name) or "").strip()
        return value or None

    log_format = (os.getenv("LOG_FORMAT") or "console").strip().lower()

    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        log_format=log_format if log_format in {"console", "json"} else "console",
        db_adapter=_opt("RAILNODE_DB_ADAPTER"),
        db_dir=_opt("RAILNODE_DB_DIR"),
        database_url=_opt("DATABASE_URL"),
        database_schema=_opt("DATABASE_SCHEMA"),
        mongodb_uri=_opt("MONGODB_URI"),
        mongodb_db=_opt("MONGODB_DB"),
        mongodb_collection_prefix=_opt("MONGODB_COLLECTION_PREFIX"),
    )


class AdapterKind(str, enum.Enum):
    MEMORY = "memory"
    JSON = "json"
    POSTGRES = "postgres"
    MONGODB = "mongodb"

    @classmethod
    def parse(cls, value: Any, *, setting: str = "db.adapter") -> "AdapterKind":
        if isinstance(value, AdapterKind):
            return value
        if not isinstance(value, str):
            raise ConfigurationError(f"{setting} must be a string", setting=setting)
        key = value.strip().lower()
        key = _ADAPTER_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            choices = ", ".join(kind.value for kind in cls)
            raise ConfigurationError(
                f"{setting} must be one of: {choices} (got {value!r})", setting=setting
            ) from None


_ADAPTER_ALIASES = {
    "file": "json",
    "json-file": "json",
    "relational": "postgres",
    "postgresql": "postgres",
    "document": "mongodb",
    "mongo": "mongodb",
}


@dataclass(frozen=True)
class JsonStoreConfig:
    dir: str | None = None


@dataclass(frozen=True)
class PostgresConfig:
    connection_string: str | None = None
    schema: str | None = None


@dataclass(frozen=True)
class MongoConfig:
    connection_string: str | None = None
    db_name: str | None = None
    collection_prefix: str | None = None


@dataclass(frozen=True)
class DbConfig:
    """Explicit storage configuration (the ``db`` section of the backend config)."""

    adapter: AdapterKind = AdapterKind.MEMORY
    json: JsonStoreConfig = field(default_factory=JsonStoreConfig)
    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    mongodb: MongoConfig = field(default_factory=MongoConfig)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "DbConfig":
        """Parse and validate a ``db`` mapping; every bad value is named by its dotted path."""
        if raw is None:
            return cls()
        if not isinstance(raw, Mapping):
            raise ConfigurationError("db must be an object", setting="db")

        json_raw = _section(raw, "json")
        pg_raw = _section(raw, "postgres")
        mongo_raw = _section(raw, "mongodb")

        return cls(
            adapter=AdapterKind.parse(raw.get("adapter", AdapterKind.MEMORY.value)),
            json=JsonStoreConfig(dir=_opt_str(json_raw, "dir", "db.json")),
            postgres=PostgresConfig(
                connection_string=_opt_str(pg_raw, "connection_string", "db.postgres"),
                schema=_opt_str(pg_raw, "schema", "db.postgres"),
            ),
            mongodb=MongoConfig(
                connection_string=_opt_str(mongo_raw, "connection_string", "db.mongodb"),
                db_name=_opt_str(mongo_raw, "db_name", "db.mongodb"),
                collection_prefix=_opt_str(mongo_raw, "collection_prefix", "db.mongodb"),
            ),
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "DbConfig":
        """Config driven by the environment only (``RAILNODE_DB_ADAPTER`` and friends)."""
        settings = settings or get_settings()
        adapter = AdapterKind.parse(settings.db_adapter, setting="RAILNODE_DB_ADAPTER") if settings.db_adapter else AdapterKind.MEMORY
        return cls(
            adapter=adapter,
            json=JsonStoreConfig(dir=settings.db_dir),
            postgres=PostgresConfig(schema=settings.database_schema),
            mongodb=MongoConfig(collection_prefix=settings.mongodb_collection_prefix),
        )


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = raw.get(name)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"db.{name} must be an object", setting=f"db.{name}")
    return value


def _opt_str(raw: Mapping[str, Any], key: str, prefix: str) -> str | None:
    value = raw.get(key)
    if value is None:
        return None
    setting = f"{prefix}.{key}"
    if not isinstance(value, str):
        raise ConfigurationError(f"{setting} must be a string", setting=setting)
    value = value.strip()
    return value or None


def load_backend_config(project_root: str | Path) -> tuple[dict[str, Any], Path | None]:
    """
    Read ``backend.config.json`` from the project root.

    Returns ``({}, None)`` when there is no config file.
    """
    path = Path(project_root) / CONFIG_FILENAME
    if not path.exists():
        return {}, None
    try:
        with path.open("r", encoding="utf-8") as f:
            parsed = json.load(f)
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"Failed to read backend config JSON: {path} ({exc})", setting=str(path)) from exc
    if not isinstance(parsed, dict):
        raise ConfigurationError(
            f'Invalid backend config: {path}. Expected a JSON object like {{"db": {{"adapter": "memory"}}}}',
            setting=str(path),
        )
    return parsed, path
