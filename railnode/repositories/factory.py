"""Adapter selection: one DbAdapter per process, chosen from DbConfig."""
from __future__ import annotations

from pathlib import Path

import structlog

from railnode.core.config import AdapterKind, DbConfig, Settings, get_settings
from railnode.core.errors import ConfigurationError

from .base import DbAdapter
from .json_storage import JsonFileDbAdapter
from .memory_store import MemoryDbAdapter
from .mongo_repository import MongoDbAdapter
from .sql_repository import SQLDbAdapter

logger = structlog.get_logger(__name__)


def _require(explicit: str | None, fallback: str | None, *, setting: str, env: str, label: str) -> str:
    """Explicit config wins; the environment variable is the fallback."""
    value = explicit or fallback
    if not value:
        raise ConfigurationError(
            f"{label} requires {setting.rsplit('.', 1)[-1].replace('_', ' ')}. "
            f"Set {setting} in backend config, or set {env}.",
            setting=setting,
            sources=(setting, env),
        )
    return value


def create_db_adapter(
    config: DbConfig | None = None,
    project_root: str | Path | None = None,
    settings: Settings | None = None,
) -> DbAdapter:
    config = config or DbConfig()
    settings = settings or get_settings()
    kind = config.adapter

    if kind is AdapterKind.MEMORY:
        adapter: DbAdapter = MemoryDbAdapter()
    elif kind is AdapterKind.JSON:
        adapter = JsonFileDbAdapter(config.json.dir or settings.db_dir, project_root=project_root)
    elif kind is AdapterKind.POSTGRES:
        connection_string = _require(
            config.postgres.connection_string,
            settings.database_url,
            setting="db.postgres.connection_string",
            env="DATABASE_URL",
            label="Postgres db adapter",
        )
        adapter = SQLDbAdapter(connection_string, schema=config.postgres.schema or settings.database_schema)
    elif kind is AdapterKind.MONGODB:
        connection_string = _require(
            config.mongodb.connection_string,
            settings.mongodb_uri,
            setting="db.mongodb.connection_string",
            env="MONGODB_URI",
            label="MongoDB db adapter",
        )
        db_name = _require(
            config.mongodb.db_name,
            settings.mongodb_db,
            setting="db.mongodb.db_name",
            env="MONGODB_DB",
            label="MongoDB db adapter",
        )
        adapter = MongoDbAdapter(
            connection_string,
            db_name,
            collection_prefix=config.mongodb.collection_prefix or settings.mongodb_collection_prefix,
        )
    else:
        raise ConfigurationError(f"Unsupported db adapter: {kind!r}", setting="db.adapter")

    logger.info("db_adapter_selected", kind=kind.value)
    return adapter
