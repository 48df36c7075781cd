from __future__ import annotations

import pytest

from railnode.core import config as core_config
from railnode.core.config import AdapterKind, DbConfig, MongoConfig, PostgresConfig
from railnode.core.errors import ConfigurationError
from railnode.repositories.factory import create_db_adapter
from railnode.repositories.json_storage import JsonFileDbAdapter
from railnode.repositories.memory_store import MemoryDbAdapter
from railnode.repositories.mongo_repository import MongoDbAdapter
from railnode.repositories.sql_repository import SQLDbAdapter


def test_memory_is_the_default(clean_settings):
    assert isinstance(create_db_adapter(), MemoryDbAdapter)


def test_json_adapter_directory(clean_settings, tmp_path):
    adapter = create_db_adapter(DbConfig.from_mapping({"adapter": "json", "json": {"dir": "store"}}), tmp_path)

    assert isinstance(adapter, JsonFileDbAdapter)
    assert adapter.directory == (tmp_path / "store").resolve()


def test_postgres_requires_a_connection_string(clean_settings):
    with pytest.raises(ConfigurationError) as excinfo:
        create_db_adapter(DbConfig(adapter=AdapterKind.POSTGRES))

    assert excinfo.value.setting == "db.postgres.connection_string"
    assert excinfo.value.sources == ("db.postgres.connection_string", "DATABASE_URL")
    assert "DATABASE_URL" in str(excinfo.value)


def test_postgres_falls_back_to_environment(monkeypatch, clean_settings):
    monkeypatch.setenv("DATABASE_URL", "postgresql://env@db/app")
    core_config.get_settings.cache_clear()

    adapter = create_db_adapter(DbConfig(adapter=AdapterKind.POSTGRES))

    assert isinstance(adapter, SQLDbAdapter)
    assert adapter.connection_string == "postgresql://env@db/app"
    assert adapter.schema == "public"


def test_explicit_config_wins_over_environment(monkeypatch, clean_settings):
    monkeypatch.setenv("DATABASE_URL", "postgresql://env@db/app")
    core_config.get_settings.cache_clear()
    config = DbConfig(
        adapter=AdapterKind.POSTGRES,
        postgres=PostgresConfig(connection_string="postgresql://explicit@db/app", schema="crm"),
    )

    adapter = create_db_adapter(config)

    assert adapter.connection_string == "postgresql://explicit@db/app"
    assert adapter.schema == "crm"


def test_mongodb_requires_uri_and_database_name(monkeypatch, clean_settings):
    with pytest.raises(ConfigurationError) as excinfo:
        create_db_adapter(DbConfig(adapter=AdapterKind.MONGODB))
    assert excinfo.value.sources == ("db.mongodb.connection_string", "MONGODB_URI")

    monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017")
    core_config.get_settings.cache_clear()
    with pytest.raises(ConfigurationError) as excinfo:
        create_db_adapter(DbConfig(adapter=AdapterKind.MONGODB))
    assert excinfo.value.setting == "db.mongodb.db_name"
    assert "MONGODB_DB" in str(excinfo.value)


def test_mongodb_adapter_is_built_without_connecting(clean_settings):
    config = DbConfig(
        adapter=AdapterKind.MONGODB,
        mongodb=MongoConfig(connection_string="mongodb://nowhere:1", db_name="app", collection_prefix="x_"),
    )

    adapter = create_db_adapter(config)

    assert isinstance(adapter, MongoDbAdapter)
    assert adapter.db_name == "app"
    assert adapter.collection_prefix == "x_"
