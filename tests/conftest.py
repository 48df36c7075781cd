from __future__ import annotations

import sys
from pathlib import Path

import pytest
import pytest_asyncio

# make the railnode package importable when running from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from railnode.core import config as core_config
from railnode.domain import ModelRegistry, boolean, define_model, number, string
from railnode.repositories.json_storage import JsonFileDbAdapter
from railnode.repositories.memory_store import MemoryDbAdapter
from railnode.repositories.mongo_repository import MongoDbAdapter
from railnode.repositories.sql_repository import SQLDbAdapter

from fake_mongo import FakeMongoServer

BACKENDS = ["memory", "json", "sqlite", "mongodb"]


@pytest.fixture()
def todo_model():
    return define_model(
        "Todo",
        {
            "title": string(),
            "done": boolean(),
            "priority": number().optional(),
            "notes": string().optional(),
        },
    )


@pytest.fixture()
def registry(todo_model):
    return ModelRegistry([todo_model])


@pytest.fixture()
def clean_settings(monkeypatch):
    """Drop storage env vars and the cached Settings so each test reads its own env."""
    for name in (
        "RAILNODE_DB_ADAPTER",
        "RAILNODE_DB_DIR",
        "DATABASE_URL",
        "DATABASE_SCHEMA",
        "MONGODB_URI",
        "MONGODB_DB",
        "MONGODB_COLLECTION_PREFIX",
    ):
        monkeypatch.delenv(name, raising=False)
    core_config.get_settings.cache_clear()
    yield
    core_config.get_settings.cache_clear()


@pytest.fixture()
def mongo_server():
    return FakeMongoServer()


def build_adapter(kind: str, tmp_path: Path, mongo_server: FakeMongoServer):
    if kind == "memory":
        return MemoryDbAdapter()
    if kind == "json":
        return JsonFileDbAdapter(tmp_path / "db")
    if kind == "sqlite":
        return SQLDbAdapter(f"sqlite:///{tmp_path / 'test.db'}")
    return MongoDbAdapter(
        "mongodb://localhost:27017", "railnode_test", client_factory=mongo_server.client_factory
    )


@pytest_asyncio.fixture(params=BACKENDS)
async def adapter(request, tmp_path, mongo_server):
    adapter = build_adapter(request.param, tmp_path, mongo_server)
    await adapter.init()
    yield adapter
    await adapter.dispose()


@pytest.fixture()
def store(adapter, todo_model):
    return adapter.get_crud_store(todo_model)
