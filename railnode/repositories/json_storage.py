"""
JSON file persistence: one ``<entity>.json`` file per entity.

The file holds ``{"items": [record, ...]}``. It is read once into an
in-memory index; every mutation rewrites the whole file through a temp file
and an atomic rename, so readers never see a half-written document.
"""

from __future__ import annotations

import asyncio
import json
import os
import time
from pathlib import Path
from typing import Any, Iterable

import structlog

from railnode.core.config import DEFAULT_JSON_DIR, AdapterKind
from railnode.core.errors import StoreOperationError, error_message
from railnode.core.utils import now_iso, strip_reserved_fields
from railnode.domain.models import ModelDefinition

from .base import CrudItem, CrudStore, DbAdapter, store_key
from .memory_store import build_item, merge_fields

logger = structlog.get_logger(__name__)

BACKEND = "JSON file"


def _is_item(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and isinstance(value.get("id"), str)
        and isinstance(value.get("createdAt"), str)
        and isinstance(value.get("updatedAt"), str)
    )


def load(path: Path, entity: str | None = None) -> dict[str, CrudItem]:
    """
    Read the persisted items.

    A missing file is an empty index. Content that is not a JSON document
    (bad syntax or bad encoding) is moved aside and an empty index returned.
    Any other read failure raises, so a later write cannot clobber the file.
    """
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        return {}
    except OSError as exc:
        logger.error("json_store_unreadable", path=str(path), error=error_message(exc))
        raise StoreOperationError(BACKEND, "load", error_message(exc), entity=entity) from None

    try:
        # bytes in: undecodable content raises UnicodeDecodeError, a ValueError
        parsed = json.loads(raw)
    except ValueError:
        backup = path.with_name(f"{path.name}.corrupt-{int(time.time() * 1000)}")
        try:
            path.rename(backup)
        except OSError as exc:
            logger.warning("json_store_backup_failed", path=str(path), error=error_message(exc))
        else:
            logger.warning("json_store_corrupt_file", path=str(path), backup=str(backup))
        return {}

    if not isinstance(parsed, dict):
        return {}
    items = parsed.get("items")
    if not isinstance(items, list):
        return {}
    return {item["id"]: item for item in items if _is_item(item)}


def save(path: Path, items: Iterable[CrudItem]) -> None:
    """Write-to-temp then ``os.replace``; a failure before the rename leaves ``path`` untouched."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f"{path.name}.tmp-{os.getpid()}-{time.time_ns()}")
    payload = json.dumps({"items": list(items)}, ensure_ascii=False, indent=2)
    try:
        with tmp.open("w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


class JsonFileStore:
    def __init__(self, path: Path, entity: str | None = None) -> None:
        self.path = path
        self.entity = entity
        self._items: dict[str, CrudItem] | None = None
        self._lock = asyncio.Lock()

    async def _index(self) -> dict[str, CrudItem]:
        if self._items is None:
            async with self._lock:
                if self._items is None:
                    self._items = await asyncio.to_thread(load, self.path, self.entity)
        return self._items

    async def _commit(self, operation: str, items: dict[str, CrudItem]) -> None:
        # caller holds self._lock; the index is only swapped after the file is on disk
        try:
            await asyncio.to_thread(save, self.path, items.values())
        except OSError as exc:
            raise StoreOperationError(BACKEND, operation, error_message(exc), entity=self.entity) from None
        self._items = items

    async def get_all(self) -> list[CrudItem]:
        items = await self._index()
        return [dict(items[key]) for key in sorted(items)]

    async def get_by_id(self, id: str) -> CrudItem | None:
        item = (await self._index()).get(id)
        return dict(item) if item is not None else None

    async def create(self, payload: Any) -> CrudItem:
        await self._index()
        item = build_item(payload)
        async with self._lock:
            items = dict(self._items)
            items[item["id"]] = item
            await self._commit("create", items)
        return dict(item)

    async def update(self, id: str, payload: Any) -> CrudItem | None:
        await self._index()
        patch = strip_reserved_fields(payload)
        async with self._lock:
            existing = self._items.get(id)
            if existing is None:
                return None
            updated = merge_fields(existing, patch, now_iso())
            items = dict(self._items)
            items[id] = updated
            await self._commit(f"update({id})", items)
        return dict(updated)

    async def delete(self, id: str) -> bool:
        await self._index()
        async with self._lock:
            if id not in self._items:
                return False
            items = dict(self._items)
            del items[id]
            await self._commit(f"delete({id})", items)
        return True


class JsonFileDbAdapter(DbAdapter):
    kind = AdapterKind.JSON

    def __init__(self, directory: str | Path | None = None, project_root: str | Path | None = None) -> None:
        path = Path(directory or DEFAULT_JSON_DIR)
        if not path.is_absolute():
            path = Path(project_root or Path.cwd()) / path
        self.directory = path.resolve()
        self._stores: dict[str, JsonFileStore] = {}

    def get_crud_store(self, model: ModelDefinition) -> CrudStore:
        key = store_key(model)
        store = self._stores.get(key)
        if store is None:
            store = self._stores[key] = JsonFileStore(self.directory / f"{key}.json", entity=model.name)
        return store

    async def dispose(self) -> None:
        self._stores.clear()
