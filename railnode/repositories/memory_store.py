"""In-process store: a dict per entity, gone when the process exits."""
from __future__ import annotations

from typing import Any

from railnode.core.config import AdapterKind
from railnode.core.utils import new_id, now_iso, strip_reserved_fields
from railnode.domain.models import ModelDefinition

from .base import CrudItem, CrudStore, DbAdapter, store_key


def merge_fields(existing: CrudItem, patch: dict[str, Any], updated_at: str) -> CrudItem:
    """Shallow merge used by the dict-backed stores; a None value removes the key."""
    merged = dict(existing)
    for key, value in patch.items():
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = value
    merged["updatedAt"] = updated_at
    return merged


def build_item(payload: Any) -> CrudItem:
    now = now_iso()
    fields = {key: value for key, value in strip_reserved_fields(payload).items() if value is not None}
    return {"id": new_id(), "createdAt": now, "updatedAt": now, **fields}


class MemoryStore:
    def __init__(self) -> None:
        self._items: dict[str, CrudItem] = {}

    async def get_all(self) -> list[CrudItem]:
        return [dict(self._items[key]) for key in sorted(self._items)]

    async def get_by_id(self, id: str) -> CrudItem | None:
        item = self._items.get(id)
        return dict(item) if item is not None else None

    async def create(self, payload: Any) -> CrudItem:
        item = build_item(payload)
        self._items[item["id"]] = item
        return dict(item)

    async def update(self, id: str, payload: Any) -> CrudItem | None:
        existing = self._items.get(id)
        if existing is None:
            return None
        updated = merge_fields(existing, strip_reserved_fields(payload), now_iso())
        self._items[id] = updated
        return dict(updated)

    async def delete(self, id: str) -> bool:
        return self._items.pop(id, None) is not None


class MemoryDbAdapter(DbAdapter):
    kind = AdapterKind.MEMORY

    def __init__(self) -> None:
        self._stores: dict[str, MemoryStore] = {}

    def get_crud_store(self, model: ModelDefinition) -> CrudStore:
        key = store_key(model)
        store = self._stores.get(key)
        if store is None:
            store = self._stores[key] = MemoryStore()
        return store

    async def dispose(self) -> None:
        self._stores.clear()
