"""Store contract shared by every backend, and the adapter base class."""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from railnode.core.config import AdapterKind
from railnode.domain.models import ModelDefinition

CrudItem = dict[str, Any]


@runtime_checkable
class CrudStore(Protocol):
    """
    Whole-entity CRUD over one entity's storage unit.

    Not-found is never an error: ``get_by_id``/``update`` return None and
    ``delete`` returns False. Backend failures raise StoreOperationError.
    """

    async def get_all(self) -> list[CrudItem]:
        """Every record, ordered by id ascending."""
        ...

    async def get_by_id(self, id: str) -> CrudItem | None:
        """The record, or None (also for ids the backend cannot parse)."""
        ...

    async def create(self, payload: Any) -> CrudItem:
        """Insert with a fresh id; createdAt == updatedAt."""
        ...

    async def update(self, id: str, payload: Any) -> CrudItem | None:
        """Shallow-merge payload into the record and refresh updatedAt."""
        ...

    async def delete(self, id: str) -> bool:
        """True when a record existed and was removed."""
        ...


class DbAdapter:
    """
    Builds one CrudStore per entity and owns the backend connection.

    ``init``/``dispose`` are lifecycle hooks called once per process by the
    app; ``dispose`` is safe to call more than once.
    """

    kind: AdapterKind

    async def init(self) -> None:
        return None

    async def dispose(self) -> None:
        return None

    def get_crud_store(self, model: ModelDefinition) -> CrudStore:
        raise NotImplementedError


def store_key(model: ModelDefinition) -> str:
    return model.name.lower()
