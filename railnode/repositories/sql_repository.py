"""
Relational storage backed by SQLAlchemy (asyncio).

Each entity maps to one table ``<schema>.<entity>s`` holding ``id``,
``created_at``, ``updated_at`` and a JSON ``data`` document with the entity
fields, so the table layout never depends on the entity schema.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

import structlog
from sqlalchemy import MetaData, Table, delete, func, insert, literal_column, select, text, type_coerce, update
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.schema import CreateTable

from railnode.core.bootstrap import BootstrapCache
from railnode.core.config import AdapterKind
from railnode.core.errors import ConfigurationError, StoreOperationError, error_message
from railnode.core.utils import RESERVED_FIELDS, new_id, plural_name, safe_identifier, strip_reserved_fields, to_iso, utc_now
from railnode.db.models import entity_table
from railnode.db.session import backend_name, get_engine
from railnode.domain.models import ModelDefinition

from .base import CrudItem, CrudStore, DbAdapter, store_key

logger = structlog.get_logger(__name__)

_LABELS = {"postgresql": "Postgres", "sqlite": "SQLite"}


def table_name(model: ModelDefinition) -> str:
    return plural_name(model.name)


def _row_to_item(row: Any) -> CrudItem:
    item: CrudItem = {
        "id": row.id,
        "createdAt": to_iso(row.created_at),
        "updatedAt": to_iso(row.updated_at),
    }
    item.update((key, value) for key, value in (row.data or {}).items() if key not in RESERVED_FIELDS)
    return item


class SQLCrudStore:
    """CRUD helpers for one entity table."""

    def __init__(self, adapter: "SQLDbAdapter", model: ModelDefinition, name: str) -> None:
        self._adapter = adapter
        self._model = model
        self._name = name

    @contextmanager
    def _errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("store_operation_failed", backend=self._adapter.label, entity=self._model.name, operation=operation)
            raise StoreOperationError(self._adapter.label, operation, error_message(exc), entity=self._model.name) from None

    async def _ready(self) -> tuple[AsyncEngine, Table]:
        table = await self._adapter.ensure_table(self._model, self._name)
        return self._adapter.get_engine(), table

    async def get_all(self) -> list[CrudItem]:
        engine, table = await self._ready()
        with self._errors("get_all"):
            async with engine.connect() as conn:
                result = await conn.execute(select(*table.c).order_by(table.c.id.asc()))
                return [_row_to_item(row) for row in result]

    async def get_by_id(self, id: str) -> CrudItem | None:
        engine, table = await self._ready()
        with self._errors(f"get_by_id({id})"):
            async with engine.connect() as conn:
                row = (await conn.execute(select(*table.c).where(table.c.id == id))).first()
        return _row_to_item(row) if row else None

    async def create(self, payload: Any) -> CrudItem:
        engine, table = await self._ready()
        data = strip_reserved_fields(payload)
        with self._errors("create"):
            async with engine.begin() as conn:
                # created_at/updated_at come from the column server defaults
                stmt = insert(table).values(id=new_id(), data=data).returning(*table.c)
                row = (await conn.execute(stmt)).first()
        if row is None:
            raise StoreOperationError(self._adapter.label, "create", "insert returned no row", entity=self._model.name)
        return _row_to_item(row)

    async def update(self, id: str, payload: Any) -> CrudItem | None:
        engine, table = await self._ready()
        patch = strip_reserved_fields(payload)
        with self._errors(f"update({id})"):
            async with engine.begin() as conn:
                if self._adapter.dialect == "postgresql":
                    merged = func.coalesce(table.c.data, literal_column("'{}'::jsonb")).op("||")(type_coerce(patch, JSONB))
                    updated_at = func.now()
                else:
                    # no native shallow JSON merge (SQLite's json_patch drops nulls): merge in the transaction
                    current = (await conn.execute(select(table.c.data).where(table.c.id == id))).first()
                    if current is None:
                        return None
                    merged = {**(current.data or {}), **patch}
                    updated_at = utc_now()
                stmt = (
                    update(table)
                    .where(table.c.id == id)
                    .values(data=merged, updated_at=updated_at)
                    .returning(*table.c)
                )
                row = (await conn.execute(stmt)).first()
        return _row_to_item(row) if row else None

    async def delete(self, id: str) -> bool:
        engine, table = await self._ready()
        with self._errors(f"delete({id})"):
            async with engine.begin() as conn:
                result = await conn.execute(delete(table).where(table.c.id == id))
                return (result.rowcount or 0) > 0


class SQLDbAdapter(DbAdapter):
    """One pooled AsyncEngine per adapter; tables bootstrapped once per entity."""

    kind = AdapterKind.POSTGRES

    def __init__(self, connection_string: str, schema: str | None = None) -> None:
        try:
            self.dialect = backend_name(connection_string)
        except SQLAlchemyError as exc:
            raise ConfigurationError(
                f"Invalid database connection string: {error_message(exc)}", setting="db.postgres.connection_string"
            ) from None
        self.connection_string = connection_string
        self.label = _LABELS.get(self.dialect, self.dialect)
        # only PostgreSQL gets CREATE SCHEMA; SQLite tables live in the main database
        self.schema = safe_identifier(schema or "public", setting="db.postgres.schema") if self.dialect == "postgresql" else None
        self._engine: AsyncEngine | None = None
        self._metadata = MetaData(schema=self.schema)
        self._tables: BootstrapCache[Table] = BootstrapCache()
        self._stores: dict[str, SQLCrudStore] = {}

    def get_engine(self) -> AsyncEngine:
        if self._engine is None:
            try:
                self._engine = get_engine(self.connection_string)
            except (SQLAlchemyError, ImportError) as exc:
                raise StoreOperationError(self.label, "connect", error_message(exc)) from None
        return self._engine

    async def ensure_table(self, model: ModelDefinition, name: str) -> Table:
        key = f"{self.schema}.{name}" if self.schema else name
        return await self._tables.get(key, lambda: self._create_table(model, name, key))

    async def _create_table(self, model: ModelDefinition, name: str, key: str) -> Table:
        table = entity_table(self._metadata, name)
        engine = self.get_engine()
        try:
            async with engine.begin() as conn:
                if self.schema:
                    # schema passed safe_identifier() in __init__
                    await conn.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{self.schema}"'))
                await conn.execute(CreateTable(table, if_not_exists=True))
        except (SQLAlchemyError, OSError) as exc:
            raise StoreOperationError(self.label, "ensure table", error_message(exc), entity=model.name) from None
        logger.info("table_ready", entity=model.name, table=key)
        return table

    def get_crud_store(self, model: ModelDefinition) -> CrudStore:
        key = store_key(model)
        store = self._stores.get(key)
        if store is None:
            name = safe_identifier(table_name(model), setting=f"table name for {model.name}")
            store = self._stores[key] = SQLCrudStore(self, model, name)
        return store

    async def init(self) -> None:
        engine = self.get_engine()
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as exc:
            raise StoreOperationError(self.label, "init", error_message(exc)) from None

    async def dispose(self) -> None:
        engine, self._engine = self._engine, None
        self._tables.clear()
        if engine is None:
            return
        try:
            await engine.dispose()
        except (SQLAlchemyError, OSError) as exc:
            raise StoreOperationError(self.label, "dispose", error_message(exc)) from None
