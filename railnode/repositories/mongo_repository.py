"""
Document storage backed by MongoDB (pymongo's asyncio client).

Each entity maps to one collection whose documents carry the schema fields
as first-class keys next to ``_id``/``createdAt``/``updatedAt``. Collections
are provisioned lazily with a ``$jsonSchema`` validator derived from the
model; validator problems never fail a request.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Iterator

import structlog
from bson import ObjectId
from pymongo import ASCENDING, AsyncMongoClient, ReturnDocument
from pymongo.errors import PyMongoError

from railnode.core.bootstrap import BootstrapCache
from railnode.core.config import AdapterKind
from railnode.core.errors import StoreOperationError, error_message
from railnode.core.utils import plural_name, strip_reserved_fields, to_iso, utc_now
from railnode.domain.fields import FieldType
from railnode.domain.models import ModelDefinition, ModelSchema

from .base import CrudItem, CrudStore, DbAdapter, store_key

logger = structlog.get_logger(__name__)

BACKEND = "MongoDB"

_BSON_TYPES: dict[FieldType, Any] = {
    FieldType.STRING: "string",
    FieldType.NUMBER: ["int", "long", "double", "decimal"],
    FieldType.BOOLEAN: "bool",
}


def collection_name(model: ModelDefinition, prefix: str | None = None) -> str:
    return f"{prefix or ''}{plural_name(model.name, r'[^a-z0-9_]')}"


def parse_object_id(raw: str) -> ObjectId | None:
    """ObjectId for a 24-hex string, None for anything else."""
    if isinstance(raw, str) and ObjectId.is_valid(raw):
        return ObjectId(raw)
    return None


def schema_to_json_schema(schema: ModelSchema) -> dict[str, Any]:
    properties: dict[str, Any] = {
        "_id": {"bsonType": "objectId"},
        "createdAt": {"bsonType": "date"},
        "updatedAt": {"bsonType": "date"},
    }
    required = ["_id", "createdAt", "updatedAt"]
    for key, field in schema.items():
        properties[key] = {"bsonType": _BSON_TYPES[field.type]}
        if not field.is_optional:
            required.append(key)
    return {
        "bsonType": "object",
        "required": required,
        "additionalProperties": True,
        "properties": properties,
    }


def pick_structured_insert(schema: ModelSchema, payload: Any) -> dict[str, Any]:
    """Schema fields present and non-null in the payload; anything else is dropped."""
    raw = strip_reserved_fields(payload)
    return {key: raw[key] for key in schema if raw.get(key) is not None}


def split_structured_patch(schema: ModelSchema, payload: Any) -> tuple[dict[str, Any], dict[str, str]]:
    """``($set, $unset)`` for a patch: null schema fields are unset, the rest set."""
    raw = strip_reserved_fields(payload)
    to_set: dict[str, Any] = {}
    to_unset: dict[str, str] = {}
    for key in schema:
        if key not in raw:
            continue
        if raw[key] is None:
            to_unset[key] = ""
        else:
            to_set[key] = raw[key]
    return to_set, to_unset


def doc_to_item(doc: dict[str, Any]) -> CrudItem:
    """Raises ValueError for documents written outside this adapter without ``_id`` or timestamps."""
    doc = dict(doc)
    _id = doc.pop("_id", None)
    created_at = doc.pop("createdAt", None)
    updated_at = doc.pop("updatedAt", None)
    if _id is None or created_at is None or updated_at is None:
        raise ValueError(f"document {_id} is missing _id, createdAt or updatedAt")
    doc.pop("id", None)
    return {
        "id": str(_id),
        "createdAt": to_iso(created_at),
        "updatedAt": to_iso(updated_at),
        **doc,
    }


class MongoCrudStore:
    def __init__(self, adapter: "MongoDbAdapter", model: ModelDefinition) -> None:
        self._adapter = adapter
        self._model = model

    @contextmanager
    def _errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except (PyMongoError, ValueError) as exc:
            logger.warning("store_operation_failed", backend=BACKEND, entity=self._model.name, operation=operation)
            raise StoreOperationError(BACKEND, operation, error_message(exc), entity=self._model.name) from None

    async def _collection(self):
        return await self._adapter.ensure_collection(self._model)

    async def get_all(self) -> list[CrudItem]:
        col = await self._collection()
        with self._errors("get_all"):
            docs = await col.find({}).sort("_id", ASCENDING).to_list(None)
            return [doc_to_item(doc) for doc in docs]

    async def get_by_id(self, id: str) -> CrudItem | None:
        col = await self._collection()
        object_id = parse_object_id(id)
        if object_id is None:
            return None
        with self._errors(f"get_by_id({id})"):
            doc = await col.find_one({"_id": object_id})
            return doc_to_item(doc) if doc else None

    async def create(self, payload: Any) -> CrudItem:
        col = await self._collection()
        timestamp = utc_now()
        doc = {
            "_id": ObjectId(),
            "createdAt": timestamp,
            "updatedAt": timestamp,
            **pick_structured_insert(self._model.schema, payload),
        }
        with self._errors("create"):
            result = await col.insert_one(doc)
        # report the id the server acknowledged, not the one generated above
        return doc_to_item({**doc, "_id": result.inserted_id})

    async def update(self, id: str, payload: Any) -> CrudItem | None:
        col = await self._collection()
        object_id = parse_object_id(id)
        if object_id is None:
            return None
        to_set, to_unset = split_structured_patch(self._model.schema, payload)
        changes: dict[str, Any] = {"$set": {**to_set, "updatedAt": utc_now()}}
        if to_unset:
            changes["$unset"] = to_unset
        with self._errors(f"update({id})"):
            doc = await col.find_one_and_update(
                {"_id": object_id}, changes, return_document=ReturnDocument.AFTER
            )
            return doc_to_item(doc) if doc else None

    async def delete(self, id: str) -> bool:
        col = await self._collection()
        object_id = parse_object_id(id)
        if object_id is None:
            return False
        with self._errors(f"delete({id})"):
            result = await col.delete_one({"_id": object_id})
        return result.deleted_count > 0


class MongoDbAdapter(DbAdapter):
    """One lazily connected client per adapter; collections provisioned once per entity."""

    kind = AdapterKind.MONGODB

    def __init__(
        self,
        connection_string: str,
        db_name: str,
        collection_prefix: str | None = None,
        *,
        client_factory: Callable[..., Any] = AsyncMongoClient,
    ) -> None:
        self.connection_string = connection_string
        self.db_name = db_name
        self.collection_prefix = collection_prefix or ""
        self._client_factory = client_factory
        self._client: Any = None
        self._db: Any = None
        self._connection: BootstrapCache[Any] = BootstrapCache()
        self._collections: BootstrapCache[Any] = BootstrapCache()
        self._stores: dict[str, MongoCrudStore] = {}

    async def connect(self):
        # one shared attempt; concurrent first users of different entities wait on it
        return await self._connection.get("client", self._open)

    async def _open(self):
        client = None
        try:
            client = self._client_factory(self.connection_string, tz_aware=True)
            await client.admin.command("ping")
        except BaseException as exc:
            # never keep a half-initialised client around (failed ping or a dispose
            # cancelling the attempt); the next call retries
            if client is not None:
                try:
                    await client.close()
                except PyMongoError:
                    logger.debug("mongo_close_after_failed_connect_failed")
            if isinstance(exc, PyMongoError):
                raise StoreOperationError(BACKEND, "connect", error_message(exc)) from None
            raise
        self._client = client
        self._db = client[self.db_name]
        return self._db

    async def ensure_collection(self, model: ModelDefinition):
        name = collection_name(model, self.collection_prefix)
        return await self._collections.get(name, lambda: self._provision(model, name))

    async def _provision(self, model: ModelDefinition, name: str):
        db = await self.connect()
        validator = {"$jsonSchema": schema_to_json_schema(model.schema)}
        try:
            existing = await db.list_collection_names(filter={"name": name})
            if name not in existing:
                try:
                    await db.create_collection(name, validator=validator, validationLevel="moderate")
                except PyMongoError as exc:
                    logger.warning(
                        "collection_validator_create_failed", entity=model.name, collection=name, error=error_message(exc)
                    )
                    await db.create_collection(name)
        except PyMongoError as exc:
            raise StoreOperationError(BACKEND, "ensure collection", error_message(exc), entity=model.name) from None

        # validators are sticky across restarts; push the current schema every time
        try:
            await db.command({"collMod": name, "validator": validator, "validationLevel": "moderate"})
        except PyMongoError as exc:
            logger.debug("collection_validator_sync_skipped", collection=name, error=error_message(exc))

        logger.info("collection_ready", entity=model.name, collection=name)
        return db.get_collection(name)

    def get_crud_store(self, model: ModelDefinition) -> CrudStore:
        key = store_key(model)
        store = self._stores.get(key)
        if store is None:
            store = self._stores[key] = MongoCrudStore(self, model)
        return store

    async def init(self) -> None:
        await self.connect()

    async def dispose(self) -> None:
        client, self._client, self._db = self._client, None, None
        self._connection.clear()
        self._collections.clear()
        if client is None:
            return
        try:
            await client.close()
        except PyMongoError as exc:
            raise StoreOperationError(BACKEND, "dispose", error_message(exc)) from None
