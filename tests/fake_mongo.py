"""
In-process stand-in for the subset of pymongo's AsyncMongoClient the
document adapter uses. Failures can be injected per server to exercise the
connect/bootstrap/validator paths without a running MongoDB.
"""
from __future__ import annotations

import asyncio
import copy
from types import SimpleNamespace
from typing import Any

from pymongo import ReturnDocument
from pymongo.errors import CollectionInvalid, OperationFailure, ServerSelectionTimeoutError


class FakeMongoServer:
    def __init__(self) -> None:
        self.databases: dict[str, FakeDatabase] = {}
        self.clients: list[FakeMongoClient] = []
        self.fail_connects = 0
        self.fail_list_collections = 0
        self.deny_validator = False
        self.deny_collmod = False
        self.fail_ops = False
        self.create_calls: list[dict[str, Any]] = []
        self.collmod_calls = 0
        self.find_one_calls = 0

    def client_factory(self, uri: str, **kwargs: Any) -> "FakeMongoClient":
        client = FakeMongoClient(self, uri, **kwargs)
        self.clients.append(client)
        return client


class FakeMongoClient:
    def __init__(self, server: FakeMongoServer, uri: str, **kwargs: Any) -> None:
        self.server = server
        self.uri = uri
        self.kwargs = kwargs
        self.closed = False
        self.admin = SimpleNamespace(command=self._admin_command)

    async def _admin_command(self, name: str) -> dict[str, Any]:
        await asyncio.sleep(0)
        if self.server.fail_connects > 0:
            self.server.fail_connects -= 1
            raise ServerSelectionTimeoutError("localhost:27017: connection refused")
        return {"ok": 1}

    def __getitem__(self, name: str) -> "FakeDatabase":
        return self.server.databases.setdefault(name, FakeDatabase(self.server))

    async def close(self) -> None:
        self.closed = True


class FakeDatabase:
    def __init__(self, server: FakeMongoServer) -> None:
        self.server = server
        self.collections: dict[str, FakeCollection] = {}
        self.validators: dict[str, Any] = {}

    async def list_collection_names(self, filter: dict[str, Any] | None = None) -> list[str]:
        await asyncio.sleep(0)
        if self.server.fail_list_collections > 0:
            self.server.fail_list_collections -= 1
            raise OperationFailure("listCollections failed")
        names = list(self.collections)
        if filter and "name" in filter:
            names = [name for name in names if name == filter["name"]]
        return names

    async def create_collection(self, name: str, **kwargs: Any) -> "FakeCollection":
        await asyncio.sleep(0)
        if name in self.collections:
            raise CollectionInvalid(f"collection {name} already exists")
        if "validator" in kwargs and self.server.deny_validator:
            raise OperationFailure("not authorized to create validators")
        self.server.create_calls.append({"name": name, **kwargs})
        if "validator" in kwargs:
            self.validators[name] = kwargs["validator"]
        return self.collections.setdefault(name, FakeCollection(self.server))

    async def command(self, cmd: dict[str, Any]) -> dict[str, Any]:
        await asyncio.sleep(0)
        if "collMod" in cmd:
            if self.server.deny_collmod:
                raise OperationFailure("not authorized on db to execute command collMod")
            self.server.collmod_calls += 1
            self.validators[cmd["collMod"]] = cmd["validator"]
        return {"ok": 1}

    def get_collection(self, name: str) -> "FakeCollection":
        return self.collections.setdefault(name, FakeCollection(self.server))


class FakeCursor:
    def __init__(self, docs: list[dict[str, Any]]) -> None:
        self._docs = docs

    def sort(self, key: str, direction: int) -> "FakeCursor":
        self._docs.sort(key=lambda doc: doc[key], reverse=direction < 0)
        return self

    async def to_list(self, length: int | None = None) -> list[dict[str, Any]]:
        await asyncio.sleep(0)
        return self._docs if length is None else self._docs[:length]


class FakeCollection:
    def __init__(self, server: FakeMongoServer) -> None:
        self.server = server
        self.docs: dict[Any, dict[str, Any]] = {}

    def _check(self) -> None:
        if self.server.fail_ops:
            raise OperationFailure("server at mongodb://admin:secret@db:27017 is unavailable")

    def find(self, filter: dict[str, Any]) -> FakeCursor:
        self._check()
        return FakeCursor([copy.deepcopy(doc) for doc in self.docs.values()])

    async def find_one(self, filter: dict[str, Any]) -> dict[str, Any] | None:
        await asyncio.sleep(0)
        self._check()
        self.server.find_one_calls += 1
        doc = self.docs.get(filter["_id"])
        return copy.deepcopy(doc) if doc is not None else None

    async def insert_one(self, doc: dict[str, Any]) -> SimpleNamespace:
        await asyncio.sleep(0)
        self._check()
        self.docs[doc["_id"]] = copy.deepcopy(doc)
        return SimpleNamespace(inserted_id=doc["_id"])

    async def find_one_and_update(
        self, filter: dict[str, Any], update: dict[str, Any], return_document: Any = ReturnDocument.BEFORE
    ) -> dict[str, Any] | None:
        await asyncio.sleep(0)
        self._check()
        doc = self.docs.get(filter["_id"])
        if doc is None:
            return None
        before = copy.deepcopy(doc)
        doc.update(copy.deepcopy(update.get("$set", {})))
        for key in update.get("$unset", {}):
            doc.pop(key, None)
        return copy.deepcopy(doc) if return_document == ReturnDocument.AFTER else before

    async def delete_one(self, filter: dict[str, Any]) -> SimpleNamespace:
        await asyncio.sleep(0)
        self._check()
        removed = self.docs.pop(filter["_id"], None)
        return SimpleNamespace(deleted_count=1 if removed is not None else 0)
