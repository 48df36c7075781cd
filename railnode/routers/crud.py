from __future__ import annotations

import json

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from railnode.domain.models import ModelDefinition
from railnode.domain.validator import validate_input
from railnode.repositories.base import CrudStore


def get_crud_base_path(model_name: str) -> str:
    return f"/{model_name.lower()}s"


def _parse_id(raw: str) -> str | None:
    value = (raw or "").strip()
    return value or None


def _invalid_id() -> JSONResponse:
    return JSONResponse({"message": "Invalid id"}, status_code=400)


def _not_found() -> JSONResponse:
    return JSONResponse({"message": "Not found"}, status_code=404)


_InvalidJson = object()


async def _read_body(request: Request):
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return _InvalidJson


def create_crud_router(model: ModelDefinition, store: CrudStore) -> APIRouter:
    """GET/POST on the collection path, GET/PUT/DELETE on ``/{id}``."""
    router = APIRouter(prefix=get_crud_base_path(model.name), tags=[model.name])

    async def _validated_body(request: Request):
        body = await _read_body(request)
        if body is _InvalidJson:
            return None, JSONResponse({"message": "Invalid JSON"}, status_code=400)
        errors = validate_input(model.schema, body)
        if errors:
            return None, JSONResponse({"errors": errors}, status_code=400)
        return body, None

    @router.get("")
    async def list_items():
        return await store.get_all()

    @router.get("/{item_id}")
    async def get_item(item_id: str):
        record_id = _parse_id(item_id)
        if record_id is None:
            return _invalid_id()
        item = await store.get_by_id(record_id)
        if item is None:
            return _not_found()
        return item

    @router.post("", status_code=201)
    async def create_item(request: Request):
        body, error = await _validated_body(request)
        if error is not None:
            return error
        return await store.create(body)

    @router.put("/{item_id}")
    async def update_item(item_id: str, request: Request):
        record_id = _parse_id(item_id)
        if record_id is None:
            return _invalid_id()
        body, error = await _validated_body(request)
        if error is not None:
            return error
        item = await store.update(record_id, body)
        if item is None:
            return _not_found()
        return item

    @router.delete("/{item_id}", status_code=204)
    async def delete_item(item_id: str):
        record_id = _parse_id(item_id)
        if record_id is None:
            return _invalid_id()
        if not await store.delete(record_id):
            return _not_found()
        return Response(status_code=204)

    return router
