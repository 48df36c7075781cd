"""Mount CRUD routes for every registered model."""

from __future__ import annotations

import structlog
from fastapi import FastAPI

from railnode.domain.models import ModelRegistry
from railnode.repositories.base import DbAdapter
from railnode.routers.crud import create_crud_router, get_crud_base_path

logger = structlog.get_logger(__name__)


def generate_crud_routes(app: FastAPI, registry: ModelRegistry, adapter: DbAdapter) -> list[str]:
    """
    Include one router per model, each bound to the adapter's store for that model.

    Returns the mounted base paths.
    """
    mounted: list[str] = []
    for model in registry:
        store = adapter.get_crud_store(model)
        app.include_router(create_crud_router(model, store))
        base_path = get_crud_base_path(model.name)
        mounted.append(base_path)
        logger.info("crud_routes_mounted", model=model.name, path=base_path, adapter=adapter.kind.value)
    if not mounted:
        logger.warning("no_models_registered")
    return mounted
