from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from railnode.core.config import DbConfig, Settings, get_settings
from railnode.core.errors import StoreOperationError
from railnode.core.logging import configure_logging
from railnode.domain.models import ModelRegistry
from railnode.repositories.base import DbAdapter
from railnode.repositories.factory import create_db_adapter
from railnode.services.crud_service import generate_crud_routes

logger = structlog.get_logger(__name__)


async def _store_error_handler(request: Request, exc: StoreOperationError) -> JSONResponse:
    logger.error(
        "request_failed",
        method=request.method,
        path=request.url.path,
        backend=exc.backend,
        entity=exc.entity,
        operation=exc.operation,
        error=str(exc),
    )
    return JSONResponse({"message": str(exc)}, status_code=500)


def create_app(
    registry: ModelRegistry,
    db_config: DbConfig | None = None,
    *,
    adapter: DbAdapter | None = None,
    project_root: str | Path | None = None,
    settings: Settings | None = None,
    title: str = "railnode API",
) -> FastAPI:
    """
    Build the FastAPI app: one CRUD router per registered model.

    The adapter is chosen (and configuration errors raised) here, before the
    app serves any request; ``init``/``dispose`` run in the lifespan.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_format)

    if adapter is None:
        adapter = create_db_adapter(db_config or DbConfig.from_settings(settings), project_root, settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        await adapter.init()
        logger.info("db_adapter_ready", kind=adapter.kind.value)
        try:
            yield
        finally:
            await adapter.dispose()

    app = FastAPI(title=title, lifespan=lifespan)
    app.state.db_adapter = adapter
    app.state.registry = registry
    app.add_exception_handler(StoreOperationError, _store_error_handler)
    generate_crud_routes(app, registry, adapter)
    return app
