"""FastAPI application setup for stencil-broker."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from stencil_broker.api.dependencies import get_app_settings, get_pipeline
from stencil_broker.api.routes_admin import router as admin_router
from stencil_broker.api.routes_transform import router as transform_router
from stencil_broker.core.errors import (
    ArtifactNotFoundError,
    BuildFailure,
    ConfigurationError,
    StencilBrokerError,
)
from stencil_broker.core.logging import configure_logging, get_logger
from stencil_broker.models.dto import ErrorResponse

configure_logging()
logger = get_logger(__name__)

_STATUS_BY_ERROR: dict[type[StencilBrokerError], int] = {
    ConfigurationError: 503,
    ArtifactNotFoundError: 404,
    BuildFailure: 502,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the compiler session before serving; tear it down on shutdown."""
    settings = get_app_settings()
    configure_logging(settings.log_level, use_json=settings.log_json)
    pipeline = get_pipeline()
    await pipeline.build_start()
    watcher = pipeline.start_watcher(asyncio.get_running_loop()) if settings.watch else None
    try:
        yield
    finally:
        if watcher is not None:
            watcher.close()
        await pipeline.close()


app = FastAPI(
    title="stencil-broker",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.include_router(transform_router, prefix="", tags=["transform"])
app.include_router(admin_router, prefix="", tags=["admin"])


@app.exception_handler(StencilBrokerError)
async def handle_broker_error(request: Request, exc: StencilBrokerError) -> JSONResponse:
    status_code = next(
        (status for error_type, status in _STATUS_BY_ERROR.items() if isinstance(exc, error_type)),
        500,
    )
    if status_code >= 500:
        logger.error("%s on %s: %s", exc.code, request.url.path, exc.message)
    body = ErrorResponse(
        code=exc.code,
        detail=exc.message,
        diagnostics=exc.diagnostics if isinstance(exc, BuildFailure) else None,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.get("/health", tags=["admin"])
def health() -> dict[str, bool]:
    """Simple liveness check."""
    return {"ok": True}
