"""
FastAPI application factory for the report editor.

This module initializes the FastAPI application instance. It is responsible for:
1.  **Middleware Setup**: CORS for the editor front-end.
2.  **Exception Handling**: structured JSON for unexpected and client errors.
3.  **Routing**: mounting the section router and the health probe.
4.  **Lifecycle**: creating the editor store before the first request.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from reportblocks import __version__
from reportblocks.api.routers import sections
from reportblocks.api.store import EditorStore
from reportblocks.core.settings import get_logger, load_settings

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create the editor store singleton on startup."""
    logger.info("reportblocks API starting up")
    EditorStore.get_instance()
    yield
    logger.info("reportblocks API shutting down")


def create_app() -> FastAPI:
    """
    Construct and configure the editor FastAPI application.

    Returns
    -------
    FastAPI
        The configured ASGI application ready to be served by Uvicorn.
    """
    app = FastAPI(
        title="reportblocks API",
        description="Block-based report section editor",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, restrict this to specific domains.
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all handler so unhandled exceptions still return structured JSON."""
        logger.exception("unhandled error on %s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal Server Error",
                "detail": str(exc),
                "path": request.url.path,
            },
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        """Map ValueErrors (unknown block kinds, bad slots) to HTTP 400."""
        return JSONResponse(
            status_code=400,
            content={
                "error": "Bad Request",
                "detail": str(exc),
            },
        )

    app.include_router(sections.router)

    @app.get("/health", tags=["System"])
    async def health_check() -> dict[str, str]:
        """Simple liveness probe."""
        return {
            "status": "ok",
            "environment": load_settings().environment,
            "version": __version__,
        }

    return app


__all__ = ["create_app"]
