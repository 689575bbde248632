"""
Auditflow API

FastAPI application serving the audit pipeline:
1. Audit reports (create, poll, list)
2. Content rewrites (action-routed)
3. PDF rendering of completed reports
4. Technical SEO score history
5. Competitor content analysis

Run with:
    uvicorn api.app:create_app --factory
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from auditflow.errors import InternalError, PipelineError
from auditflow.persistence import FileStorage
from auditflow.utils.config import get_settings
from auditflow.utils.logging_config import configure_logging
from .container import ServiceContainer, build_container
from . import analysis, audits, competitors, reports, rewrites

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the application.

    Args:
        container: Pre-built services; built from settings when omitted
    """
    if container is None:
        settings = get_settings()
        configure_logging(settings.LOG_LEVEL)
        container = build_container(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Auditflow services...")
        await container.startup()
        try:
            yield
        finally:
            logger.info("Stopping Auditflow services...")
            await container.shutdown()

    app = FastAPI(
        title="Auditflow",
        description="SEO audit and content-intelligence pipeline",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.container = container

    # ------------------------------------------------------------------
    # Correlation ids
    # ------------------------------------------------------------------

    @app.middleware("http")
    async def correlation_id(request: Request, call_next):
        request.state.request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request.state.request_id
        return response

    # ------------------------------------------------------------------
    # Error mapping
    # ------------------------------------------------------------------

    @app.exception_handler(PipelineError)
    async def pipeline_error_handler(request: Request, exc: PipelineError):
        if exc.status_code >= 500:
            logger.error(f"[{_request_id(request)}] {exc.__class__.__name__}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(),
            headers={REQUEST_ID_HEADER: _request_id(request)},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"error": "ValidationError", "detail": "Invalid request", "details": {"errors": errors}},
            headers={REQUEST_ID_HEADER: _request_id(request)},
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        request_id = _request_id(request)
        logger.exception(f"[{request_id}] Unhandled error on {request.method} {request.url.path}: {exc}")
        error = InternalError(correlation_id=request_id)
        return JSONResponse(
            status_code=error.status_code,
            content=error.to_dict(),
            headers={REQUEST_ID_HEADER: request_id},
        )

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    @app.get("/health")
    async def health():
        """Health check including database, cache and worker status."""
        db_ok = container.db.check_connection()
        cache_health = await container.cache.health_check()
        healthy = db_ok and cache_health.get("healthy", False)
        return {
            "status": "healthy" if healthy else "degraded",
            "database": "connected" if db_ok else "unavailable",
            "cache": cache_health,
            "workers": container.queue.get_stats(),
            "llm": container.llm.usage_summary(),
        }

    app.include_router(audits.router)
    app.include_router(rewrites.router)
    app.include_router(reports.router)
    app.include_router(analysis.router)
    app.include_router(competitors.router)

    # Rendered artifacts are served straight from the file store
    if isinstance(container.storage, FileStorage):
        app.mount("/files", StaticFiles(directory=str(container.storage.base_path)), name="files")

    return app
