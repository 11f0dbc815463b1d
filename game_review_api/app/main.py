"""
Main entrypoint for the Game Review API.

This module assembles the FastAPI application, sets up logging,
installs the error handlers that shape every failure into the
``{"success": false, "message": ...}`` envelope and includes the
versioned routers.  ``create_app`` builds the app, which is then
instantiated at import time as ``app``::

    uvicorn game_review_api.app.main:app --reload
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import settings
from .core.logging_config import setup_logging
from .core.errors import ServiceError
from .api.v1.router import router as v1_router
from .core.db import init_db


logger = logging.getLogger(__name__)


def _error_response(status_code: int, message: str, **extra) -> JSONResponse:
    content = {"success": False, "message": message}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


def _field_name(loc) -> str:
    # Drop the leading "body"/"query"/"path" marker FastAPI adds.
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "header")]
    return ".".join(parts) or "request"


def install_exception_handlers(app: FastAPI) -> None:
    """Register handlers mapping errors onto the response envelope."""

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        content = {"success": False, "message": str(exc.detail)}
        return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [{"field": _field_name(err.get("loc", ())), "message": err.get("msg", "")} for err in exc.errors()]
        message = errors[0]["message"] if errors else "Invalid request"
        return _error_response(status.HTTP_400_BAD_REQUEST, message, errors=errors)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server Error")


def create_app() -> FastAPI:
    """Create and configure a FastAPI application.

    Returns
    -------
    FastAPI
        A configured FastAPI application instance.
    """
    # Logging first so that everything below can log.
    setup_logging(settings.log_level, settings.log_file or None)

    app = FastAPI(title=settings.project_name, version=settings.api_version)
    install_exception_handlers(app)
    app.include_router(v1_router, prefix="/api/v1")

    @app.on_event("startup")
    async def startup_event() -> None:
        # Creates the database file if needed and applies pending migrations.
        init_db()

    return app


app = create_app()
