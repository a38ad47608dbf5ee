"""
FastAPI application entry point.

create_app() wires the settings, the shared object store client and the
gallery service together once, then stores them on app.state for the
routes to pick up.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException

from r2gallery import __version__
from r2gallery.api.router import api_router
from r2gallery.config import Settings, get_settings
from r2gallery.middleware.metrics_middleware import MetricsMiddleware
from r2gallery.services.gallery_service import GalleryService, UploadRejected
from r2gallery.storage.base import ObjectStore
from r2gallery.storage.r2_client import build_object_store
from r2gallery.utils.logging import configure_logging

logger = logging.getLogger(__name__)


async def upload_rejected_handler(request: Request, exc: UploadRejected):
    """Client input errors -> 400 {"error": ...}."""
    return JSONResponse(status_code=400, content={"error": exc.message})


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTPException details as {"error": ...} unless they are already a body."""
    content = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed form data is a client error like any other: 400, not 422."""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        message = f"Invalid request: {location} {errors[0].get('msg', '')}".strip()
    return JSONResponse(status_code=400, content={"error": message})


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[ObjectStore] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Application settings (loaded from the environment if omitted)
        store: Object store to use (an R2Client built from settings if omitted)
    """
    settings = settings or get_settings()
    store = store or build_object_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan context manager for startup/shutdown events.
        - Startup: configure structured logging
        """
        configure_logging(settings.service_name, settings.log_level)
        logger.info(
            "Gallery service starting",
            extra={
                "event": "startup",
                "environment": settings.environment,
                "bucket": settings.r2_bucket_name,
                "max_upload_bytes": settings.max_upload_bytes,
            },
        )
        yield

    app = FastAPI(
        title="R2 Gallery",
        description="Upload images to an S3-compatible bucket and list the latest ones",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.gallery_service = GalleryService(store, settings)

    app.add_exception_handler(UploadRejected, upload_rejected_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.add_middleware(MetricsMiddleware)

    app.include_router(api_router)

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(
            content=generate_latest(),
            media_type=CONTENT_TYPE_LATEST
        )

    return app
